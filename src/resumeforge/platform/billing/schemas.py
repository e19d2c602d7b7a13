"""
Pydantic schemas shared by the billing modules.
"""

from pydantic import BaseModel, ConfigDict, Field


class BatchResult(BaseModel):
    """Aggregate outcome of a loop of independent updates.

    Batch operations never abort on a single failure; callers inspect the
    counts instead of assuming atomicity.
    """

    model_config = ConfigDict(populate_by_name=True)

    total: int = Field(0, description="Items examined")
    succeeded: int = Field(0, description="Items changed successfully")
    failed: int = Field(0, description="Items whose update raised")
    skipped: int = Field(0, description="Items that needed no change")
    errors: list[str] = Field(default_factory=list, description="One message per failed item")

    def record_failure(self, message: str) -> None:
        self.failed += 1
        self.errors.append(message)

    @property
    def has_failures(self) -> bool:
        return self.failed > 0
