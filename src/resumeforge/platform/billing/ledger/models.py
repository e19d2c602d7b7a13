"""
Ledger schemas.

``PaymentMetadata`` validates the JSON blob gateway callbacks store on each
transaction. ``is_primary``/``is_duplicate`` on ``TransactionView`` are
derived at read time and never persisted.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from resumeforge.platform.billing.models import PaymentTransactionTable
from resumeforge.platform.billing.money_utils import format_transaction_amount
from resumeforge.platform.billing.schemas import BatchResult

logger = structlog.get_logger(__name__)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


class PaymentDetails(_CamelModel):
    """``metadata.paymentDetails`` written at webhook time."""

    expected_currency: str | None = None
    correct_plan_price: Decimal | None = None
    correct_plan_currency: str | None = None
    has_currency_mismatch: bool = False
    is_upgrade: bool = False

    @field_validator("expected_currency", "correct_plan_currency")
    @classmethod
    def upper(cls, v: str | None) -> str | None:
        return v.upper() if v else v


class CurrencyCorrection(_CamelModel):
    """Audit entry for a manual currency reclassification."""

    previous_currency: str
    new_currency: str
    corrected_at: datetime
    corrected_by: str | None = None


class PaymentMetadata(_CamelModel):
    """Typed view of ``payment_transactions.metadata``."""

    payment_details: PaymentDetails | None = None
    currency_corrections: list[CurrencyCorrection] = Field(default_factory=list)

    @property
    def expected_currency(self) -> str | None:
        return self.payment_details.expected_currency if self.payment_details else None

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class TransactionView(BaseModel):
    """A transaction as shown in the admin ledger."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    user_id: int
    subscription_id: int | None = None
    amount: Decimal
    currency: str
    gateway: str
    gateway_transaction_id: str | None = None
    status: str
    created_at: datetime | None = None
    metadata: PaymentMetadata = Field(default_factory=PaymentMetadata)
    display_amount: str = ""
    is_primary: bool | None = None
    is_duplicate: bool | None = None

    @classmethod
    def from_row(cls, row: PaymentTransactionTable) -> "TransactionView":
        try:
            metadata = PaymentMetadata.model_validate(row.metadata_json or {})
        except ValidationError as e:
            # Unreadable metadata: listed without currency flags
            logger.warning(
                "Invalid transaction metadata",
                transaction_id=row.id,
                error=str(e),
            )
            metadata = PaymentMetadata()

        return cls(
            id=row.id,
            user_id=row.user_id,
            subscription_id=row.subscription_id,
            amount=row.amount,
            currency=row.currency,
            gateway=row.gateway,
            gateway_transaction_id=row.gateway_transaction_id,
            status=row.status,
            created_at=row.created_at,
            metadata=metadata,
            display_amount=format_transaction_amount(row.amount, row.currency),
        )

    @property
    def expected_currency(self) -> str | None:
        return self.metadata.expected_currency


class CurrencyCorrectionRequest(_CamelModel):
    """Body of ``POST /transactions/{id}/correct-currency``."""

    currency: str = Field(min_length=3, max_length=3)


class CurrencyCorrectionResult(BaseModel):
    """Outcome of a currency correction; ``changed`` is False for a repeat call."""

    transaction: TransactionView
    changed: bool
    previous_currency: str


class CurrencyMismatch(BaseModel):
    transaction_id: int
    user_id: int
    currency: str
    expected_currency: str


class CurrencyValidationReport(BatchResult):
    """Read-only scan of transaction currencies against the expected currency."""

    mismatches: list[CurrencyMismatch] = Field(default_factory=list)
