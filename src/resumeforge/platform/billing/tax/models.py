"""
Tax engine data types.

``TaxRule`` is the validated view of a ``tax_settings`` row;
``TaxComputation`` is the result written into invoice ``taxDetails``.
"""

from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from resumeforge.platform.billing.enums import TargetRegion, TaxType
from resumeforge.platform.billing.schemas import BatchResult


class TaxMode(str, Enum):
    """Whether tax is added on top of an amount or embedded in it."""

    EXCLUSIVE = "exclusive"
    INCLUSIVE = "inclusive"


class TaxRule(BaseModel):
    """A single tax setting as seen by the calculator."""

    model_config = ConfigDict(from_attributes=True)

    id: int | None = None
    name: str
    tax_type: TaxType
    percentage: Decimal = Field(ge=0, le=100)
    country: str = "IN"
    state_applicable: str | None = None
    enabled: bool = True
    apply_to_region: TargetRegion = TargetRegion.INDIA
    apply_currency: str = "INR"


class TaxBreakdownItem(BaseModel):
    """Share of the tax attributed to one rule."""

    name: str
    type: str
    percentage: Decimal
    amount: Decimal


class TaxComputation(BaseModel):
    """Subtotal, tax and total for one amount under a set of rules."""

    mode: TaxMode
    tax_type: str
    tax_percentage: Decimal
    tax_amount: Decimal
    subtotal: Decimal
    total: Decimal
    tax_breakdown: list[TaxBreakdownItem] = Field(default_factory=list)

    @property
    def is_zero(self) -> bool:
        return self.tax_percentage == 0

    def to_tax_details(self) -> dict[str, Any]:
        """Render as the JSON ``taxDetails`` object stored on invoices."""
        return {
            "taxType": self.tax_type,
            "taxAmount": float(self.tax_amount),
            "taxPercentage": float(self.tax_percentage),
            "taxBreakdown": [
                {
                    "name": item.name,
                    "type": item.type,
                    "percentage": float(item.percentage),
                    "amount": float(item.amount),
                }
                for item in self.tax_breakdown
            ],
            "subtotal": float(self.subtotal),
            "total": float(self.total),
        }


class TaxCalculationRequest(BaseModel):
    """Request body for the tax preview endpoint."""

    amount: Decimal = Field(ge=0, description="Subtotal (exclusive) or total (inclusive)")
    country: str = Field(min_length=2, max_length=2)
    state: str | None = None
    region: TargetRegion
    currency: str = Field(min_length=3, max_length=3)
    mode: TaxMode = TaxMode.EXCLUSIVE
    tax_types: list[TaxType] | None = Field(
        None, description="Restrict the calculation to these tax types"
    )

    @field_validator("country", "currency")
    @classmethod
    def upper(cls, v: str) -> str:
        return v.upper()


class TaxSettingCreate(BaseModel):
    """Schema for creating a tax setting."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=100)
    tax_type: TaxType
    percentage: Decimal = Field(ge=0, le=100)
    country: str = Field("IN", min_length=2, max_length=2)
    state_applicable: str | None = None
    enabled: bool = True
    apply_to_region: TargetRegion = TargetRegion.INDIA
    apply_currency: str = Field("INR", min_length=3, max_length=3)

    @field_validator("country", "apply_currency")
    @classmethod
    def upper(cls, v: str) -> str:
        return v.upper()


class TaxSettingUpdate(BaseModel):
    """Schema for a partial tax setting update."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str | None = Field(None, min_length=1, max_length=100)
    tax_type: TaxType | None = None
    percentage: Decimal | None = Field(None, ge=0, le=100)
    country: str | None = Field(None, min_length=2, max_length=2)
    state_applicable: str | None = None
    enabled: bool | None = None
    apply_to_region: TargetRegion | None = None
    apply_currency: str | None = Field(None, min_length=3, max_length=3)


class TaxSettingResponse(TaxSettingCreate):
    """Schema for a stored tax setting."""

    model_config = ConfigDict(from_attributes=True)

    id: int


class CompanyTaxInfoPayload(BaseModel):
    """Seller details shown on invoices."""

    model_config = ConfigDict(str_strip_whitespace=True, from_attributes=True)

    company_name: str = Field(min_length=1, max_length=255)
    address: str | None = None
    city: str | None = None
    state: str | None = None
    country: str = Field("IN", min_length=2, max_length=2)
    postal_code: str | None = None
    gstin: str | None = Field(None, max_length=15)
    pan: str | None = Field(None, max_length=10)
    tax_reg_number: str | None = None
    email: str | None = None
    phone: str | None = None


class CompanyTaxInfoResponse(CompanyTaxInfoPayload):
    """Stored company tax info."""

    id: int


class DefaultGSTRequest(BaseModel):
    """Optional override of the company state used for CGST/SGST."""

    company_state: str | None = None


class DefaultGSTResult(BatchResult):
    """Outcome of replacing tax settings with the India GST defaults."""

    deleted: int = 0
    created: int = 0
    settings: list[TaxSettingResponse] = Field(default_factory=list)
