"""
Invoice schemas.

Stored invoices keep ``tax_details`` and ``items`` as camelCase JSON documents
shaped for the admin UI and the printed invoice.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from resumeforge.platform.billing.enums import InvoiceStatus, TransactionStatus

TRANSACTION_INVOICE_STATUS: dict[str, InvoiceStatus] = {
    TransactionStatus.COMPLETED.value: InvoiceStatus.PAID,
    TransactionStatus.PENDING.value: InvoiceStatus.PENDING,
    TransactionStatus.FAILED.value: InvoiceStatus.CANCELLED,
    TransactionStatus.REFUNDED.value: InvoiceStatus.CANCELLED,
}


def invoice_status_for(transaction_status: str) -> InvoiceStatus:
    return TRANSACTION_INVOICE_STATUS.get(transaction_status.upper(), InvoiceStatus.PENDING)


class InvoiceResponse(BaseModel):
    """Stored invoice."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    invoice_number: str
    user_id: int
    transaction_id: int | None = None
    subscription_id: int | None = None
    subscription_plan: str | None = None
    subtotal: Decimal
    tax_amount: Decimal
    total: Decimal
    currency: str
    status: InvoiceStatus
    tax_details: dict[str, Any] = Field(default_factory=dict)
    items: list[dict[str, Any]] = Field(default_factory=list)
    billing_details: dict[str, Any] = Field(default_factory=dict)
    company_details: dict[str, Any] = Field(default_factory=dict)
    due_date: datetime | None = None
    paid_at: datetime | None = None
    next_payment_date: datetime | None = None
    created_at: datetime | None = None
