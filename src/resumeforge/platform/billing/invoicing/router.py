"""
Invoice administration router.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from resumeforge.platform.auth.core import UserInfo, require_admin
from resumeforge.platform.billing.dependencies import get_invoice_service
from resumeforge.platform.billing.invoicing.models import InvoiceResponse
from resumeforge.platform.billing.invoicing.service import InvoiceService

router = APIRouter(tags=["Admin - Invoices"])


@router.post(
    "/invoices/from-transaction/{transaction_id}",
    response_model=InvoiceResponse,
    status_code=status.HTTP_201_CREATED,
)
async def generate_invoice(
    transaction_id: int,
    current_user: Annotated[UserInfo, Depends(require_admin)],
    service: Annotated[InvoiceService, Depends(get_invoice_service)],
) -> InvoiceResponse:
    """Issue the invoice for a transaction, or return the one already issued."""
    invoice = await service.generate_invoice(transaction_id)
    return InvoiceResponse.model_validate(invoice)
