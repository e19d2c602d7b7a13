"""
Ledger administration router.
"""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends

from resumeforge.platform.auth.core import UserInfo, require_admin
from resumeforge.platform.billing.dependencies import get_ledger_service
from resumeforge.platform.billing.ledger.models import (
    CurrencyCorrectionRequest,
    CurrencyCorrectionResult,
    TransactionView,
)
from resumeforge.platform.billing.ledger.service import LedgerService

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Admin - Ledger"])


@router.get("/users/{user_id}/transactions", response_model=list[TransactionView])
async def list_user_transactions(
    user_id: int,
    current_user: Annotated[UserInfo, Depends(require_admin)],
    service: Annotated[LedgerService, Depends(get_ledger_service)],
) -> list[TransactionView]:
    """A user's transactions with duplicate gateway records flagged."""
    return await service.list_user_transactions(user_id)


@router.post(
    "/transactions/{transaction_id}/correct-currency",
    response_model=CurrencyCorrectionResult,
)
async def correct_transaction_currency(
    transaction_id: int,
    request: CurrencyCorrectionRequest,
    current_user: Annotated[UserInfo, Depends(require_admin)],
    service: Annotated[LedgerService, Depends(get_ledger_service)],
) -> CurrencyCorrectionResult:
    """
    Reclassify a transaction's currency.

    The amount is left unchanged. Repeating the same correction is a no-op.
    """
    logger.info(
        "Currency correction requested",
        transaction_id=transaction_id,
        currency=request.currency,
        admin_id=current_user.user_id,
    )
    return await service.correct_transaction_currency(
        transaction_id, request.currency, corrected_by=current_user.user_id
    )
