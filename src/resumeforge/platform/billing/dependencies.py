"""
Billing module dependencies.

Service factories shared by the admin routers. Tests replace these through
``app.dependency_overrides``.
"""

from collections.abc import AsyncIterator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from resumeforge.platform.billing.invoicing.service import InvoiceService
from resumeforge.platform.billing.ledger.service import LedgerService
from resumeforge.platform.billing.subscriptions.gateway import (
    PaymentGatewayClient,
    RazorpayGatewayClient,
)
from resumeforge.platform.billing.subscriptions.service import SubscriptionService
from resumeforge.platform.billing.tax.service import TaxService
from resumeforge.platform.db import get_async_session


async def get_gateway_client() -> AsyncIterator[PaymentGatewayClient]:
    """Gateway client for the lifetime of one request."""
    client = RazorpayGatewayClient()
    try:
        yield client
    finally:
        await client.close()


def get_subscription_service(
    db: Annotated[AsyncSession, Depends(get_async_session)],
    gateway: Annotated[PaymentGatewayClient, Depends(get_gateway_client)],
) -> SubscriptionService:
    """Dependency to get SubscriptionService instance."""
    return SubscriptionService(db, gateway=gateway)


def get_ledger_service(
    db: Annotated[AsyncSession, Depends(get_async_session)],
) -> LedgerService:
    """Dependency to get LedgerService instance."""
    return LedgerService(db)


def get_tax_service(
    db: Annotated[AsyncSession, Depends(get_async_session)],
) -> TaxService:
    """Dependency to get TaxService instance."""
    return TaxService(db)


def get_invoice_service(
    db: Annotated[AsyncSession, Depends(get_async_session)],
) -> InvoiceService:
    """Dependency to get InvoiceService instance."""
    return InvoiceService(db)
