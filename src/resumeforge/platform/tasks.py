"""
Celery task definitions.

Tasks are synchronous entry points that drive the async services on a fresh
event loop and dispose of the engine pool afterwards.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from resumeforge.platform.billing.ledger.service import LedgerService
from resumeforge.platform.billing.subscriptions.gateway import RazorpayGatewayClient
from resumeforge.platform.billing.subscriptions.service import SubscriptionService
from resumeforge.platform.celery_app import celery_app
from resumeforge.platform.db import get_async_db, get_async_engine

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def run_with_session(work: Callable[[AsyncSession], Awaitable[T]]) -> T:
    """Run ``work`` with a database session on its own event loop."""

    async def _run() -> T:
        try:
            async with get_async_db() as session:
                return await work(session)
        finally:
            await get_async_engine().dispose()

    return asyncio.run(_run())


async def _process_cycle(session: AsyncSession) -> dict[str, Any]:
    gateway = RazorpayGatewayClient()
    try:
        result = await SubscriptionService(session, gateway=gateway).process_subscription_cycle()
    finally:
        await gateway.close()
    return result.model_dump()


async def _validate_currencies(session: AsyncSession) -> dict[str, Any]:
    report = await LedgerService(session).validate_transaction_currencies()
    return report.model_dump()


@celery_app.task(name="subscriptions.process_cycle")
def process_subscription_cycle_task() -> dict[str, Any]:
    """Daily subscription job: scheduled changes, renewals, grace and expiry."""
    logger.info("Subscription cycle task started")
    return run_with_session(_process_cycle)


@celery_app.task(name="ledger.validate_currencies")
def validate_transaction_currencies_task() -> dict[str, Any]:
    """Daily scan for transactions recorded in an unexpected currency."""
    logger.info("Currency validation task started")
    return run_with_session(_validate_currencies)


__all__ = [
    "process_subscription_cycle_task",
    "run_with_session",
    "validate_transaction_currencies_task",
]
