"""
Shared pytest fixtures.

Service tests run against an in-memory SQLite database; router tests use the
real application with the auth dependency replaced.
"""

import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("TESTING", "true")
os.environ.setdefault("JWT__SECRET_KEY", "test-secret-key-for-jwt-signing")
os.environ.setdefault("OBSERVABILITY__LOG_FORMAT", "text")

from collections.abc import AsyncIterator
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from resumeforge.platform.auth.core import UserInfo, get_current_user
from resumeforge.platform.billing import models  # noqa: F401
from resumeforge.platform.billing.enums import (
    BillingCycle,
    PaymentGateway,
    SubscriptionStatus,
    TargetRegion,
    TransactionStatus,
)
from resumeforge.platform.billing.models import (
    PaymentTransactionTable,
    PlanPricingTable,
    SubscriptionPlanTable,
    UserBillingDetailsTable,
    UserSubscriptionTable,
    UserTable,
)
from resumeforge.platform.db import Base


@pytest_asyncio.fixture
async def async_engine():
    """In-memory SQLite engine shared across connections."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def async_session_maker(async_engine):
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(async_session_maker) -> AsyncIterator[AsyncSession]:
    """Async database session for service tests."""
    async with async_session_maker() as session:
        yield session


# ==================== Row factories ====================


@pytest.fixture
def make_user(db_session: AsyncSession):
    counter = {"n": 0}

    async def _make(
        country: str | None = None, state: str | None = None, **kwargs: Any
    ) -> UserTable:
        counter["n"] += 1
        user = UserTable(
            email=kwargs.pop("email", f"user{counter['n']}@example.com"),
            full_name=kwargs.pop("full_name", f"User {counter['n']}"),
            **kwargs,
        )
        db_session.add(user)
        await db_session.flush()
        if country is not None:
            db_session.add(
                UserBillingDetailsTable(
                    user_id=user.id,
                    full_name=user.full_name,
                    country=country,
                    state=state,
                    city="Bengaluru" if country == "IN" else "Austin",
                )
            )
        await db_session.commit()
        return user

    return _make


@pytest.fixture
def make_plan(db_session: AsyncSession):
    async def _make(
        name: str = "Pro",
        prices: dict[TargetRegion, tuple[str, str]] | None = None,
        billing_cycle: BillingCycle = BillingCycle.MONTHLY,
        is_freemium: bool = False,
        active: bool = True,
    ) -> SubscriptionPlanTable:
        plan = SubscriptionPlanTable(
            name=name,
            billing_cycle=billing_cycle.value,
            is_freemium=is_freemium,
            active=active,
        )
        db_session.add(plan)
        await db_session.flush()
        for region, (price, currency) in (prices or {}).items():
            db_session.add(
                PlanPricingTable(
                    plan_id=plan.id,
                    target_region=region.value,
                    currency=currency,
                    price=Decimal(price),
                )
            )
        await db_session.commit()
        return plan

    return _make


@pytest.fixture
def make_subscription(db_session: AsyncSession):
    async def _make(
        user: UserTable,
        plan: SubscriptionPlanTable,
        status: SubscriptionStatus = SubscriptionStatus.ACTIVE,
        end_date: datetime | None = None,
        **kwargs: Any,
    ) -> UserSubscriptionTable:
        now = datetime.now(UTC)
        subscription = UserSubscriptionTable(
            user_id=user.id,
            plan_id=plan.id,
            start_date=kwargs.pop("start_date", now - timedelta(days=10)),
            end_date=end_date or now + timedelta(days=20),
            status=status.value,
            payment_gateway=kwargs.pop("payment_gateway", PaymentGateway.NONE.value),
            metadata_json=kwargs.pop("metadata_json", {}),
            **kwargs,
        )
        db_session.add(subscription)
        await db_session.commit()
        await db_session.refresh(subscription)
        return subscription

    return _make


@pytest.fixture
def make_transaction(db_session: AsyncSession):
    async def _make(
        user: UserTable,
        amount: str,
        currency: str,
        gateway_transaction_id: str | None = None,
        expected_currency: str | None = None,
        status: TransactionStatus = TransactionStatus.COMPLETED,
        subscription_id: int | None = None,
    ) -> PaymentTransactionTable:
        metadata: dict[str, Any] = {}
        if expected_currency is not None:
            metadata["paymentDetails"] = {
                "expectedCurrency": expected_currency,
                "hasCurrencyMismatch": expected_currency != currency,
            }
        transaction = PaymentTransactionTable(
            user_id=user.id,
            subscription_id=subscription_id,
            amount=Decimal(amount),
            currency=currency,
            gateway=PaymentGateway.RAZORPAY.value,
            gateway_transaction_id=gateway_transaction_id,
            status=status.value,
            metadata_json=metadata,
        )
        db_session.add(transaction)
        await db_session.commit()
        await db_session.refresh(transaction)
        return transaction

    return _make


# ==================== Application ====================


@pytest.fixture
def admin_user() -> UserInfo:
    return UserInfo(
        user_id="1",
        email="admin@example.com",
        username="admin",
        roles=["admin"],
        permissions=[],
    )


@pytest.fixture
def regular_user() -> UserInfo:
    return UserInfo(user_id="2", email="member@example.com", roles=["user"])


@pytest.fixture
def app():
    from resumeforge.platform.main import create_application

    application = create_application()
    yield application
    application.dependency_overrides.clear()


@pytest_asyncio.fixture
async def async_client(app, admin_user) -> AsyncIterator[AsyncClient]:
    """HTTP client authenticated as an admin."""
    app.dependency_overrides[get_current_user] = lambda: admin_user
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


@pytest_asyncio.fixture
async def anonymous_client(app) -> AsyncIterator[AsyncClient]:
    """HTTP client without credentials."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
