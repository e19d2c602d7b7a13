"""
Billing database tables.

Users and their billing details, plans with per-region pricing, user
subscriptions, payment transactions, tax configuration and invoices.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from resumeforge.platform.billing.enums import (
    BillingCycle,
    PaymentGateway,
    SubscriptionStatus,
    TargetRegion,
    TransactionStatus,
)
from resumeforge.platform.db import Base, TimestampMixin, UTCDateTime


class UserTable(Base, TimestampMixin):
    """Application user account."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    full_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class UserBillingDetailsTable(Base, TimestampMixin):
    """Billing address of a user; country and state drive region and tax selection."""

    __tablename__ = "user_billing_details"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    full_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    state: Mapped[str | None] = mapped_column(String(100), nullable=True)
    country: Mapped[str] = mapped_column(String(2), nullable=False, default="US")
    postal_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    phone_number: Mapped[str | None] = mapped_column(String(30), nullable=True)
    tax_id: Mapped[str | None] = mapped_column(String(50), nullable=True)


class SubscriptionPlanTable(Base, TimestampMixin):
    """Subscription plan. Prices live in ``plan_pricing`` per target region."""

    __tablename__ = "subscription_plans"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    billing_cycle: Mapped[str] = mapped_column(
        String(20), nullable=False, default=BillingCycle.MONTHLY.value
    )
    is_featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_freemium: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class PlanPricingTable(Base, TimestampMixin):
    """Price of a plan in one target region."""

    __tablename__ = "plan_pricing"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    plan_id: Mapped[int] = mapped_column(
        ForeignKey("subscription_plans.id", ondelete="CASCADE"), nullable=False
    )
    target_region: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TargetRegion.GLOBAL.value
    )
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    price: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)

    __table_args__ = (
        UniqueConstraint("plan_id", "target_region", name="uq_plan_pricing_plan_region"),
    )


class UserSubscriptionTable(Base, TimestampMixin):
    """A user's subscription to a plan.

    ``version`` is the optimistic lock; stale writes raise ``StaleDataError``.
    """

    __tablename__ = "user_subscriptions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    plan_id: Mapped[int] = mapped_column(ForeignKey("subscription_plans.id"), nullable=False)

    start_date: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False, default=lambda: datetime.now(UTC)
    )
    end_date: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=SubscriptionStatus.ACTIVE.value
    )
    auto_renew: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Payment failure handling
    grace_period_end: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    payment_failure_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Scheduled plan change
    pending_plan_change_to: Mapped[int | None] = mapped_column(
        ForeignKey("subscription_plans.id"), nullable=True
    )
    pending_plan_change_date: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    pending_plan_change_type: Mapped[str | None] = mapped_column(String(20), nullable=True)

    # History
    cancel_date: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    upgrade_date: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    previous_plan_id: Mapped[int | None] = mapped_column(
        ForeignKey("subscription_plans.id"), nullable=True
    )

    # Gateway linkage
    payment_gateway: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PaymentGateway.NONE.value
    )
    gateway_subscription_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    metadata_json: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSON, nullable=False, default=dict
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("ix_user_subscriptions_user_status", "user_id", "status"),
        Index("ix_user_subscriptions_status_end", "status", "end_date"),
    )


class PaymentTransactionTable(Base, TimestampMixin):
    """Payment row recorded from a gateway callback."""

    __tablename__ = "payment_transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    subscription_id: Mapped[int | None] = mapped_column(
        ForeignKey("user_subscriptions.id"), nullable=True
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    gateway: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PaymentGateway.RAZORPAY.value
    )
    gateway_transaction_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TransactionStatus.PENDING.value
    )
    refund_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    refund_amount: Mapped[Decimal | None] = mapped_column(Numeric(15, 2), nullable=True)
    metadata_json: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSON, nullable=False, default=dict
    )

    __table_args__ = (
        Index("ix_payment_transactions_user", "user_id"),
        Index("ix_payment_transactions_gateway_txn", "gateway_transaction_id"),
    )


class TaxSettingTable(Base, TimestampMixin):
    """A tax rule; all enabled matching rules are summed."""

    __tablename__ = "tax_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    tax_type: Mapped[str] = mapped_column(String(10), nullable=False)
    percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    country: Mapped[str] = mapped_column(String(2), nullable=False, default="IN")
    state_applicable: Mapped[str | None] = mapped_column(String(100), nullable=True)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    apply_to_region: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TargetRegion.INDIA.value
    )
    apply_currency: Mapped[str] = mapped_column(String(3), nullable=False, default="INR")


class CompanyTaxInfoTable(Base, TimestampMixin):
    """Seller details printed on invoices."""

    __tablename__ = "company_tax_info"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    company_name: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    state: Mapped[str | None] = mapped_column(String(100), nullable=True)
    country: Mapped[str] = mapped_column(String(2), nullable=False, default="IN")
    postal_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    gstin: Mapped[str | None] = mapped_column(String(15), nullable=True)
    pan: Mapped[str | None] = mapped_column(String(10), nullable=True)
    tax_reg_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(30), nullable=True)


class InvoiceSettingsTable(Base, TimestampMixin):
    """Invoice numbering and presentation defaults."""

    __tablename__ = "invoice_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    prefix: Mapped[str] = mapped_column(String(20), nullable=False, default="INV-")
    next_number: Mapped[int] = mapped_column(Integer, nullable=False, default=1000)
    default_due_days: Mapped[int] = mapped_column(Integer, nullable=False, default=15)
    footer_text: Mapped[str | None] = mapped_column(Text, nullable=True)


class InvoiceTable(Base, TimestampMixin):
    """Issued invoice. ``total`` is authoritative once written."""

    __tablename__ = "invoices"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    invoice_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    transaction_id: Mapped[int | None] = mapped_column(
        ForeignKey("payment_transactions.id"), nullable=True, unique=True
    )
    subscription_id: Mapped[int | None] = mapped_column(
        ForeignKey("user_subscriptions.id"), nullable=True
    )
    subscription_plan: Mapped[str | None] = mapped_column(String(255), nullable=True)
    gateway_transaction_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    subtotal: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), nullable=False, default=Decimal("0")
    )
    total: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")

    billing_details: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    company_details: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    tax_details: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    items: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)

    next_payment_date: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    due_date: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_invoices_user", "user_id"),
        Index("ix_invoices_currency", "currency"),
    )
