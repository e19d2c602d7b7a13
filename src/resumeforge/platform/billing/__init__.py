"""
Billing system module.

Provides billing capabilities including:
- Subscription lifecycle and plan changes
- Payment ledger views and currency repair
- Tax settings, tax calculation and invoices
"""

from resumeforge.platform.billing.exceptions import (
    BillingError,
    ConcurrentModificationError,
    GatewaySyncError,
    InvalidTransitionError,
    InvoiceNotFoundError,
    MissingPlanOrUserError,
    PlanNotFoundError,
    SubscriptionError,
    SubscriptionNotFoundError,
    TaxSettingNotFoundError,
    TransactionNotFoundError,
    UnsupportedCurrencyError,
    UserNotFoundError,
)

__all__ = [
    "BillingError",
    "ConcurrentModificationError",
    "GatewaySyncError",
    "InvalidTransitionError",
    "InvoiceNotFoundError",
    "MissingPlanOrUserError",
    "PlanNotFoundError",
    "SubscriptionError",
    "SubscriptionNotFoundError",
    "TaxSettingNotFoundError",
    "TransactionNotFoundError",
    "UnsupportedCurrencyError",
    "UserNotFoundError",
]
