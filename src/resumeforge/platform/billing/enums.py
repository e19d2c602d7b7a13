"""Enumerations shared across the billing modules."""

from enum import Enum


class SubscriptionStatus(str, Enum):
    """Lifecycle state of a user subscription."""

    ACTIVE = "ACTIVE"
    GRACE_PERIOD = "GRACE_PERIOD"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"


LIVE_STATUSES = (SubscriptionStatus.ACTIVE, SubscriptionStatus.GRACE_PERIOD)


class PlanChangeType(str, Enum):
    """Direction of a scheduled plan change."""

    UPGRADE = "UPGRADE"
    DOWNGRADE = "DOWNGRADE"


class BillingCycle(str, Enum):
    """How often a plan renews."""

    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"


class TargetRegion(str, Enum):
    """Pricing and tax region, independent of the literal country."""

    INDIA = "INDIA"
    GLOBAL = "GLOBAL"


class PaymentGateway(str, Enum):
    """Payment provider that produced a transaction."""

    RAZORPAY = "RAZORPAY"
    NONE = "NONE"


class TransactionStatus(str, Enum):
    """Gateway outcome of a payment transaction."""

    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class InvoiceStatus(str, Enum):
    """Invoice payment state."""

    PAID = "paid"
    PENDING = "pending"
    CANCELLED = "cancelled"


class TaxType(str, Enum):
    """Indian GST components plus the zero-tax marker."""

    GST = "GST"
    CGST = "CGST"
    SGST = "SGST"
    IGST = "IGST"
    NONE = "NONE"
