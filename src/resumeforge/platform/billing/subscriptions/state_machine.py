"""
Subscription lifecycle rules.

    ACTIVE ──payment failure──▶ GRACE_PERIOD ──recovered──▶ ACTIVE
    GRACE_PERIOD ──grace window elapsed──▶ EXPIRED
    ACTIVE | GRACE_PERIOD ──cancel──▶ CANCELLED ──end_date reached──▶ EXPIRED

EXPIRED is terminal; reactivation requires a new subscription. A request for
the current status is not an edge and is rejected.
"""

import calendar
from datetime import datetime, timedelta

from resumeforge.platform.billing.enums import BillingCycle, SubscriptionStatus
from resumeforge.platform.billing.exceptions import InvalidTransitionError
from resumeforge.platform.billing.models import UserSubscriptionTable
from resumeforge.platform.settings import settings

ALLOWED_TRANSITIONS: dict[SubscriptionStatus, frozenset[SubscriptionStatus]] = {
    SubscriptionStatus.ACTIVE: frozenset(
        {SubscriptionStatus.GRACE_PERIOD, SubscriptionStatus.CANCELLED}
    ),
    SubscriptionStatus.GRACE_PERIOD: frozenset(
        {SubscriptionStatus.ACTIVE, SubscriptionStatus.EXPIRED, SubscriptionStatus.CANCELLED}
    ),
    SubscriptionStatus.CANCELLED: frozenset({SubscriptionStatus.EXPIRED}),
    SubscriptionStatus.EXPIRED: frozenset(),
}


def can_transition(current: SubscriptionStatus, target: SubscriptionStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def validate_transition(current: SubscriptionStatus, target: SubscriptionStatus) -> None:
    """Raise InvalidTransitionError unless ``current -> target`` is an allowed edge."""
    if not can_transition(current, target):
        raise InvalidTransitionError(
            f"Cannot change subscription status from {current.value} to {target.value}",
            current_state=current.value,
            requested_state=target.value,
        )


def grace_period_end(now: datetime) -> datetime:
    return now + timedelta(days=settings.billing.grace_period_days)


def add_billing_cycle(start: datetime, cycle: BillingCycle | str) -> datetime:
    """Advance by one calendar month or year, clamping to the month's last day."""
    months = 12 if BillingCycle(cycle) is BillingCycle.YEARLY else 1
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return start.replace(year=year, month=month, day=day)


def clear_pending_change(subscription: UserSubscriptionTable) -> None:
    subscription.pending_plan_change_to = None
    subscription.pending_plan_change_date = None
    subscription.pending_plan_change_type = None


def apply_status(
    subscription: UserSubscriptionTable, target: SubscriptionStatus, now: datetime
) -> SubscriptionStatus:
    """
    Set ``target`` on the subscription with the side effects of entering it.

    No edge validation happens here; gateway reconciliation uses this
    directly because the gateway is authoritative.

    Args:
        subscription: Row to mutate
        target: New status
        now: Current time

    Returns:
        The previous status
    """
    previous = SubscriptionStatus(subscription.status)

    if target is SubscriptionStatus.GRACE_PERIOD:
        # end_date keeps the paid term; only the grace window is added
        subscription.grace_period_end = grace_period_end(now)
    elif target is SubscriptionStatus.ACTIVE:
        if previous is SubscriptionStatus.GRACE_PERIOD:
            subscription.grace_period_end = None
            subscription.payment_failure_count = 0
    elif target is SubscriptionStatus.CANCELLED:
        subscription.cancel_date = now
        subscription.auto_renew = False
        clear_pending_change(subscription)
    elif target is SubscriptionStatus.EXPIRED:
        subscription.auto_renew = False
        clear_pending_change(subscription)

    subscription.status = target.value
    return previous


def transition(
    subscription: UserSubscriptionTable, target: SubscriptionStatus, now: datetime
) -> SubscriptionStatus:
    """Validate and apply a status change. Returns the previous status."""
    validate_transition(SubscriptionStatus(subscription.status), target)
    return apply_status(subscription, target, now)


def has_access(subscription: UserSubscriptionTable, now: datetime) -> bool:
    """Whether the subscription still grants paid features at ``now``."""
    status = SubscriptionStatus(subscription.status)
    if status is SubscriptionStatus.ACTIVE:
        return True
    if status is SubscriptionStatus.GRACE_PERIOD:
        return subscription.grace_period_end is None or subscription.grace_period_end > now
    if status is SubscriptionStatus.CANCELLED:
        return subscription.end_date > now
    return False
