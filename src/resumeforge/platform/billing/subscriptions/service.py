"""
Subscription lifecycle service.

Owns status changes, gateway reconciliation, administrative plan assignment,
scheduled plan changes and the daily subscription cycle.
"""

from datetime import UTC, datetime

import structlog
from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from resumeforge.platform.billing.enums import (
    LIVE_STATUSES,
    PaymentGateway,
    PlanChangeType,
    SubscriptionStatus,
)
from resumeforge.platform.billing.exceptions import (
    ConcurrentModificationError,
    GatewaySyncError,
    PlanNotFoundError,
    SubscriptionError,
    SubscriptionNotFoundError,
    UserNotFoundError,
)
from resumeforge.platform.billing.models import (
    SubscriptionPlanTable,
    UserSubscriptionTable,
    UserTable,
)
from resumeforge.platform.billing.pricing import get_plan_price, get_user_region
from resumeforge.platform.billing.schemas import BatchResult
from resumeforge.platform.billing.subscriptions.gateway import (
    PaymentGatewayClient,
    map_gateway_status,
)
from resumeforge.platform.billing.subscriptions.models import (
    SubscriptionCycleResult,
    SyncResult,
)
from resumeforge.platform.billing.subscriptions.state_machine import (
    add_billing_cycle,
    apply_status,
    clear_pending_change,
    transition,
)
from resumeforge.platform.logging import log_audit_event

logger = structlog.get_logger(__name__)


class SubscriptionService:
    """
    Service for the subscription lifecycle.

    Handles:
    - Validated status changes (grace period entry and recovery, cancellation)
    - Reconciliation with the payment gateway
    - Administrative plan assignment and scheduled plan changes
    - The daily cycle: scheduled changes, renewals, grace and expiry
    """

    def __init__(self, db: AsyncSession, gateway: PaymentGatewayClient | None = None):
        self.db = db
        self.gateway = gateway

    @staticmethod
    def _now() -> datetime:
        return datetime.now(UTC)

    # ==================== Lookups ====================

    async def get_subscription(self, subscription_id: int) -> UserSubscriptionTable:
        subscription = await self.db.get(UserSubscriptionTable, subscription_id)
        if subscription is None:
            raise SubscriptionNotFoundError(
                f"Subscription {subscription_id} not found", subscription_id=subscription_id
            )
        return subscription

    async def get_live_subscription(self, user_id: int) -> UserSubscriptionTable | None:
        """The user's single ACTIVE or GRACE_PERIOD subscription, if any."""
        stmt = (
            select(UserSubscriptionTable)
            .where(
                and_(
                    UserSubscriptionTable.user_id == user_id,
                    UserSubscriptionTable.status.in_([s.value for s in LIVE_STATUSES]),
                )
            )
            .order_by(UserSubscriptionTable.id.desc())
        )
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def list_user_subscriptions(self, user_id: int) -> list[UserSubscriptionTable]:
        """All subscriptions of a user, newest first, history included."""
        result = await self.db.execute(
            select(UserSubscriptionTable)
            .where(UserSubscriptionTable.user_id == user_id)
            .order_by(UserSubscriptionTable.id.desc())
        )
        return list(result.scalars().all())

    async def _get_user(self, user_id: int) -> UserTable:
        user = await self.db.get(UserTable, user_id)
        if user is None:
            raise UserNotFoundError(f"User {user_id} not found", user_id=str(user_id))
        return user

    async def _get_plan(self, plan_id: int, require_active: bool = False) -> SubscriptionPlanTable:
        plan = await self.db.get(SubscriptionPlanTable, plan_id)
        if plan is None or (require_active and not plan.active):
            raise PlanNotFoundError(f"Subscription plan {plan_id} not found", plan_id=plan_id)
        return plan

    async def _commit(self, subscription: UserSubscriptionTable) -> None:
        """Commit, translating an optimistic version conflict."""
        subscription_id = subscription.id
        try:
            await self.db.commit()
        except StaleDataError as e:
            await self.db.rollback()
            logger.warning(
                "Concurrent subscription modification detected", subscription_id=subscription_id
            )
            raise ConcurrentModificationError(
                f"Subscription {subscription_id} was modified concurrently",
                subscription_id=subscription_id,
            ) from e
        await self.db.refresh(subscription)

    # ==================== Status Changes ====================

    async def change_status(
        self,
        subscription_id: int,
        target: SubscriptionStatus,
        user_id: str | None = None,
    ) -> UserSubscriptionTable:
        """
        Move a subscription along an allowed lifecycle edge.

        Entering GRACE_PERIOD sets ``grace_period_end`` to now plus the grace
        window and leaves ``end_date`` untouched; recovering to ACTIVE clears
        the grace window and the failure count.

        Args:
            subscription_id: Subscription to change
            target: Requested status
            user_id: Acting user, for the audit log

        Returns:
            Updated subscription

        Raises:
            InvalidTransitionError: If ``target`` is not reachable from the current status
            ConcurrentModificationError: If the row changed underneath us
        """
        subscription = await self.get_subscription(subscription_id)
        previous = transition(subscription, SubscriptionStatus(target), self._now())
        await self._commit(subscription)

        logger.info(
            "Subscription status changed",
            subscription_id=subscription_id,
            previous_status=previous.value,
            new_status=subscription.status,
        )
        log_audit_event(
            "subscription.status_changed",
            "billing",
            user_id=user_id,
            resource_type="user_subscription",
            resource_id=subscription_id,
            previous_status=previous.value,
            new_status=subscription.status,
        )
        return subscription

    async def cancel(
        self, subscription_id: int, user_id: str | None = None
    ) -> UserSubscriptionTable:
        """Cancel a subscription; access continues until its ``end_date``."""
        return await self.change_status(subscription_id, SubscriptionStatus.CANCELLED, user_id)

    async def record_payment_failure(self, subscription_id: int) -> UserSubscriptionTable:
        """Count a failed renewal payment; an ACTIVE subscription enters its grace period."""
        subscription = await self.get_subscription(subscription_id)
        subscription.payment_failure_count += 1

        if subscription.status == SubscriptionStatus.ACTIVE.value:
            transition(subscription, SubscriptionStatus.GRACE_PERIOD, self._now())

        await self._commit(subscription)
        logger.info(
            "Subscription payment failure recorded",
            subscription_id=subscription_id,
            payment_failure_count=subscription.payment_failure_count,
            status=subscription.status,
        )
        return subscription

    async def record_payment_recovered(self, subscription_id: int) -> UserSubscriptionTable:
        """Payment succeeded during the grace period."""
        return await self.change_status(subscription_id, SubscriptionStatus.ACTIVE)

    # ==================== Gateway Reconciliation ====================

    async def sync_with_gateway(self, subscription_id: int) -> SyncResult:
        """
        Reconcile local status with the payment gateway.

        The gateway is authoritative: a divergent local status is overwritten
        without edge validation. Gateway failures are reported in the result
        and leave the subscription untouched.

        Args:
            subscription_id: Subscription to reconcile

        Returns:
            SyncResult with the gateway status and whether anything changed
        """
        subscription = await self.get_subscription(subscription_id)
        local_status = SubscriptionStatus(subscription.status)

        if not subscription.gateway_subscription_id:
            return SyncResult(
                success=False,
                message="Subscription has no payment gateway reference",
                local_status=local_status,
            )
        if self.gateway is None:
            return SyncResult(
                success=False,
                message="No payment gateway client configured",
                local_status=local_status,
            )

        try:
            remote = await self.gateway.fetch_subscription(subscription.gateway_subscription_id)
        except GatewaySyncError as e:
            logger.warning(
                "Gateway sync failed",
                subscription_id=subscription_id,
                error=e.message,
                error_context=e.context,
            )
            return SyncResult(success=False, message=e.message, local_status=local_status)

        mapped = map_gateway_status(remote.status)
        if mapped is None:
            return SyncResult(
                success=True,
                message=f"Gateway status '{remote.status}' has no local equivalent",
                gateway_status=remote.status,
                local_status=local_status,
            )
        if mapped is local_status:
            return SyncResult(
                success=True,
                message="Subscription already in sync with the gateway",
                gateway_status=remote.status,
                local_status=local_status,
            )

        # One live subscription per user; the gateway cannot revive a second
        if mapped in LIVE_STATUSES and local_status not in LIVE_STATUSES:
            live = await self.get_live_subscription(subscription.user_id)
            if live is not None and live.id != subscription.id:
                logger.warning(
                    "Gateway sync would create a second live subscription",
                    subscription_id=subscription_id,
                    live_subscription_id=live.id,
                    gateway_status=remote.status,
                )
                return SyncResult(
                    success=False,
                    message=(
                        f"User already has live subscription {live.id}; "
                        f"gateway status '{remote.status}' not applied"
                    ),
                    gateway_status=remote.status,
                    local_status=local_status,
                )

        apply_status(subscription, mapped, self._now())
        if remote.current_end is not None and mapped is SubscriptionStatus.ACTIVE:
            subscription.end_date = remote.current_end
        await self._commit(subscription)

        logger.info(
            "Subscription reconciled with gateway",
            subscription_id=subscription_id,
            gateway_status=remote.status,
            previous_status=local_status.value,
            new_status=mapped.value,
        )
        log_audit_event(
            "subscription.gateway_synced",
            "billing",
            resource_type="user_subscription",
            resource_id=subscription_id,
            previous_status=local_status.value,
            new_status=mapped.value,
        )
        return SyncResult(
            success=True,
            message=f"Subscription status updated from {local_status.value} to {mapped.value}",
            gateway_status=remote.status,
            previous_status=local_status,
            local_status=mapped,
            changed=True,
        )

    # ==================== Plans ====================

    async def create_subscription(
        self,
        user_id: int,
        plan_id: int,
        payment_gateway: PaymentGateway | str = PaymentGateway.NONE,
        gateway_subscription_id: str | None = None,
        replace_existing: bool = False,
    ) -> UserSubscriptionTable:
        """
        Create an ACTIVE subscription at checkout.

        A user may hold only one live subscription; with ``replace_existing``
        the current one is cancelled first.

        Raises:
            MissingPlanOrUserError: Unknown user or inactive plan
            SubscriptionError: The user already has a live subscription
        """
        await self._get_user(user_id)
        plan = await self._get_plan(plan_id, require_active=True)

        current = await self.get_live_subscription(user_id)
        if current is not None:
            if not replace_existing:
                raise SubscriptionError(
                    f"User {user_id} already has a live subscription",
                    context={"user_id": user_id, "subscription_id": current.id},
                    recovery_hint="Cancel the current subscription or use a plan change",
                )
            transition(current, SubscriptionStatus.CANCELLED, self._now())

        now = self._now()
        subscription = UserSubscriptionTable(
            user_id=user_id,
            plan_id=plan.id,
            start_date=now,
            end_date=add_billing_cycle(now, plan.billing_cycle),
            status=SubscriptionStatus.ACTIVE.value,
            auto_renew=True,
            payment_gateway=PaymentGateway(payment_gateway).value,
            gateway_subscription_id=gateway_subscription_id,
            metadata_json={},
        )
        self.db.add(subscription)
        await self._commit(subscription)

        logger.info(
            "Subscription created",
            subscription_id=subscription.id,
            user_id=user_id,
            plan_id=plan_id,
        )
        return subscription

    async def assign_plan(
        self, user_id: int, plan_id: int, admin_id: str | None = None
    ) -> UserSubscriptionTable:
        """
        Administratively put a user on a plan, bypassing plan-change scheduling.

        The live subscription's plan is overwritten in place and any pending
        change is dropped; a user without a live subscription gets a new
        ACTIVE one.

        Args:
            user_id: Target user
            plan_id: Plan to assign
            admin_id: Acting admin, for the audit log

        Returns:
            The updated or created subscription

        Raises:
            MissingPlanOrUserError: Unknown user or plan; nothing is changed
        """
        await self._get_user(user_id)
        plan = await self._get_plan(plan_id)

        subscription = await self.get_live_subscription(user_id)
        if subscription is None:
            now = self._now()
            subscription = UserSubscriptionTable(
                user_id=user_id,
                plan_id=plan.id,
                start_date=now,
                end_date=add_billing_cycle(now, plan.billing_cycle),
                status=SubscriptionStatus.ACTIVE.value,
                auto_renew=True,
                payment_gateway=PaymentGateway.NONE.value,
                metadata_json={"assignedBy": admin_id},
            )
            self.db.add(subscription)
            previous_plan_id = None
        else:
            previous_plan_id = subscription.plan_id
            if previous_plan_id != plan.id:
                subscription.previous_plan_id = previous_plan_id
                subscription.plan_id = plan.id
            clear_pending_change(subscription)
            subscription.metadata_json = {
                **(subscription.metadata_json or {}),
                "assignedBy": admin_id,
            }

        await self._commit(subscription)

        logger.info(
            "Plan assigned by admin",
            user_id=user_id,
            plan_id=plan_id,
            previous_plan_id=previous_plan_id,
            subscription_id=subscription.id,
        )
        log_audit_event(
            "subscription.plan_assigned",
            "billing",
            user_id=admin_id,
            resource_type="user_subscription",
            resource_id=subscription.id,
            target_user_id=user_id,
            plan_id=plan_id,
            previous_plan_id=previous_plan_id,
        )
        return subscription

    async def schedule_plan_change(
        self,
        user_id: int,
        new_plan_id: int,
        effective_date: datetime | None = None,
    ) -> UserSubscriptionTable:
        """
        Schedule a plan change on the user's ACTIVE subscription.

        The status does not change. The change type is UPGRADE when the new
        plan costs more in the user's region, DOWNGRADE otherwise; it takes
        effect at ``effective_date`` (default: the current ``end_date``).

        Raises:
            MissingPlanOrUserError: Unknown user or inactive plan
            SubscriptionNotFoundError: No ACTIVE subscription to change
        """
        await self._get_user(user_id)
        await self._get_plan(new_plan_id, require_active=True)

        subscription = await self.get_live_subscription(user_id)
        if subscription is None or subscription.status != SubscriptionStatus.ACTIVE.value:
            raise SubscriptionNotFoundError(
                f"User {user_id} has no active subscription to change", user_id=str(user_id)
            )
        if subscription.plan_id == new_plan_id:
            raise SubscriptionError(
                f"User {user_id} is already on plan {new_plan_id}",
                context={"user_id": user_id, "plan_id": new_plan_id},
            )

        region = await get_user_region(self.db, user_id)
        current_price = await get_plan_price(self.db, subscription.plan_id, region)
        new_price = await get_plan_price(self.db, new_plan_id, region)
        change_type = (
            PlanChangeType.UPGRADE if new_price > current_price else PlanChangeType.DOWNGRADE
        )

        subscription.pending_plan_change_to = new_plan_id
        subscription.pending_plan_change_type = change_type.value
        subscription.pending_plan_change_date = effective_date or subscription.end_date
        await self._commit(subscription)

        logger.info(
            "Plan change scheduled",
            subscription_id=subscription.id,
            user_id=user_id,
            new_plan_id=new_plan_id,
            change_type=change_type.value,
            effective_date=subscription.pending_plan_change_date.isoformat(),
        )
        return subscription

    async def cancel_pending_plan_change(self, user_id: int) -> UserSubscriptionTable:
        subscription = await self.get_live_subscription(user_id)
        if subscription is None:
            raise SubscriptionNotFoundError(
                f"User {user_id} has no live subscription", user_id=str(user_id)
            )
        clear_pending_change(subscription)
        await self._commit(subscription)
        logger.info("Pending plan change cancelled", subscription_id=subscription.id)
        return subscription

    # ==================== Daily Cycle ====================

    async def _ids(self, *conditions) -> list[int]:
        result = await self.db.execute(
            select(UserSubscriptionTable.id)
            .where(and_(*conditions))
            .order_by(UserSubscriptionTable.id)
        )
        return list(result.scalars().all())

    async def _run_batch(self, step: str, ids: list[int], action) -> BatchResult:
        """Apply ``action`` to each subscription independently, counting failures."""
        result = BatchResult(total=len(ids))
        for subscription_id in ids:
            try:
                subscription = await self.get_subscription(subscription_id)
                changed = await action(subscription)
                if changed:
                    await self._commit(subscription)
                    result.succeeded += 1
                else:
                    result.skipped += 1
            except Exception as e:
                await self.db.rollback()
                logger.exception(
                    "Subscription cycle step failed",
                    step=step,
                    subscription_id=subscription_id,
                    error=str(e),
                )
                result.record_failure(f"{step} subscription {subscription_id}: {e}")
        return result

    async def apply_scheduled_changes(self, now: datetime | None = None) -> BatchResult:
        """Swap plans for every pending change whose date has arrived."""
        now = now or self._now()
        ids = await self._ids(
            UserSubscriptionTable.pending_plan_change_to.is_not(None),
            UserSubscriptionTable.pending_plan_change_date <= now,
            UserSubscriptionTable.status.in_([s.value for s in LIVE_STATUSES]),
        )

        async def apply_change(subscription: UserSubscriptionTable) -> bool:
            new_plan_id = subscription.pending_plan_change_to
            if new_plan_id is None:
                return False
            await self._get_plan(new_plan_id)
            subscription.previous_plan_id = subscription.plan_id
            subscription.plan_id = new_plan_id
            if subscription.pending_plan_change_type == PlanChangeType.UPGRADE.value:
                subscription.upgrade_date = now
            clear_pending_change(subscription)
            logger.info(
                "Scheduled plan change applied",
                subscription_id=subscription.id,
                previous_plan_id=subscription.previous_plan_id,
                new_plan_id=new_plan_id,
            )
            return True

        return await self._run_batch("scheduled_change", ids, apply_change)

    async def process_subscription_cycle(
        self, now: datetime | None = None
    ) -> SubscriptionCycleResult:
        """
        Run the daily subscription job.

        Steps, each a loop of independent updates:
        1. apply due scheduled plan changes
        2. renew free plans past ``end_date`` that auto-renew without a gateway
        3. move remaining ACTIVE subscriptions past ``end_date`` into the grace period
        4. expire GRACE_PERIOD subscriptions past ``grace_period_end``
        5. expire CANCELLED subscriptions past ``end_date``

        Args:
            now: Reference time, defaults to the current time

        Returns:
            Per-step counts
        """
        now = now or self._now()
        result = SubscriptionCycleResult()

        result.scheduled_changes = await self.apply_scheduled_changes(now)

        async def renew(subscription: UserSubscriptionTable) -> bool:
            plan = await self._get_plan(subscription.plan_id)
            if not plan.is_freemium:
                return False
            subscription.start_date = subscription.end_date
            while subscription.end_date <= now:
                subscription.end_date = add_billing_cycle(subscription.end_date, plan.billing_cycle)
            return True

        result.renewals = await self._run_batch(
            "renewal",
            await self._ids(
                UserSubscriptionTable.status == SubscriptionStatus.ACTIVE.value,
                UserSubscriptionTable.auto_renew.is_(True),
                UserSubscriptionTable.payment_gateway == PaymentGateway.NONE.value,
                UserSubscriptionTable.end_date <= now,
            ),
            renew,
        )

        async def start_grace(subscription: UserSubscriptionTable) -> bool:
            transition(subscription, SubscriptionStatus.GRACE_PERIOD, now)
            subscription.payment_failure_count = (subscription.payment_failure_count or 0) + 1
            return True

        result.grace_started = await self._run_batch(
            "grace_start",
            await self._ids(
                UserSubscriptionTable.status == SubscriptionStatus.ACTIVE.value,
                UserSubscriptionTable.end_date < now,
            ),
            start_grace,
        )

        async def expire(subscription: UserSubscriptionTable) -> bool:
            transition(subscription, SubscriptionStatus.EXPIRED, now)
            return True

        result.grace_expired = await self._run_batch(
            "grace_expiry",
            await self._ids(
                UserSubscriptionTable.status == SubscriptionStatus.GRACE_PERIOD.value,
                UserSubscriptionTable.grace_period_end.is_not(None),
                UserSubscriptionTable.grace_period_end < now,
            ),
            expire,
        )
        result.cancellations_expired = await self._run_batch(
            "cancellation_expiry",
            await self._ids(
                UserSubscriptionTable.status == SubscriptionStatus.CANCELLED.value,
                UserSubscriptionTable.end_date < now,
            ),
            expire,
        )

        logger.info(
            "Subscription cycle completed",
            scheduled_changes=result.scheduled_changes.succeeded,
            renewals=result.renewals.succeeded,
            grace_started=result.grace_started.succeeded,
            grace_expired=result.grace_expired.succeeded,
            cancellations_expired=result.cancellations_expired.succeeded,
            failed=result.failed,
        )
        return result
