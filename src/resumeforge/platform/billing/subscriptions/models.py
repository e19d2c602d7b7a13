"""
Pydantic schemas for subscriptions.

Request bodies used by the admin UI accept camelCase (``planId``) as well as
snake_case field names.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from resumeforge.platform.billing.enums import PaymentGateway, PlanChangeType, SubscriptionStatus
from resumeforge.platform.billing.schemas import BatchResult


class CamelModel(BaseModel):
    """Base for payloads exchanged with the admin UI."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SubscriptionResponse(BaseModel):
    """Stored subscription."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    plan_id: int
    start_date: datetime
    end_date: datetime
    status: SubscriptionStatus
    auto_renew: bool
    grace_period_end: datetime | None = None
    payment_failure_count: int = 0
    pending_plan_change_to: int | None = None
    pending_plan_change_date: datetime | None = None
    pending_plan_change_type: PlanChangeType | None = None
    cancel_date: datetime | None = None
    previous_plan_id: int | None = None
    payment_gateway: str
    gateway_subscription_id: str | None = None
    version: int


class StatusChangeRequest(CamelModel):
    """Body of ``POST /subscriptions/{id}/status``."""

    status: SubscriptionStatus


class AssignPlanRequest(CamelModel):
    """Body of ``POST /users/{id}/assign-plan``."""

    plan_id: int = Field(gt=0)


class PlanChangeRequest(CamelModel):
    """Body of ``POST /users/{id}/plan-change``."""

    plan_id: int = Field(gt=0)
    effective_date: datetime | None = None


class CreateSubscriptionRequest(CamelModel):
    """Checkout-time subscription creation."""

    plan_id: int = Field(gt=0)
    payment_gateway: PaymentGateway = PaymentGateway.NONE
    gateway_subscription_id: str | None = None
    replace_existing: bool = False


class SyncResult(CamelModel):
    """Outcome of reconciling a subscription with the payment gateway."""

    success: bool
    message: str
    gateway_status: str | None = None
    previous_status: SubscriptionStatus | None = None
    local_status: SubscriptionStatus | None = None
    changed: bool = False


class SubscriptionCycleResult(BaseModel):
    """Counts from one run of the daily subscription job."""

    scheduled_changes: BatchResult = Field(default_factory=BatchResult)
    renewals: BatchResult = Field(default_factory=BatchResult)
    grace_started: BatchResult = Field(default_factory=BatchResult)
    grace_expired: BatchResult = Field(default_factory=BatchResult)
    cancellations_expired: BatchResult = Field(default_factory=BatchResult)

    @property
    def failed(self) -> int:
        return sum(
            step.failed
            for step in (
                self.scheduled_changes,
                self.renewals,
                self.grace_started,
                self.grace_expired,
                self.cancellations_expired,
            )
        )
