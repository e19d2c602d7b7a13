"""
Subscription administration router.

Status changes, gateway reconciliation, cancellation, plan assignment and
scheduled plan changes for the admin dashboard.
"""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, HTTPException, status

from resumeforge.platform.auth.core import UserInfo, require_admin
from resumeforge.platform.billing.dependencies import get_subscription_service
from resumeforge.platform.billing.exceptions import BillingError
from resumeforge.platform.billing.subscriptions.models import (
    AssignPlanRequest,
    CreateSubscriptionRequest,
    PlanChangeRequest,
    StatusChangeRequest,
    SubscriptionResponse,
    SyncResult,
)
from resumeforge.platform.billing.subscriptions.service import SubscriptionService

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Admin - Subscriptions"])


def _internal_error(message: str, **context: object) -> HTTPException:
    logger.error(message, **context)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=message)


# ==================== Subscription Endpoints ====================


@router.get("/subscriptions/{subscription_id}", response_model=SubscriptionResponse)
async def get_subscription(
    subscription_id: int,
    current_user: Annotated[UserInfo, Depends(require_admin)],
    service: Annotated[SubscriptionService, Depends(get_subscription_service)],
) -> SubscriptionResponse:
    """Get a subscription by id."""
    subscription = await service.get_subscription(subscription_id)
    return SubscriptionResponse.model_validate(subscription)


@router.post("/subscriptions/{subscription_id}/status", response_model=SubscriptionResponse)
async def change_subscription_status(
    subscription_id: int,
    request: StatusChangeRequest,
    current_user: Annotated[UserInfo, Depends(require_admin)],
    service: Annotated[SubscriptionService, Depends(get_subscription_service)],
) -> SubscriptionResponse:
    """
    Move a subscription to a new status.

    Only permitted lifecycle edges are accepted; anything else is a 409.
    """
    try:
        subscription = await service.change_status(
            subscription_id, request.status, user_id=current_user.user_id
        )
        return SubscriptionResponse.model_validate(subscription)
    except BillingError:
        raise
    except Exception as e:
        raise _internal_error(
            "Failed to change subscription status", subscription_id=subscription_id, error=str(e)
        )


@router.post("/subscriptions/{subscription_id}/sync", response_model=SyncResult)
async def sync_subscription(
    subscription_id: int,
    current_user: Annotated[UserInfo, Depends(require_admin)],
    service: Annotated[SubscriptionService, Depends(get_subscription_service)],
) -> SyncResult:
    """
    Reconcile a subscription with the payment gateway.

    Gateway failures are reported in the body with ``success=false``.
    """
    return await service.sync_with_gateway(subscription_id)


@router.post("/subscriptions/{subscription_id}/cancel", response_model=SubscriptionResponse)
async def cancel_subscription(
    subscription_id: int,
    current_user: Annotated[UserInfo, Depends(require_admin)],
    service: Annotated[SubscriptionService, Depends(get_subscription_service)],
) -> SubscriptionResponse:
    """Cancel a subscription; access continues until its end date."""
    subscription = await service.cancel(subscription_id, user_id=current_user.user_id)
    return SubscriptionResponse.model_validate(subscription)


# ==================== User Plan Endpoints ====================


@router.get("/users/{user_id}/subscriptions", response_model=list[SubscriptionResponse])
async def list_user_subscriptions(
    user_id: int,
    current_user: Annotated[UserInfo, Depends(require_admin)],
    service: Annotated[SubscriptionService, Depends(get_subscription_service)],
) -> list[SubscriptionResponse]:
    """All subscriptions of a user, newest first."""
    subscriptions = await service.list_user_subscriptions(user_id)
    return [SubscriptionResponse.model_validate(s) for s in subscriptions]


@router.post(
    "/users/{user_id}/subscriptions",
    response_model=SubscriptionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_subscription(
    user_id: int,
    request: CreateSubscriptionRequest,
    current_user: Annotated[UserInfo, Depends(require_admin)],
    service: Annotated[SubscriptionService, Depends(get_subscription_service)],
) -> SubscriptionResponse:
    """Start a subscription for a user; a second live subscription is refused."""
    subscription = await service.create_subscription(
        user_id,
        request.plan_id,
        payment_gateway=request.payment_gateway,
        gateway_subscription_id=request.gateway_subscription_id,
        replace_existing=request.replace_existing,
    )
    return SubscriptionResponse.model_validate(subscription)


@router.post("/users/{user_id}/assign-plan", response_model=SubscriptionResponse)
async def assign_plan(
    user_id: int,
    request: AssignPlanRequest,
    current_user: Annotated[UserInfo, Depends(require_admin)],
    service: Annotated[SubscriptionService, Depends(get_subscription_service)],
) -> SubscriptionResponse:
    """Put a user on a plan immediately, bypassing plan-change scheduling."""
    try:
        subscription = await service.assign_plan(
            user_id, request.plan_id, admin_id=current_user.user_id
        )
        return SubscriptionResponse.model_validate(subscription)
    except BillingError:
        raise
    except Exception as e:
        raise _internal_error(
            "Failed to assign plan", user_id=user_id, plan_id=request.plan_id, error=str(e)
        )


@router.post("/users/{user_id}/plan-change", response_model=SubscriptionResponse)
async def schedule_plan_change(
    user_id: int,
    request: PlanChangeRequest,
    current_user: Annotated[UserInfo, Depends(require_admin)],
    service: Annotated[SubscriptionService, Depends(get_subscription_service)],
) -> SubscriptionResponse:
    """Schedule an upgrade or downgrade for the user's active subscription."""
    subscription = await service.schedule_plan_change(
        user_id, request.plan_id, effective_date=request.effective_date
    )
    return SubscriptionResponse.model_validate(subscription)


@router.delete("/users/{user_id}/plan-change", response_model=SubscriptionResponse)
async def cancel_plan_change(
    user_id: int,
    current_user: Annotated[UserInfo, Depends(require_admin)],
    service: Annotated[SubscriptionService, Depends(get_subscription_service)],
) -> SubscriptionResponse:
    """Drop a pending plan change."""
    subscription = await service.cancel_pending_plan_change(user_id)
    return SubscriptionResponse.model_validate(subscription)
