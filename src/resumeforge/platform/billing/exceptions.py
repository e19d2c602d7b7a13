"""
Billing system exceptions.

Every billing failure carries an HTTP status code, a machine-readable error
code, context data and a recovery hint so routers and the error middleware
can report it without further translation.
"""

from typing import Any


class BillingError(Exception):
    """
    Base billing system error with enhanced context.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code for API responses
        status_code: HTTP status code for this error type
        context: Additional context data about the error
        recovery_hint: Suggested action to resolve the error
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        status_code: int = 400,
        context: dict[str, Any] | None = None,
        recovery_hint: str | None = None,
    ):
        self.message = message
        self.error_code = error_code or "BILLING_ERROR"
        self.status_code = status_code
        self.context = context or {}
        self.recovery_hint = recovery_hint
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for API responses."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "status_code": self.status_code,
            "context": self.context,
            "recovery_hint": self.recovery_hint,
        }


class SubscriptionError(BillingError):
    """Subscription-related errors."""

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        recovery_hint: str | None = None,
    ):
        super().__init__(
            message,
            "SUBSCRIPTION_ERROR",
            status_code=400,
            context=context,
            recovery_hint=recovery_hint,
        )


class SubscriptionNotFoundError(SubscriptionError):
    """Subscription not found error."""

    def __init__(
        self, message: str, subscription_id: int | None = None, user_id: str | None = None
    ):
        context: dict[str, Any] = {}
        if subscription_id is not None:
            context["subscription_id"] = subscription_id
        if user_id:
            context["user_id"] = user_id

        super().__init__(
            message,
            context=context,
            recovery_hint="Verify the subscription ID and ensure it exists",
        )
        self.error_code = "SUBSCRIPTION_NOT_FOUND"
        self.status_code = 404


class InvalidTransitionError(SubscriptionError):
    """Requested status change is not a permitted edge of the lifecycle."""

    def __init__(self, message: str, current_state: str, requested_state: str) -> None:
        super().__init__(
            message,
            context={"current_state": current_state, "requested_state": requested_state},
            recovery_hint=(
                f"Cannot transition from {current_state} to {requested_state}. "
                "Expired subscriptions require a new subscription."
            ),
        )
        self.error_code = "INVALID_TRANSITION"
        self.status_code = 409


class ConcurrentModificationError(SubscriptionError):
    """Subscription row changed between read and write."""

    def __init__(self, message: str, subscription_id: int | None = None) -> None:
        context: dict[str, Any] = {}
        if subscription_id is not None:
            context["subscription_id"] = subscription_id

        super().__init__(
            message,
            context=context,
            recovery_hint="Reload the subscription and retry the change",
        )
        self.error_code = "CONCURRENT_MODIFICATION"
        self.status_code = 409


class MissingPlanOrUserError(SubscriptionError):
    """Plan assignment or plan change referenced an unknown plan or user."""

    def __init__(
        self,
        message: str,
        plan_id: int | None = None,
        user_id: str | None = None,
        recovery_hint: str | None = None,
    ) -> None:
        context: dict[str, Any] = {}
        if plan_id is not None:
            context["plan_id"] = plan_id
        if user_id:
            context["user_id"] = user_id

        super().__init__(
            message,
            context=context,
            recovery_hint=recovery_hint or "Verify the plan and user IDs",
        )
        self.error_code = "PLAN_OR_USER_NOT_FOUND"
        self.status_code = 404


class PlanNotFoundError(MissingPlanOrUserError):
    """Subscription plan not found error."""

    def __init__(self, message: str, plan_id: int | None = None) -> None:
        super().__init__(
            message,
            plan_id=plan_id,
            recovery_hint="Verify the plan ID and ensure it exists and is active",
        )


class UserNotFoundError(MissingPlanOrUserError):
    """User not found error."""

    def __init__(self, message: str, user_id: str | None = None) -> None:
        super().__init__(
            message,
            user_id=user_id,
            recovery_hint="Verify the user ID and ensure the account exists",
        )


class GatewaySyncError(BillingError):
    """Payment gateway call failed or returned an error."""

    def __init__(
        self,
        message: str,
        gateway_subscription_id: str | None = None,
        gateway_status_code: int | None = None,
    ) -> None:
        context: dict[str, Any] = {}
        if gateway_subscription_id:
            context["gateway_subscription_id"] = gateway_subscription_id
        if gateway_status_code is not None:
            context["gateway_status_code"] = gateway_status_code

        super().__init__(
            message,
            "GATEWAY_SYNC_FAILED",
            status_code=502,
            context=context,
            recovery_hint="Check gateway credentials and retry the sync manually",
        )


class PaymentError(BillingError):
    """Payment transaction errors."""

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        recovery_hint: str | None = None,
    ):
        super().__init__(
            message, "PAYMENT_ERROR", status_code=400, context=context, recovery_hint=recovery_hint
        )


class TransactionNotFoundError(PaymentError):
    """Payment transaction not found error."""

    def __init__(self, message: str, transaction_id: int | None = None) -> None:
        context: dict[str, Any] = {}
        if transaction_id is not None:
            context["transaction_id"] = transaction_id

        super().__init__(
            message,
            context=context,
            recovery_hint="Verify the transaction ID and ensure it exists",
        )
        self.error_code = "TRANSACTION_NOT_FOUND"
        self.status_code = 404


class UnsupportedCurrencyError(PaymentError):
    """Currency code is not a known ISO 4217 code."""

    def __init__(self, message: str, currency: str) -> None:
        super().__init__(
            message,
            context={"currency": currency},
            recovery_hint="Use a three-letter ISO 4217 currency code such as INR or USD",
        )
        self.error_code = "UNSUPPORTED_CURRENCY"


class TaxError(BillingError):
    """Tax configuration errors."""

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        recovery_hint: str | None = None,
    ):
        super().__init__(
            message, "TAX_ERROR", status_code=400, context=context, recovery_hint=recovery_hint
        )


class TaxSettingNotFoundError(TaxError):
    """Tax setting not found error."""

    def __init__(self, message: str, tax_setting_id: int | None = None) -> None:
        context: dict[str, Any] = {}
        if tax_setting_id is not None:
            context["tax_setting_id"] = tax_setting_id

        super().__init__(
            message, context=context, recovery_hint="Verify the tax setting ID and ensure it exists"
        )
        self.error_code = "TAX_SETTING_NOT_FOUND"
        self.status_code = 404


class InvoiceError(BillingError):
    """Invoice-related errors."""

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        recovery_hint: str | None = None,
    ):
        super().__init__(
            message, "INVOICE_ERROR", status_code=400, context=context, recovery_hint=recovery_hint
        )


class InvoiceNotFoundError(InvoiceError):
    """Invoice not found error."""

    def __init__(self, message: str, invoice_id: int | None = None) -> None:
        context: dict[str, Any] = {}
        if invoice_id is not None:
            context["invoice_id"] = invoice_id

        super().__init__(
            message, context=context, recovery_hint="Verify the invoice ID and ensure it exists"
        )
        self.error_code = "INVOICE_NOT_FOUND"
        self.status_code = 404
