"""
Billing middleware for error handling and audit logging.

Converts billing errors into JSON responses and records admin mutations.
"""

import time
import uuid
from collections.abc import Awaitable, Callable

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from resumeforge.platform.billing.exceptions import BillingError
from resumeforge.platform.settings import settings

logger = structlog.get_logger(__name__)

ADMIN_PATH_PREFIX = "/api/v1/admin/"


class BillingErrorMiddleware(BaseHTTPMiddleware):
    """
    Middleware for handling billing-specific errors with proper logging.

    Features:
    - Converts BillingError exceptions to JSON responses
    - Logs all billing errors with context
    - Adds correlation IDs for request tracing
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        """Process requests with error handling and logging."""
        header = settings.observability.correlation_id_header
        correlation_id = request.headers.get(header, str(uuid.uuid4()))
        request.state.correlation_id = correlation_id
        structlog.contextvars.bind_contextvars(correlation_id=correlation_id)

        context = {
            "method": request.method,
            "path": request.url.path,
            "client_ip": request.client.host if request.client else None,
        }

        start_time = time.time()

        try:
            response = await call_next(request)

            if request.url.path.startswith(ADMIN_PATH_PREFIX):
                logger.info(
                    "Admin request completed",
                    **context,
                    status_code=response.status_code,
                    duration=time.time() - start_time,
                )

            response.headers[header] = correlation_id
            return response

        except BillingError as e:
            logger.error(
                "Billing error occurred",
                **context,
                error_code=e.error_code,
                error_message=e.message,
                error_context=e.context,
                duration=time.time() - start_time,
            )

            return JSONResponse(
                status_code=e.status_code,
                content={
                    "error": e.to_dict(),
                    "correlation_id": correlation_id,
                    "request_path": request.url.path,
                },
                headers={header: correlation_id},
            )

        except Exception as e:
            logger.exception(
                "Unexpected error in request",
                **context,
                error=str(e),
                duration=time.time() - start_time,
            )

            return JSONResponse(
                status_code=500,
                content={
                    "error": {
                        "error_code": "INTERNAL_ERROR",
                        "message": "An unexpected error occurred processing your request",
                        "status_code": 500,
                        "recovery_hint": "Please try again later or contact support if the issue persists",
                    },
                    "correlation_id": correlation_id,
                    "request_path": request.url.path,
                },
                headers={header: correlation_id},
            )
        finally:
            structlog.contextvars.unbind_contextvars("correlation_id")


class BillingAuditMiddleware(BaseHTTPMiddleware):
    """Audit log every mutating admin request."""

    AUDIT_METHODS = {"POST", "PUT", "PATCH", "DELETE"}

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        """Audit log sensitive admin operations."""
        if request.method not in self.AUDIT_METHODS or not request.url.path.startswith(
            ADMIN_PATH_PREFIX
        ):
            return await call_next(request)

        response = await call_next(request)

        logger.info(
            "Admin operation audit log",
            correlation_id=getattr(request.state, "correlation_id", None),
            method=request.method,
            path=request.url.path,
            client_ip=request.client.host if request.client else None,
            response_status=response.status_code,
            operation_type=self._get_operation_type(request.url.path),
        )

        return response

    def _get_operation_type(self, path: str) -> str:
        """Determine the type of admin operation for audit logging."""
        if "/subscriptions/" in path or "assign-plan" in path or "plan-change" in path:
            return "subscription_operation"
        elif "/transactions/" in path:
            return "ledger_operation"
        elif "tax" in path:
            return "tax_operation"
        elif "/invoices/" in path:
            return "invoice_operation"
        else:
            return "admin_operation"


def setup_billing_middleware(app: FastAPI) -> None:
    """
    Configure billing middleware for the FastAPI application.

    Args:
        app: FastAPI application instance
    """
    # Last added is executed first
    app.add_middleware(BillingAuditMiddleware)
    app.add_middleware(BillingErrorMiddleware)

    logger.info("Billing middleware configured")
