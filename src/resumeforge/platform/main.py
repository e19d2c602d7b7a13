"""
Main FastAPI application entry point for the ResumeForge platform.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

import structlog
from fastapi import APIRouter, FastAPI
from fastapi.middleware.gzip import GZipMiddleware

from resumeforge.platform.billing.invoicing.router import router as invoicing_router
from resumeforge.platform.billing.ledger.router import router as ledger_router
from resumeforge.platform.billing.middleware import setup_billing_middleware
from resumeforge.platform.billing.subscriptions.router import router as subscriptions_router
from resumeforge.platform.billing.tax.router import router as tax_router
from resumeforge.platform.db import (
    check_database_health,
    create_all_tables_async,
    get_async_engine,
)
from resumeforge.platform.documents.router import router as documents_router
from resumeforge.platform.logging import setup_logging
from resumeforge.platform.settings import settings

API_PREFIX = "/api/v1"
ADMIN_PREFIX = f"{API_PREFIX}/admin"

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifecycle events."""
    logger.info("service.startup.begin", environment=settings.environment.value)

    if settings.is_development and not settings.is_testing:
        await create_all_tables_async()
        logger.info("database.tables.ensured")

    yield

    logger.info("service.shutdown.begin")
    await get_async_engine().dispose()
    logger.info("service.shutdown.complete")


def register_routers(app: FastAPI) -> None:
    """Mount admin billing routers under /api/v1/admin and document routes under /api/v1."""
    admin = APIRouter(prefix=ADMIN_PREFIX)
    admin.include_router(subscriptions_router)
    admin.include_router(ledger_router)
    admin.include_router(tax_router)
    admin.include_router(invoicing_router)
    app.include_router(admin)
    app.include_router(documents_router, prefix=API_PREFIX)


def create_application() -> FastAPI:
    """Create and configure the FastAPI application."""
    setup_logging()

    app = FastAPI(
        title="ResumeForge Platform",
        description="Resume builder backend: billing administration and document previews",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs" if not settings.is_production else None,
        redoc_url="/redoc" if not settings.is_production else None,
    )

    app.add_middleware(GZipMiddleware, minimum_size=1000)
    setup_billing_middleware(app)
    register_routers(app)

    # Health check endpoint (public - no auth required)
    @app.get("/health")
    async def health_check() -> dict[str, Any]:
        """Health check endpoint for monitoring."""
        return {
            "status": "healthy",
            "version": settings.app_version,
            "environment": settings.environment.value,
        }

    @app.get("/health/ready")
    async def readiness_check() -> dict[str, Any]:
        """Readiness check including the database."""
        try:
            database_ok = await check_database_health()
        except Exception as e:
            logger.warning("database.health_check.failed", error=str(e))
            database_ok = False
        return {
            "status": "ready" if database_ok else "not ready",
            "database": database_ok,
            "timestamp": datetime.now(UTC).isoformat(),
        }

    return app


app = create_application()
