from __future__ import annotations

"""Centralized configuration using pydantic-settings.

All configuration is loaded from environment variables and .env files.
This is the single source of truth for all platform configuration.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TEST = "test"


class LogLevel(str, Enum):
    """Log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class Settings(BaseSettings):
    """Main application settings.

    All settings can be overridden via environment variables.
    For nested settings, use double underscore: BILLING__GRACE_PERIOD_DAYS=10
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_nested_delimiter="__",
        extra="ignore",
    )

    # ============================================================
    # Core Application Settings
    # ============================================================

    app_name: str = Field("resumeforge-platform", description="Application name")
    app_version: str = Field("1.0.0", description="Application version")
    environment: Environment = Field(Environment.DEVELOPMENT, description="Deployment environment")
    debug: bool = Field(False, description="Debug mode")
    testing: bool = Field(False, description="Testing mode")

    host: str = Field(
        "0.0.0.0", description="Server host"
    )  # nosec B104 - Production deployments use proxy
    port: int = Field(8000, description="Server port")

    secret_key: str = Field(
        "change-me-in-production", description="Secret key for signing"
    )

    # ============================================================
    # Database Configuration
    # ============================================================

    class DatabaseSettings(BaseModel):
        """Database configuration."""

        url: str | None = Field(None, description="Full database URL")
        host: str = Field("localhost", description="Database host")
        port: int = Field(5432, description="Database port")
        database: str = Field("resumeforge", description="Database name")
        username: str = Field("resumeforge", description="Database username")
        password: str = Field("", description="Database password")

        # Connection pool
        pool_size: int = Field(10, description="Connection pool size")
        max_overflow: int = Field(20, description="Max overflow connections")
        pool_timeout: int = Field(30, description="Pool timeout in seconds")
        pool_recycle: int = Field(3600, description="Recycle connections after seconds")
        pool_pre_ping: bool = Field(True, description="Test connections before use")

        echo: bool = Field(False, description="Echo SQL statements")

        @property
        def sqlalchemy_url(self) -> str:
            """Build SQLAlchemy database URL."""
            if self.url:
                return str(self.url)
            return (
                f"postgresql+asyncpg://{self.username}:{self.password}"
                f"@{self.host}:{self.port}/{self.database}"
            )

    database: DatabaseSettings = DatabaseSettings()  # type: ignore[call-arg]

    # ============================================================
    # JWT & Authentication
    # ============================================================

    class JWTSettings(BaseModel):
        """JWT configuration."""

        secret_key: str = Field("change-me", description="JWT secret key")
        algorithm: str = Field("HS256", description="JWT algorithm")
        access_token_expire_minutes: int = Field(30, description="Access token expiration")
        issuer: str = Field("resumeforge-platform", description="JWT issuer")
        admin_role: str = Field("admin", description="Role granting admin access")

    jwt: JWTSettings = JWTSettings()  # type: ignore[call-arg]

    # ============================================================
    # Celery & Task Queue
    # ============================================================

    class CelerySettings(BaseModel):
        """Celery configuration."""

        broker_url: str = Field("redis://localhost:6379/0", description="Broker URL")
        result_backend: str = Field("redis://localhost:6379/1", description="Result backend")
        task_serializer: str = Field("json", description="Task serializer")
        result_serializer: str = Field("json", description="Result serializer")
        accept_content: list[str] = Field(
            default_factory=lambda: ["json"], description="Accept content types"
        )
        timezone: str = Field("UTC", description="Timezone")
        enable_utc: bool = Field(True, description="Enable UTC")

        task_soft_time_limit: int = Field(1500, description="Soft time limit")
        task_time_limit: int = Field(1800, description="Hard time limit")

    celery: CelerySettings = CelerySettings()  # type: ignore[call-arg]

    # ============================================================
    # Observability
    # ============================================================

    class ObservabilitySettings(BaseModel):
        """Logging configuration."""

        log_level: LogLevel = Field(LogLevel.INFO, description="Log level")
        log_format: str = Field("json", description="Log format (json or text)")
        enable_correlation_ids: bool = Field(True, description="Enable correlation IDs")
        correlation_id_header: str = Field("X-Correlation-ID", description="Correlation ID header")

    observability: ObservabilitySettings = ObservabilitySettings()  # type: ignore[call-arg]

    # ============================================================
    # Billing Configuration
    # ============================================================

    class BillingSettings(BaseModel):
        """Subscription, ledger and tax policy."""

        # Subscription lifecycle
        grace_period_days: int = Field(7, description="Grace period after a failed payment")
        subscription_cycle_hour_utc: int = Field(
            1, description="UTC hour for the daily subscription cycle"
        )
        currency_validation_hour_utc: int = Field(
            1, description="UTC hour for the daily transaction currency validation"
        )

        # Regions and currencies
        india_country_code: str = Field("IN", description="Country code of the INDIA region")
        region_currencies: dict[str, str] = Field(
            default_factory=lambda: {"INDIA": "INR", "GLOBAL": "USD"},
            description="Billing currency per target region",
        )

        # Invoicing
        invoice_prefix: str = Field("INV-", description="Invoice number prefix")
        invoice_start_number: int = Field(1000, description="First invoice sequence number")
        invoice_due_days: int = Field(15, description="Default invoice due period in days")
        invoice_footer: str = Field(
            "Thank you for your business.", description="Default invoice footer"
        )
        invoice_tax_types: list[str] = Field(
            default_factory=lambda: ["GST"],
            description="Tax types applied when generating INR invoices",
        )

    billing: BillingSettings = BillingSettings()  # type: ignore[call-arg]

    # ============================================================
    # Payment Gateway
    # ============================================================

    class GatewaySettings(BaseModel):
        """Payment gateway (Razorpay API) configuration."""

        base_url: str = Field("https://api.razorpay.com/v1", description="Gateway API base URL")
        key_id: str = Field("", description="Gateway key id")
        key_secret: str = Field("", description="Gateway key secret")
        timeout_seconds: float = Field(10.0, description="Gateway request timeout")

    gateway: GatewaySettings = GatewaySettings()  # type: ignore[call-arg]

    # ============================================================
    # Document Preview
    # ============================================================

    class DocumentSettings(BaseModel):
        """Resume and cover letter preview configuration."""

        summary_max_chars: int = Field(300, description="Summary length before truncation")
        min_break_separation_mm: float = Field(
            50.0, description="Minimum distance between estimated page breaks"
        )
        min_break_offset_mm: float = Field(
            50.0, description="Elements closer than this to the top never get a break"
        )
        contact_separator: str = Field("|", description="Separator between contact entries")

    documents: DocumentSettings = DocumentSettings()  # type: ignore[call-arg]

    # ============================================================
    # Validation & Helpers
    # ============================================================

    @field_validator("environment")
    def validate_environment(cls, v: str) -> str:
        """Validate environment."""
        if isinstance(v, str):
            return Environment(v.lower())
        return v

    @field_validator("secret_key")
    def validate_secret_key(cls, v: str, info: Any) -> str:
        """Validate secret key."""
        if (
            v == "change-me-in-production"
            and info.data.get("environment") == Environment.PRODUCTION
        ):
            raise ValueError("Secret key must be changed in production")
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == Environment.PRODUCTION

    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.environment == Environment.DEVELOPMENT

    @property
    def is_testing(self) -> bool:
        """Check if running in test mode."""
        return self.testing or self.environment == Environment.TEST

    def currency_for_region(self, region: str) -> str:
        """Billing currency for a target region (USD when unknown)."""
        return self.billing.region_currencies.get(region.upper(), "USD")


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get global settings instance (singleton)."""
    global _settings
    if _settings is None:
        _settings = Settings()  # type: ignore
    return _settings


def reset_settings() -> None:
    """Reset settings (mainly for testing)."""
    global _settings
    _settings = None


# Convenience export
settings = get_settings()
