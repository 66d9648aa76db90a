"""Application configuration using Pydantic BaseSettings."""

import logging

import structlog
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = Field(alias="DATABASE_URL")
    db_pool_size: int = Field(default=20, alias="DB_POOL_SIZE")

    # Application Environment
    app_env: str = Field(default="development", alias="APP_ENV")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # CORS Configuration (embedded admin UI origin)
    cors_origins: str = Field(default="https://admin.shopify.com", alias="CORS_ORIGINS")

    # Gemini captioning
    gemini_api_key: str = Field(default="", alias="GEMINI_API_KEY")
    gemini_model: str = Field(default="gemini-2.0-flash", alias="GEMINI_MODEL")

    # Shopify Admin API
    shopify_access_token: str = Field(default="", alias="SHOPIFY_ACCESS_TOKEN")
    shopify_api_version: str = Field(default="2025-01", alias="SHOPIFY_API_VERSION")
    catalog_page_size: int = Field(default=250, ge=1, le=250, alias="CATALOG_PAGE_SIZE")

    # Pipeline pacing
    write_back_pause_seconds: float = Field(default=2.0, ge=0, alias="WRITE_BACK_PAUSE_SECONDS")
    failed_job_retry_delay_seconds: int = Field(
        default=120, ge=0, alias="FAILED_JOB_RETRY_DELAY_SECONDS"
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @model_validator(mode="after")
    def validate_required_config(self) -> "Settings":
        """Fail fast when credentials for external services are missing.

        Validation is skipped in test environments.
        """
        if self.app_env in ("test", "testing"):
            return self

        missing = []

        if not self.gemini_api_key:
            missing.append("GEMINI_API_KEY: Create a key at https://aistudio.google.com/apikey")

        if not self.shopify_access_token:
            missing.append(
                "SHOPIFY_ACCESS_TOKEN: Admin API access token with write_products scope"
            )

        if missing:
            error_msg = "CRITICAL: Missing required environment variables:\n\n" + "\n".join(
                f"  - {m}" for m in missing
            )
            error_msg += "\n\nThe application cannot start without these variables."
            raise ValueError(error_msg)

        return self


def configure_logging(settings: Settings) -> None:
    """Configure structlog based on application environment.

    - Production: JSON output for log aggregation
    - Development: Console output for human readability
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    if settings.app_env == "production":
        renderer = [
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        renderer = [structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            *renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
