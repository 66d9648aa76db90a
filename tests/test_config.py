"""Settings validation tests."""

import pytest
from pydantic import ValidationError

from altsniper.core.config import Settings

DB_URL = "sqlite+aiosqlite:///:memory:"


def test_missing_credentials_fail_fast_outside_tests(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("SHOPIFY_ACCESS_TOKEN", raising=False)

    with pytest.raises(ValidationError) as exc_info:
        Settings(DATABASE_URL=DB_URL, APP_ENV="production")

    message = str(exc_info.value)
    assert "GEMINI_API_KEY" in message
    assert "SHOPIFY_ACCESS_TOKEN" in message


def test_test_environment_skips_credential_check():
    settings = Settings(
        DATABASE_URL=DB_URL, APP_ENV="test", GEMINI_API_KEY="", SHOPIFY_ACCESS_TOKEN=""
    )

    assert settings.write_back_pause_seconds == 2.0
    assert settings.catalog_page_size == 250
    assert settings.failed_job_retry_delay_seconds == 120


def test_cors_origins_list():
    settings = Settings(
        DATABASE_URL=DB_URL,
        APP_ENV="production",
        GEMINI_API_KEY="key",
        SHOPIFY_ACCESS_TOKEN="token",
        CORS_ORIGINS="https://admin.shopify.com, http://localhost:3000",
    )

    assert settings.cors_origins_list == ["https://admin.shopify.com", "http://localhost:3000"]
