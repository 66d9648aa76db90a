"""Backoff delay and retryable-error classification tests."""

import httpx
import pytest

from altsniper.services.exceptions import RateLimitExceededError, ShopifyAPIError
from altsniper.services.retry_policy import (
    calculate_backoff_delay,
    is_rate_limit_error,
    is_retryable_error,
)


@pytest.mark.parametrize(
    "attempt,expected",
    [(0, 2000), (1, 4000), (2, 8000), (7, 256_000), (8, 300_000), (20, 300_000)],
)
def test_backoff_delay_doubles_up_to_ceiling(attempt, expected):
    assert calculate_backoff_delay(attempt) == expected


def test_backoff_delay_is_monotonic_and_bounded():
    delays = [calculate_backoff_delay(n) for n in range(0, 100)]
    assert delays == sorted(delays)
    assert all(2000 <= d <= 300_000 for d in delays)


def test_backoff_delay_custom_bounds_and_negative_attempt():
    assert calculate_backoff_delay(3, base_delay_ms=100, max_delay_ms=500) == 500
    assert calculate_backoff_delay(-5) == 2000


@pytest.mark.parametrize(
    "message",
    [
        "Rate limit exceeded - retry later",
        "HTTP 429 Too Many Requests",
        "Request timeout after 30.0s",
        "read ECONNRESET",
        "connect ETIMEDOUT 1.2.3.4:443",
        "Network error: unreachable",
        "Connection reset by peer",
        "The operation timed out",
    ],
)
def test_transient_messages_are_retryable(message):
    assert is_retryable_error(message)
    assert is_retryable_error(Exception(message))


@pytest.mark.parametrize(
    "message",
    [
        "Invalid image format",
        "Shopify rejected alt text: Alt is too long",
        "GEMINI_API_KEY is not set in the environment variables.",
        "",
    ],
)
def test_permanent_messages_are_not_retryable(message):
    assert not is_retryable_error(message)


def test_status_429_is_retryable_without_matching_message():
    error = ShopifyAPIError("Slow down", status_code=429)
    assert is_retryable_error(error)
    assert is_rate_limit_error(error)


def test_rate_limit_detection():
    assert is_rate_limit_error(RateLimitExceededError("Rate limit exceeded - retry later"))
    assert is_rate_limit_error(Exception("429 Too Many Requests"))
    assert not is_rate_limit_error(httpx.ConnectError("connection refused"))
