"""Backoff and retryability rules shared by captioning and the dead-letter queue."""

import re

BASE_DELAY_MS = 2000
MAX_DELAY_MS = 300_000  # 5 minutes

_RETRYABLE_PATTERNS = (
    re.compile(r"rate limit", re.IGNORECASE),
    re.compile(r"429"),
    re.compile(r"timeout", re.IGNORECASE),
    re.compile(r"ECONNRESET"),
    re.compile(r"ETIMEDOUT"),
    re.compile(r"network", re.IGNORECASE),
    re.compile(r"connection reset", re.IGNORECASE),
    re.compile(r"timed out", re.IGNORECASE),
)

_RATE_LIMIT_PATTERN = re.compile(r"rate limit|too many requests", re.IGNORECASE)


def calculate_backoff_delay(
    attempt: int, base_delay_ms: int = BASE_DELAY_MS, max_delay_ms: int = MAX_DELAY_MS
) -> int:
    """Exponential backoff in milliseconds: min(base * 2^attempt, max).

    Args:
        attempt: Zero-based attempt index (negative values are treated as 0)
        base_delay_ms: Delay for attempt 0 (default: 2000)
        max_delay_ms: Upper bound (default: 300000)

    Returns:
        Delay in milliseconds
    """
    attempt = max(attempt, 0)
    # Past this point the product always exceeds the ceiling
    if attempt >= 64:
        return max_delay_ms
    return min(base_delay_ms * 2**attempt, max_delay_ms)


def _status_of(error: object) -> int | None:
    for attr in ("status_code", "status", "code"):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value
    return None


def is_rate_limit_error(error: BaseException) -> bool:
    """True for an explicit 429 status or rate-limit phrasing."""
    return _status_of(error) == 429 or bool(_RATE_LIMIT_PATTERN.search(str(error)))


def is_retryable_error(error: BaseException | str) -> bool:
    """Decide whether a failed image is worth queueing for background retry.

    Matches rate limiting, HTTP 429, timeouts, connection resets and generic
    network failures. Everything else (bad input, rejected content, missing
    configuration) is treated as permanent.

    Args:
        error: Exception or plain error message

    Returns:
        True if the error is transient
    """
    if not isinstance(error, str) and _status_of(error) == 429:
        return True

    message = str(error)
    return any(pattern.search(message) for pattern in _RETRYABLE_PATTERNS)
