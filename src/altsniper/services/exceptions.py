"""Service error hierarchy for captioning, Shopify and queue operations.

- ServiceError: Base for all service errors
- TransientError: Retryable errors (network, rate limits, timeouts)
- PermanentError: Non-retryable errors (configuration, missing records)
"""


class ServiceError(Exception):
    """Base exception for all service errors."""

    pass


class TransientError(ServiceError):
    """Transient error that may succeed on retry."""

    pass


class PermanentError(ServiceError):
    """Permanent error that will not succeed on retry."""

    pass


class ConfigurationError(PermanentError):
    """Required credentials or settings are missing."""

    pass


# Captioning errors
class CaptionGenerationError(ServiceError):
    """All caption attempts failed; carries the last underlying message."""

    pass


class RateLimitExceededError(TransientError):
    """All caption attempts failed and the last one was rate limited."""

    status_code = 429


# Shopify errors
class ShopifyAPIError(ServiceError):
    """Admin GraphQL request failed (HTTP, transport or top-level GraphQL error)."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


# Pipeline errors
class ScanInProgressError(ServiceError):
    """A scan for the shop is already running in this process."""

    pass


class JobNotFoundError(PermanentError):
    """Dead-letter job no longer exists."""

    pass


class InvalidShopDomainError(PermanentError):
    """Shop is not a *.myshopify.com domain."""

    pass
