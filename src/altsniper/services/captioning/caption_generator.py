"""Caption generator: one image in, one alt text sentence out.

Each attempt re-fetches the image and calls the vision model. Failures are
retried up to the caller's ceiling with two backoff schedules:

- Rate limited (429 or "rate limit" phrasing): exponential, calculate_backoff_delay(attempt)
- Anything else: linear, 1s * (attempt + 1)

No wait follows the last attempt. Nothing is persisted here; the caller
records outcomes.
"""

import asyncio
from typing import Awaitable, Callable, Sequence

import httpx
import structlog

from altsniper.services.captioning.gemini_client import (
    DEFAULT_MODEL,
    GeminiVisionClient,
    VisionClient,
)
from altsniper.services.captioning.prompt_builder import build_prompt, sanitize_caption
from altsniper.services.exceptions import (
    CaptionGenerationError,
    ConfigurationError,
    RateLimitExceededError,
)
from altsniper.services.retry_policy import calculate_backoff_delay, is_rate_limit_error

logger = structlog.get_logger(__name__)

DEFAULT_MIME_TYPE = "image/jpeg"
IMAGE_FETCH_TIMEOUT_SECONDS = 30.0


class CaptionGenerator:
    """Generates sanitized alt text for product images with bounded retries."""

    def __init__(
        self,
        uow_factory: Callable,
        api_key: str,
        model: str = DEFAULT_MODEL,
        vision_client: VisionClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize the generator.

        Args:
            uow_factory: Unit of Work factory used to resolve shop settings
            api_key: Gemini API key; an empty key fails every call immediately
            model: Gemini model name
            vision_client: Client override (the Gemini client is built lazily otherwise)
            transport: httpx transport override for image downloads
            sleep: Coroutine used for backoff waits, in seconds
        """
        self._uow_factory = uow_factory
        self._api_key = api_key
        self._model = model
        self._vision_client = vision_client
        self._transport = transport
        self._sleep = sleep

    def _get_vision_client(self) -> VisionClient:
        if self._vision_client is None:
            self._vision_client = GeminiVisionClient(self._api_key, self._model)
        return self._vision_client

    async def _fetch_image(self, image_url: str) -> tuple[bytes, str]:
        async with httpx.AsyncClient(
            timeout=IMAGE_FETCH_TIMEOUT_SECONDS, transport=self._transport
        ) as client:
            response = await client.get(image_url)
            response.raise_for_status()

        content_type = response.headers.get("content-type", "")
        mime_type = content_type.split(";")[0].strip()
        if not mime_type.startswith("image/"):
            mime_type = DEFAULT_MIME_TYPE
        return response.content, mime_type

    async def generate(
        self,
        image_url: str,
        product_title: str,
        product_tags: Sequence[str],
        shop: str,
        max_retries: int = 3,
    ) -> str:
        """Generate alt text for one image.

        Args:
            image_url: Public URL of the product image
            product_title: Product title (prompt context)
            product_tags: Product tags (prompt context)
            shop: Shop domain whose settings shape the prompt
            max_retries: Total number of attempts, at least 1

        Returns:
            Sanitized alt text within the shop's length ceiling

        Raises:
            ValueError: max_retries is below 1
            ConfigurationError: GEMINI_API_KEY is missing (no attempt is made)
            RateLimitExceededError: Every attempt failed, the last one rate limited
            CaptionGenerationError: Every attempt failed for another reason
        """
        if max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {max_retries}")
        if not self._api_key:
            raise ConfigurationError("GEMINI_API_KEY is not set in the environment variables.")

        async with await self._uow_factory() as uow:
            settings = await uow.settings.get_or_create(shop)

        max_length = settings.max_length
        attempts = max_retries
        last_error: Exception | None = None
        last_rate_limited = False

        for attempt in range(attempts):
            try:
                image_bytes, mime_type = await self._fetch_image(image_url)
                prompt = build_prompt(settings, product_title, product_tags)
                raw = await self._get_vision_client().describe_image(
                    image_bytes, prompt, mime_type
                )
                return sanitize_caption(raw, max_length)

            except ConfigurationError:
                raise

            except Exception as e:
                last_error = e
                last_rate_limited = is_rate_limit_error(e)
                is_last_attempt = attempt >= attempts - 1

                if last_rate_limited:
                    delay_ms = calculate_backoff_delay(attempt)
                    logger.warning(
                        "caption.rate_limited",
                        shop=shop,
                        image_url=image_url,
                        attempt_number=attempt + 1,
                        max_attempts=attempts,
                        retry_in_ms=None if is_last_attempt else delay_ms,
                    )
                else:
                    delay_ms = 1000 * (attempt + 1)
                    logger.warning(
                        "caption.attempt_failed",
                        shop=shop,
                        image_url=image_url,
                        attempt_number=attempt + 1,
                        max_attempts=attempts,
                        error_type=type(e).__name__,
                        error_message=str(e),
                        retry_in_ms=None if is_last_attempt else delay_ms,
                    )

                if not is_last_attempt:
                    await self._sleep(delay_ms / 1000)

        if last_rate_limited:
            raise RateLimitExceededError("Rate limit exceeded - retry later") from last_error

        message = (str(last_error) or type(last_error).__name__) if last_error else "Unknown error"
        logger.error(
            "caption.failed",
            shop=shop,
            image_url=image_url,
            attempts=attempts,
            error_message=message,
        )
        raise CaptionGenerationError(f"Failed to generate alt-text: {message}") from last_error
