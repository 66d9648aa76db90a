"""Prompt construction and output cleanup for alt text generation."""

import re
from typing import Sequence

from altsniper.models.shop_settings import ShopSettings

_SURROUNDING_QUOTES = re.compile(r"^['\"]+|['\"]+$")
_WHITESPACE_RUN = re.compile(r"\s+")

ELLIPSIS = "..."


def build_default_prompt(
    product_title: str,
    product_tags: Sequence[str],
    max_length: int,
    style_directive: str,
) -> str:
    """Build the captioning prompt used when a shop has no custom prompt.

    Args:
        product_title: Product title, embedded as context
        product_tags: Product tags, embedded comma-separated
        max_length: Character ceiling the model is asked to respect
        style_directive: Tone instruction for the shop's configured style

    Returns:
        Prompt text asking for exactly one plain sentence
    """
    return f"""You are an accessibility-and-SEO-focused alt-text writer. Produce ONE concise, factual, non-promotional sentence that is suitable for screen readers while also helping discoverability.

Requirements:
- Start with the object (for example: "Blue snowboard...")
- Include the color and the most important design elements (e.g. "liquid-drip design", "winter forest landscape graphic").
- If the product title contains a clear brand or model name, include it once naturally; otherwise do not force brand names.
- Avoid marketing language, calls-to-action, prices, or unnecessary adjectives.
- Keep it under {max_length} characters (strict limit).
- {style_directive}
- Use plain, descriptive language suitable for screen readers.

Return ONLY the single alt-text sentence with no surrounding quotes or extra commentary.

Context:
Product title: "{product_title}"
Product tags: {", ".join(product_tags)}
"""


def build_prompt(settings: ShopSettings, product_title: str, product_tags: Sequence[str]) -> str:
    """Return the shop's custom prompt verbatim, or the default prompt."""
    if settings.custom_prompt:
        return settings.custom_prompt

    return build_default_prompt(
        product_title=product_title,
        product_tags=product_tags,
        max_length=settings.max_length,
        style_directive=settings.alt_text_style.directive,
    )


def sanitize_caption(text: str, max_length: int) -> str:
    """Clean raw model output into a single alt text line.

    Trims, strips surrounding quote characters, collapses whitespace runs and
    truncates to exactly max_length characters (ending in "...") when too long.

    Args:
        text: Raw model output
        max_length: Character ceiling (must be greater than 3)

    Returns:
        Sanitized caption
    """
    caption = _SURROUNDING_QUOTES.sub("", text.strip())
    caption = _WHITESPACE_RUN.sub(" ", caption).strip()

    if len(caption) > max_length:
        caption = caption[: max_length - len(ELLIPSIS)] + ELLIPSIS

    return caption
