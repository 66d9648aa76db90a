"""Image captioning: prompt construction, Gemini client and the retrying generator."""

from altsniper.services.captioning.caption_generator import CaptionGenerator
from altsniper.services.captioning.gemini_client import GeminiVisionClient, VisionClient
from altsniper.services.captioning.prompt_builder import build_default_prompt, sanitize_caption

__all__ = [
    "CaptionGenerator",
    "GeminiVisionClient",
    "VisionClient",
    "build_default_prompt",
    "sanitize_caption",
]
