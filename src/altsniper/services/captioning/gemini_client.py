"""Gemini vision client for image captioning."""

import base64
from typing import Protocol

from langchain_core.messages import HumanMessage
from langchain_google_genai import ChatGoogleGenerativeAI

from altsniper.services.exceptions import ConfigurationError

DEFAULT_MODEL = "gemini-2.0-flash"


class VisionClient(Protocol):
    """Anything that can describe an image given a text prompt."""

    async def describe_image(self, image_bytes: bytes, prompt: str, mime_type: str) -> str: ...


class GeminiVisionClient:
    """Multimodal Gemini client returning the model's raw text answer.

    Retries are owned by CaptionGenerator, so the underlying chat model makes a
    single attempt per call.
    """

    def __init__(self, api_key: str, model: str = DEFAULT_MODEL):
        """Initialize Gemini client.

        Args:
            api_key: Google AI Studio API key (from GEMINI_API_KEY env var)
            model: Gemini model name (default: "gemini-2.0-flash")

        Raises:
            ConfigurationError: If api_key is empty
        """
        if not api_key:
            raise ConfigurationError("GEMINI_API_KEY is not set in the environment variables.")

        self.model = model
        self._llm = ChatGoogleGenerativeAI(
            model=model,
            google_api_key=api_key,
            temperature=0.2,
            max_retries=1,
        )

    async def describe_image(self, image_bytes: bytes, prompt: str, mime_type: str) -> str:
        """Send the prompt and inline image, return the text answer.

        Args:
            image_bytes: Raw image content
            prompt: Captioning instructions
            mime_type: Image MIME type (e.g. "image/jpeg")

        Returns:
            Unprocessed model output
        """
        encoded = base64.b64encode(image_bytes).decode("ascii")
        message = HumanMessage(
            content=[
                {"type": "text", "text": prompt},
                {"type": "image_url", "image_url": f"data:{mime_type};base64,{encoded}"},
            ]
        )
        response = await self._llm.ainvoke([message])
        return _message_text(response.content)


def _message_text(content: str | list) -> str:
    # Gemini may answer with a list of content parts instead of a plain string
    if isinstance(content, str):
        return content
    parts = []
    for part in content:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get("type") == "text":
            parts.append(part.get("text", ""))
    return "".join(parts)
