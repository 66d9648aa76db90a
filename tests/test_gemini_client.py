"""Gemini client tests that need no network access."""

import pytest

from altsniper.services.captioning.gemini_client import GeminiVisionClient, _message_text
from altsniper.services.exceptions import ConfigurationError


def test_empty_api_key_is_a_configuration_error():
    with pytest.raises(ConfigurationError, match="GEMINI_API_KEY"):
        GeminiVisionClient(api_key="")


@pytest.mark.parametrize(
    "content,expected",
    [
        ("Red mug", "Red mug"),
        ([{"type": "text", "text": "Red "}, {"type": "text", "text": "mug"}], "Red mug"),
        (["Red ", {"type": "image_url", "image_url": "data:"}, "mug"], "Red mug"),
        ([], ""),
    ],
)
def test_message_text_joins_text_parts(content, expected):
    assert _message_text(content) == expected
