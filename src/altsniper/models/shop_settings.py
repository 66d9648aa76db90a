"""ShopSettings entity - per-shop captioning preferences."""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel

from altsniper.core.clock import utcnow


class AltTextStyle(str, Enum):
    """Tone of the generated alt text."""

    PROFESSIONAL = "professional"
    CASUAL = "casual"
    TECHNICAL = "technical"
    CREATIVE = "creative"

    @property
    def directive(self) -> str:
        """Instruction embedded in the default prompt."""
        return _STYLE_DIRECTIVES[self]


class AltTextLength(str, Enum):
    """Length class of the generated alt text."""

    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"

    @property
    def max_characters(self) -> int:
        return _LENGTH_CEILINGS[self]


_STYLE_DIRECTIVES = {
    AltTextStyle.PROFESSIONAL: (
        "Use professional, formal language suitable for corporate/business contexts."
    ),
    AltTextStyle.CASUAL: (
        "Use friendly, conversational language that feels approachable and relatable."
    ),
    AltTextStyle.TECHNICAL: (
        "Use precise technical terminology and detailed specifications where relevant."
    ),
    AltTextStyle.CREATIVE: (
        "Use vivid, descriptive language that paints a picture and engages the imagination."
    ),
}

_LENGTH_CEILINGS = {
    AltTextLength.SHORT: 60,
    AltTextLength.MEDIUM: 100,
    AltTextLength.LONG: 125,
}

DEFAULT_BATCH_SIZE = 3
DEFAULT_MAX_RETRIES = 3


class ShopSettings(SQLModel, table=True):
    """ShopSettings holds one row of captioning preferences per shop.

    batch_size is advisory: images are still processed one at a time.
    """

    __tablename__ = "shop_settings"  # type: ignore[assignment]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    shop: str = Field(max_length=255, unique=True, index=True)
    alt_text_style: AltTextStyle = Field(default=AltTextStyle.PROFESSIONAL)
    alt_text_length: AltTextLength = Field(default=AltTextLength.MEDIUM)
    custom_prompt: Optional[str] = Field(default=None)
    batch_size: int = Field(default=DEFAULT_BATCH_SIZE, ge=1, le=10)
    auto_retry: bool = Field(default=True)
    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=1)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def max_length(self) -> int:
        """Character ceiling for generated alt text."""
        return self.alt_text_length.max_characters
