"""ProcessedImage entity - outcome of one image attempt within a scan."""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel

from altsniper.core.clock import utcnow


class ProcessedImageStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


class ProcessedImage(SQLModel, table=True):
    """ProcessedImage is written once per image the scan actually attempted."""

    __tablename__ = "processed_images"  # type: ignore[assignment]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    scan_id: UUID = Field(foreign_key="scans.id", ondelete="CASCADE", index=True)
    product_id: str = Field(max_length=255, index=True)
    product_title: str
    image_id: str = Field(max_length=255)
    image_url: str
    old_alt_text: Optional[str] = Field(default=None)
    new_alt_text: str = Field(default="")  # Empty for failed attempts
    status: ProcessedImageStatus
    error_message: Optional[str] = Field(default=None, max_length=1000)
    processed_at: datetime = Field(default_factory=utcnow)
