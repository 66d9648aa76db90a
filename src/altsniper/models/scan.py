"""Scan entity - one catalog-wide alt text run."""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel

from altsniper.core.clock import utcnow


class ScanStatus(str, Enum):
    """Scan lifecycle status."""

    RUNNING = "running"
    COMPLETED = "completed"
    COMPLETED_WITH_ERRORS = "completed_with_errors"


class InvalidStateTransition(Exception):
    """Raised when attempting an invalid record state transition."""

    pass


class Scan(SQLModel, table=True):
    """Scan records aggregate counters for one pass over a shop's catalog."""

    __tablename__ = "scans"  # type: ignore[assignment]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    shop: str = Field(max_length=255, index=True)
    started_at: datetime = Field(default_factory=utcnow, index=True)
    completed_at: Optional[datetime] = Field(default=None)
    total_products: int = Field(default=0, ge=0)
    total_images: int = Field(default=0, ge=0)
    images_processed: int = Field(default=0, ge=0)
    images_skipped: int = Field(default=0, ge=0)
    images_failed: int = Field(default=0, ge=0)
    status: ScanStatus = Field(default=ScanStatus.RUNNING, index=True)
    force_all: bool = Field(default=False)

    @property
    def is_terminal(self) -> bool:
        return self.status != ScanStatus.RUNNING

    def complete(
        self,
        total_products: int,
        total_images: int,
        images_processed: int,
        images_skipped: int,
        images_failed: int,
    ) -> None:
        """Transition from running to a terminal status with final aggregates.

        Status is completed_with_errors iff any image failed.

        Raises:
            InvalidStateTransition: If the scan already completed
            ValueError: If the counters exceed the number of images seen
        """
        if self.is_terminal:
            raise InvalidStateTransition(
                f"Cannot complete scan from {self.status.value}. Scan must be running."
            )
        if images_processed + images_skipped + images_failed > total_images:
            raise ValueError(
                "processed + skipped + failed cannot exceed total images "
                f"({images_processed} + {images_skipped} + {images_failed} > {total_images})"
            )

        self.total_products = total_products
        self.total_images = total_images
        self.images_processed = images_processed
        self.images_skipped = images_skipped
        self.images_failed = images_failed
        self.completed_at = utcnow()
        self.status = (
            ScanStatus.COMPLETED_WITH_ERRORS if images_failed > 0 else ScanStatus.COMPLETED
        )
