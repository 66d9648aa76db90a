"""FailedJob entity - dead-letter entry for an image awaiting background retry."""

from datetime import datetime, timedelta
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel

from altsniper.core.clock import utcnow
from altsniper.models.scan import InvalidStateTransition


class FailedJobStatus(str, Enum):
    """Dead-letter lifecycle status."""

    PENDING = "pending"
    RETRYING = "retrying"
    FAILED_PERMANENT = "failed_permanent"


class FailedJob(SQLModel, table=True):
    """FailedJob tracks an image whose caption generation or write-back failed.

    Lifecycle: pending -> retrying -> (pending | failed_permanent).
    failed_permanent is terminal; the row is kept for inspection.
    """

    __tablename__ = "failed_jobs"  # type: ignore[assignment]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    shop: str = Field(max_length=255, index=True)
    product_id: str = Field(max_length=255)
    product_title: str
    image_id: str = Field(max_length=255)
    image_url: str
    error_message: str = Field(max_length=1000)
    retry_count: int = Field(default=0, ge=0)
    max_retries: int = Field(default=3, ge=1)
    next_retry_at: Optional[datetime] = Field(default=None, index=True)
    created_at: datetime = Field(default_factory=utcnow)
    last_attempt_at: datetime = Field(default_factory=utcnow)
    status: FailedJobStatus = Field(default=FailedJobStatus.PENDING, index=True)

    def mark_retrying(self, now: datetime) -> None:
        """Transition to retrying and stamp the attempt time.

        Raises:
            InvalidStateTransition: If the job is permanently failed
        """
        if self.status == FailedJobStatus.FAILED_PERMANENT:
            raise InvalidStateTransition(
                f"Cannot mark retrying from terminal state {self.status.value}."
            )
        self.status = FailedJobStatus.RETRYING
        self.last_attempt_at = now

    def reschedule(self, now: datetime, delay: timedelta) -> None:
        """Count one more failed attempt and either reschedule or give up.

        Once retry_count reaches max_retries the job becomes failed_permanent,
        otherwise it returns to pending with next_retry_at = now + delay.

        Raises:
            InvalidStateTransition: If the job is permanently failed
        """
        if self.status == FailedJobStatus.FAILED_PERMANENT:
            raise InvalidStateTransition(
                f"Cannot reschedule from terminal state {self.status.value}."
            )
        self.retry_count += 1
        self.last_attempt_at = now

        if self.retry_count >= self.max_retries:
            self.status = FailedJobStatus.FAILED_PERMANENT
            return

        self.status = FailedJobStatus.PENDING
        self.next_retry_at = now + delay
