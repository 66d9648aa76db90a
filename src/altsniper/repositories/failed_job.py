"""FailedJob repository - the dead-letter / retry queue.

Draining is consumer-driven: callers list due jobs, mark them retrying, and
then either remove them (success) or schedule another retry (failure).
"""

from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from altsniper.core.clock import utcnow
from altsniper.models.failed_job import FailedJob, FailedJobStatus
from altsniper.models.shop_settings import DEFAULT_MAX_RETRIES
from altsniper.services.exceptions import JobNotFoundError

INITIAL_RETRY_DELAY = timedelta(seconds=60)
DEFAULT_RETRY_DELAY_SECONDS = 120


class FailedJobRepository:
    """Repository for FailedJob entities."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session for database operations
        """
        self.session = session

    async def enqueue(
        self,
        *,
        shop: str,
        product_id: str,
        product_title: str,
        image_id: str,
        image_url: str,
        error_message: str,
        max_retries: int | None = None,
        now: datetime | None = None,
    ) -> FailedJob:
        """Add a failed image to the queue, first retry due in one minute.

        Args:
            shop: Shop domain
            product_id: Shopify product GID
            product_title: Product title (used again for the prompt on retry)
            image_id: Shopify MediaImage GID
            image_url: CDN URL of the image
            error_message: Last failure description (truncated to 1000 characters)
            max_retries: Retry ceiling (falls back to 3 when not given)
            now: Current time (defaults to the UTC clock)

        Returns:
            Persisted pending job
        """
        now = now or utcnow()
        job = FailedJob(
            shop=shop,
            product_id=product_id,
            product_title=product_title,
            image_id=image_id,
            image_url=image_url,
            error_message=error_message[:1000],
            retry_count=0,
            max_retries=max_retries or DEFAULT_MAX_RETRIES,
            next_retry_at=now + INITIAL_RETRY_DELAY,
            created_at=now,
            last_attempt_at=now,
            status=FailedJobStatus.PENDING,
        )
        self.session.add(job)
        await self.session.flush()
        return job

    async def get_by_id(self, job_id: UUID) -> FailedJob | None:
        result = await self.session.execute(select(FailedJob).where(FailedJob.id == job_id))  # type: ignore[arg-type]
        return result.scalar_one_or_none()

    async def _get_or_raise(self, job_id: UUID) -> FailedJob:
        job = await self.get_by_id(job_id)
        if job is None:
            raise JobNotFoundError(f"Job {job_id} not found")
        return job

    async def list_due(self, shop: str, now: datetime | None = None) -> list[FailedJob]:
        """Retrieve pending jobs whose next retry time has passed.

        Query explanation:
        - WHERE shop = :shop AND status = 'pending'
        - AND next_retry_at <= now: Only jobs whose backoff elapsed
        - ORDER BY created_at ASC: Oldest failures first

        Args:
            shop: Shop domain
            now: Current time (defaults to the UTC clock)

        Returns:
            Due jobs, oldest first
        """
        now = now or utcnow()
        result = await self.session.execute(
            select(FailedJob)
            .where(
                FailedJob.shop == shop,  # type: ignore[arg-type]
                FailedJob.status == FailedJobStatus.PENDING,  # type: ignore[arg-type]
                FailedJob.next_retry_at <= now,  # type: ignore[operator]
            )
            .order_by(FailedJob.created_at.asc())  # type: ignore[attr-defined]
        )
        return list(result.scalars().all())

    async def mark_retrying(self, job_id: UUID, now: datetime | None = None) -> FailedJob:
        """Transition a job to retrying.

        Raises:
            JobNotFoundError: If the job no longer exists
        """
        job = await self._get_or_raise(job_id)
        job.mark_retrying(now or utcnow())
        self.session.add(job)
        await self.session.flush()
        return job

    async def schedule_retry(
        self,
        job_id: UUID,
        delay_seconds: float = DEFAULT_RETRY_DELAY_SECONDS,
        now: datetime | None = None,
        error_message: str | None = None,
    ) -> FailedJob:
        """Increment the retry counter and reschedule, or fail permanently.

        Args:
            job_id: Job's unique identifier
            delay_seconds: Delay before the next attempt (default: 120)
            now: Current time (defaults to the UTC clock)
            error_message: Latest failure description, replaces the stored one

        Returns:
            Updated job (pending, or failed_permanent once retry_count
            reaches max_retries)

        Raises:
            JobNotFoundError: If the job no longer exists
        """
        job = await self._get_or_raise(job_id)
        if error_message:
            job.error_message = error_message[:1000]
        job.reschedule(now or utcnow(), timedelta(seconds=delay_seconds))
        self.session.add(job)
        await self.session.flush()
        return job

    async def remove(self, job_id: UUID) -> bool:
        """Delete a job after its image was reprocessed successfully.

        Returns:
            True if the job was deleted, False if it did not exist
        """
        job = await self.get_by_id(job_id)
        if job is None:
            return False
        await self.session.delete(job)
        await self.session.flush()
        return True

    async def list_by_shop(self, shop: str) -> list[FailedJob]:
        """Retrieve every job of a shop, newest first."""
        result = await self.session.execute(
            select(FailedJob)
            .where(FailedJob.shop == shop)  # type: ignore[arg-type]
            .order_by(FailedJob.created_at.desc())  # type: ignore[attr-defined]
        )
        return list(result.scalars().all())

    async def count_by_status(self, shop: str, status: FailedJobStatus) -> int:
        result = await self.session.execute(
            select(func.count(FailedJob.id)).where(
                FailedJob.shop == shop,  # type: ignore[arg-type]
                FailedJob.status == status,  # type: ignore[arg-type]
            )
        )
        return result.scalar() or 0
