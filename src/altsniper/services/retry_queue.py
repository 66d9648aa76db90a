"""Dead-letter queue consumer.

Nothing in the application schedules this on its own: an external scheduler
(cron running `python -m altsniper.cli retry-failed`, or the drain endpoint)
calls drain_failed_jobs periodically.

Per due job:
1. Mark retrying (committed before any network call)
2. Generate alt text and write it back through the same path as a scan
3. Success: remove the job
4. Failure or Shopify user errors: schedule_retry, which reschedules or
   moves the job to failed_permanent once its retry ceiling is reached
"""

import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable

import structlog

from altsniper.models.failed_job import FailedJob, FailedJobStatus
from altsniper.repositories.failed_job import DEFAULT_RETRY_DELAY_SECONDS
from altsniper.services.captioning.caption_generator import CaptionGenerator
from altsniper.services.scan_orchestrator import (
    DEFAULT_WRITE_BACK_PAUSE_SECONDS,
    NO_ALT_TEXT_GENERATED,
)
from altsniper.services.shopify.catalog_client import ShopifyCatalogClient

logger = structlog.get_logger(__name__)


@dataclass
class DrainResult:
    """Outcome counts of one drain pass."""

    attempted: int = 0
    succeeded: int = 0
    rescheduled: int = 0
    failed_permanent: int = 0
    errors: list[str] = field(default_factory=list)


async def _retry_job(
    job: FailedJob,
    max_retries: int,
    catalog_client: ShopifyCatalogClient,
    caption_generator: CaptionGenerator,
    write_back_pause_seconds: float,
    sleep: Callable[[float], Awaitable[None]],
) -> str | None:
    """Reprocess one job's image.

    Returns:
        None on success, otherwise the failure message
    """
    try:
        alt_text = await caption_generator.generate(
            job.image_url, job.product_title, [], job.shop, max_retries=max_retries
        )
        if not alt_text:
            return NO_ALT_TEXT_GENERATED

        result = await catalog_client.update_media_alt_text(job.product_id, job.image_id, alt_text)
    except Exception as e:
        return str(e) or type(e).__name__

    await sleep(write_back_pause_seconds)
    if not result.ok:
        return f"Shopify rejected alt text: {result.error_message}"
    return None


async def drain_failed_jobs(
    shop: str,
    uow_factory: Callable,
    catalog_client: ShopifyCatalogClient,
    caption_generator: CaptionGenerator,
    retry_delay_seconds: float = DEFAULT_RETRY_DELAY_SECONDS,
    write_back_pause_seconds: float = DEFAULT_WRITE_BACK_PAUSE_SECONDS,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> DrainResult:
    """Retry every due dead-letter job of a shop, one at a time.

    Args:
        shop: Shop domain
        uow_factory: Unit of Work factory
        catalog_client: Shopify client bound to the shop
        caption_generator: Alt text generator
        retry_delay_seconds: Delay before the next attempt of a job that fails again
        write_back_pause_seconds: Pause after each alt text mutation, as in a scan
        sleep: Coroutine used for the pause

    Returns:
        Counts of succeeded, rescheduled and permanently failed jobs
    """
    async with await uow_factory() as uow:
        settings = await uow.settings.get_or_create(shop)
        due_jobs = await uow.failed_jobs.list_due(shop)

    result = DrainResult()
    if not due_jobs:
        return result

    logger.info("failed_jobs.drain_started", shop=shop, due=len(due_jobs))

    for job in due_jobs:
        async with await uow_factory() as uow:
            await uow.failed_jobs.mark_retrying(job.id)

        result.attempted += 1
        error_message = await _retry_job(
            job,
            settings.max_retries,
            catalog_client,
            caption_generator,
            write_back_pause_seconds,
            sleep,
        )

        if error_message is None:
            async with await uow_factory() as uow:
                await uow.failed_jobs.remove(job.id)
            result.succeeded += 1
            logger.info("failed_job.succeeded", shop=shop, job_id=str(job.id))
            continue

        async with await uow_factory() as uow:
            updated = await uow.failed_jobs.schedule_retry(
                job.id, retry_delay_seconds, error_message=error_message
            )

        result.errors.append(error_message)
        if updated.status == FailedJobStatus.FAILED_PERMANENT:
            result.failed_permanent += 1
            logger.error(
                "failed_job.failed_permanent",
                shop=shop,
                job_id=str(job.id),
                retry_count=updated.retry_count,
                error_message=error_message,
            )
        else:
            result.rescheduled += 1
            logger.warning(
                "failed_job.rescheduled",
                shop=shop,
                job_id=str(job.id),
                retry_count=updated.retry_count,
                next_retry_at=updated.next_retry_at.isoformat() if updated.next_retry_at else None,
                error_message=error_message,
            )

    logger.info(
        "failed_jobs.drain_completed",
        shop=shop,
        succeeded=result.succeeded,
        rescheduled=result.rescheduled,
        failed_permanent=result.failed_permanent,
    )
    return result
