"""Dead-letter queue endpoints.

- GET /api/failed-jobs - Every failed job of the shop plus the pending count
- POST /api/failed-jobs/drain - Retry all due jobs now (also run by cron via the CLI)
"""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from altsniper.api.dependencies import (
    get_caption_generator,
    get_catalog_client,
    get_settings,
    get_shop,
    get_uow_factory,
)
from altsniper.core.config import Settings
from altsniper.models.failed_job import FailedJob, FailedJobStatus
from altsniper.services.captioning.caption_generator import CaptionGenerator
from altsniper.services.retry_queue import drain_failed_jobs
from altsniper.services.shopify.catalog_client import ShopifyCatalogClient

router = APIRouter(prefix="/api/failed-jobs", tags=["failed-jobs"])


class FailedJobDTO(BaseModel):
    id: UUID
    product_id: str
    product_title: str
    image_id: str
    image_url: str
    error_message: str
    retry_count: int
    max_retries: int
    status: str
    next_retry_at: datetime | None = None
    created_at: datetime
    last_attempt_at: datetime


class FailedJobsResponse(BaseModel):
    jobs: list[FailedJobDTO]
    pending: int


class DrainResponse(BaseModel):
    attempted: int
    succeeded: int
    rescheduled: int
    failed_permanent: int
    errors: list[str]


def job_to_dto(job: FailedJob) -> FailedJobDTO:
    return FailedJobDTO(
        id=job.id,
        product_id=job.product_id,
        product_title=job.product_title,
        image_id=job.image_id,
        image_url=job.image_url,
        error_message=job.error_message,
        retry_count=job.retry_count,
        max_retries=job.max_retries,
        status=job.status.value,
        next_retry_at=job.next_retry_at,
        created_at=job.created_at,
        last_attempt_at=job.last_attempt_at,
    )


@router.get("", response_model=FailedJobsResponse, status_code=status.HTTP_200_OK)
async def list_failed_jobs(
    shop: str = Depends(get_shop),
    uow_factory=Depends(get_uow_factory),
) -> FailedJobsResponse:
    async with await uow_factory() as uow:
        jobs = await uow.failed_jobs.list_by_shop(shop)
        pending = await uow.failed_jobs.count_by_status(shop, FailedJobStatus.PENDING)
    return FailedJobsResponse(jobs=[job_to_dto(job) for job in jobs], pending=pending)


@router.post("/drain", response_model=DrainResponse, status_code=status.HTTP_200_OK)
async def drain(
    shop: str = Depends(get_shop),
    uow_factory=Depends(get_uow_factory),
    catalog_client: ShopifyCatalogClient = Depends(get_catalog_client),
    caption_generator: CaptionGenerator = Depends(get_caption_generator),
    settings: Settings = Depends(get_settings),
) -> DrainResponse:
    """Retry every due job of the shop once."""
    result = await drain_failed_jobs(
        shop,
        uow_factory,
        catalog_client,
        caption_generator,
        retry_delay_seconds=settings.failed_job_retry_delay_seconds,
        write_back_pause_seconds=settings.write_back_pause_seconds,
    )
    return DrainResponse(
        attempted=result.attempted,
        succeeded=result.succeeded,
        rescheduled=result.rescheduled,
        failed_permanent=result.failed_permanent,
        errors=result.errors,
    )
