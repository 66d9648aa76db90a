"""Analytics endpoint.

- GET /api/analytics - Overview of the last 100 scans plus 30 days of daily stats
"""

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from altsniper.api.dependencies import get_shop, get_uow_factory
from altsniper.api.routes.scans import ScanDTO, scan_to_dto
from altsniper.services.analytics import get_analytics, get_chart_data

router = APIRouter(prefix="/api/analytics", tags=["analytics"])


class RecentScanDTO(BaseModel):
    scan: ScanDTO
    processed_image_count: int


class DailyStatsDTO(BaseModel):
    date: str = Field(..., description="UTC day, YYYY-MM-DD")
    scans: int
    images_processed: int
    images_failed: int


class AnalyticsResponse(BaseModel):
    total_scans: int
    total_images_processed: int
    total_images_failed: int
    success_rate: float = Field(..., description="Percentage of attempted images that succeeded")
    average_processing_time_ms: float
    recent_scans: list[RecentScanDTO]
    chart: list[DailyStatsDTO]


@router.get("", response_model=AnalyticsResponse, status_code=status.HTTP_200_OK)
async def get_shop_analytics(
    shop: str = Depends(get_shop),
    uow_factory=Depends(get_uow_factory),
) -> AnalyticsResponse:
    stats = await get_analytics(uow_factory, shop)
    chart = await get_chart_data(uow_factory, shop)

    return AnalyticsResponse(
        total_scans=stats.total_scans,
        total_images_processed=stats.total_images_processed,
        total_images_failed=stats.total_images_failed,
        success_rate=stats.success_rate,
        average_processing_time_ms=stats.average_processing_time_ms,
        recent_scans=[
            RecentScanDTO(scan=scan_to_dto(r.scan), processed_image_count=r.processed_image_count)
            for r in stats.recent_scans
        ],
        chart=[
            DailyStatsDTO(
                date=day.date,
                scans=day.scans,
                images_processed=day.images_processed,
                images_failed=day.images_failed,
            )
            for day in chart
        ],
    )
