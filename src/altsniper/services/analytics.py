"""Scan history analytics for the merchant dashboard.

All figures are derived from Scan counters; ProcessedImage rows are only read
for the activity feed and scan details.
"""

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Callable
from uuid import UUID

from altsniper.core.clock import utcnow
from altsniper.models.processed_image import ProcessedImage
from altsniper.models.scan import Scan

ANALYTICS_SCAN_WINDOW = 100
RECENT_SCANS_LIMIT = 10
ACTIVITY_IMAGES_PER_SCAN = 5
CHART_DAYS = 30


@dataclass
class RecentScan:
    scan: Scan
    processed_image_count: int


@dataclass
class ScanStats:
    """Overview over the shop's last 100 scans."""

    total_scans: int
    total_images_processed: int
    total_images_failed: int
    success_rate: float
    average_processing_time_ms: float
    recent_scans: list[RecentScan] = field(default_factory=list)


@dataclass
class ScanActivity:
    scan: Scan
    images: list[ProcessedImage]


@dataclass
class DailyStats:
    date: str
    scans: int = 0
    images_processed: int = 0
    images_failed: int = 0


def summarize_scans(scans: list[Scan]) -> tuple[int, int, float, float]:
    """Aggregate processed/failed totals, success rate and mean duration.

    Success rate is processed / (processed + failed) * 100, or 0 with no
    attempted images. Mean duration covers completed scans only, in ms.
    """
    processed = sum(s.images_processed for s in scans)
    failed = sum(s.images_failed for s in scans)
    attempted = processed + failed
    success_rate = (processed / attempted) * 100 if attempted > 0 else 0.0

    durations = [
        (s.completed_at - s.started_at).total_seconds() * 1000
        for s in scans
        if s.completed_at is not None and s.started_at is not None
    ]
    average_ms = sum(durations) / len(durations) if durations else 0.0
    return processed, failed, success_rate, average_ms


def group_by_day(scans: list[Scan]) -> list[DailyStats]:
    """Group scans by UTC start date, in the order the scans are given."""
    daily: dict[str, DailyStats] = {}
    for scan in scans:
        day = scan.started_at.date().isoformat()
        stats = daily.setdefault(day, DailyStats(date=day))
        stats.scans += 1
        stats.images_processed += scan.images_processed
        stats.images_failed += scan.images_failed
    return list(daily.values())


async def get_analytics(uow_factory: Callable, shop: str) -> ScanStats:
    async with await uow_factory() as uow:
        scans = await uow.scans.list_recent(shop, limit=ANALYTICS_SCAN_WINDOW)
        recent = []
        for scan in scans[:RECENT_SCANS_LIMIT]:
            count = await uow.processed_images.count_by_scan(scan.id)
            recent.append(RecentScan(scan=scan, processed_image_count=count))

    processed, failed, success_rate, average_ms = summarize_scans(scans)
    return ScanStats(
        total_scans=len(scans),
        total_images_processed=processed,
        total_images_failed=failed,
        success_rate=success_rate,
        average_processing_time_ms=average_ms,
        recent_scans=recent,
    )


async def get_recent_activity(
    uow_factory: Callable, shop: str, limit: int = 5
) -> list[ScanActivity]:
    """Latest scans with up to five of their newest processed images each."""
    async with await uow_factory() as uow:
        scans = await uow.scans.list_recent(shop, limit=limit)
        activity = []
        for scan in scans:
            loaded = await uow.scans.get_with_images(scan.id, image_limit=ACTIVITY_IMAGES_PER_SCAN)
            images = loaded[1] if loaded else []
            activity.append(ScanActivity(scan=scan, images=images))
    return activity


async def get_scan_details(uow_factory: Callable, scan_id: UUID) -> ScanActivity | None:
    async with await uow_factory() as uow:
        loaded = await uow.scans.get_with_images(scan_id)
    if loaded is None:
        return None
    scan, images = loaded
    return ScanActivity(scan=scan, images=images)


async def get_chart_data(uow_factory: Callable, shop: str) -> list[DailyStats]:
    """Per-day scan counts for the last 30 days."""
    since = utcnow() - timedelta(days=CHART_DAYS)
    async with await uow_factory() as uow:
        scans = await uow.scans.list_since(shop, since)
    return group_by_day(scans)
