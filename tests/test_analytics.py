"""Analytics tests: overview aggregates, chart grouping and activity feed."""

from datetime import datetime, timedelta, timezone

from altsniper.core.clock import utcnow
from altsniper.models.processed_image import ProcessedImageStatus
from altsniper.models.scan import Scan, ScanStatus
from altsniper.services.analytics import (
    get_analytics,
    get_chart_data,
    get_recent_activity,
    get_scan_details,
    group_by_day,
    summarize_scans,
)
from helpers import TEST_SHOP


async def add_completed_scan(uow_factory, started_at, processed, failed, duration_s=10):
    async with await uow_factory() as uow:
        scan = await uow.scans.create(TEST_SHOP)
        scan.started_at = started_at
        scan.complete(
            total_products=1,
            total_images=processed + failed,
            images_processed=processed,
            images_skipped=0,
            images_failed=failed,
        )
        scan.completed_at = started_at + timedelta(seconds=duration_s)
    return scan


def test_summarize_scans_without_attempts():
    assert summarize_scans([]) == (0, 0, 0.0, 0.0)


def test_summarize_scans_ignores_running_scans_for_duration():
    start = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
    done = Scan(
        shop=TEST_SHOP,
        started_at=start,
        completed_at=start + timedelta(seconds=4),
        images_processed=3,
        images_failed=1,
        status=ScanStatus.COMPLETED_WITH_ERRORS,
    )
    running = Scan(shop=TEST_SHOP, started_at=start)

    processed, failed, success_rate, average_ms = summarize_scans([done, running])

    assert (processed, failed) == (3, 1)
    assert success_rate == 75.0
    assert average_ms == 4000.0


def test_group_by_day():
    day = datetime(2025, 3, 1, 8, 0, 0, tzinfo=timezone.utc)
    scans = [
        Scan(shop=TEST_SHOP, started_at=day, images_processed=2, images_failed=1),
        Scan(shop=TEST_SHOP, started_at=day + timedelta(hours=5), images_processed=1),
        Scan(shop=TEST_SHOP, started_at=day + timedelta(days=1), images_failed=4),
    ]

    stats = group_by_day(scans)

    assert [(s.date, s.scans, s.images_processed, s.images_failed) for s in stats] == [
        ("2025-03-01", 2, 3, 1),
        ("2025-03-02", 1, 0, 4),
    ]


async def test_get_analytics_overview(uow_factory):
    now = utcnow()
    await add_completed_scan(uow_factory, now - timedelta(hours=2), processed=8, failed=2)
    await add_completed_scan(
        uow_factory, now - timedelta(hours=1), processed=2, failed=0, duration_s=20
    )

    stats = await get_analytics(uow_factory, TEST_SHOP)

    assert stats.total_scans == 2
    assert stats.total_images_processed == 10
    assert stats.total_images_failed == 2
    assert round(stats.success_rate, 2) == 83.33
    assert stats.average_processing_time_ms == 15000.0
    assert len(stats.recent_scans) == 2
    assert stats.recent_scans[0].processed_image_count == 0


async def test_chart_data_covers_last_30_days(uow_factory):
    now = utcnow()
    await add_completed_scan(uow_factory, now - timedelta(days=45), processed=5, failed=0)
    await add_completed_scan(uow_factory, now - timedelta(days=2), processed=1, failed=1)

    chart = await get_chart_data(uow_factory, TEST_SHOP)

    assert len(chart) == 1
    assert chart[0].date == (now - timedelta(days=2)).date().isoformat()
    assert (chart[0].images_processed, chart[0].images_failed) == (1, 1)


async def test_recent_activity_and_details(uow_factory):
    async with await uow_factory() as uow:
        scan = await uow.scans.create(TEST_SHOP)
        for n in range(7):
            await uow.processed_images.record(
                scan_id=scan.id,
                product_id="p1",
                product_title="Mug",
                image_id=f"m{n}",
                image_url=f"https://cdn/m{n}.jpg",
                old_alt_text=None,
                new_alt_text="Mug",
                status=ProcessedImageStatus.SUCCESS,
            )

    activity = await get_recent_activity(uow_factory, TEST_SHOP)
    details = await get_scan_details(uow_factory, scan.id)

    assert len(activity) == 1
    assert len(activity[0].images) == 5
    assert details.scan.id == scan.id
    assert len(details.images) == 7
