"""Dead-letter drain tests: success removes, failures reschedule or give up."""

from datetime import timedelta

from altsniper.core.clock import utcnow
from altsniper.models.failed_job import FailedJobStatus
from altsniper.services.retry_queue import drain_failed_jobs
from altsniper.services.shopify.catalog_client import ShopifyCatalogClient
from helpers import TEST_SHOP, RecordingSleep, ShopifyMock


async def enqueue_due_job(uow_factory, image_id: str, max_retries: int = 3, minutes_ago: int = 5):
    async with await uow_factory() as uow:
        return await uow.failed_jobs.enqueue(
            shop=TEST_SHOP,
            product_id="gid://shopify/Product/1",
            product_title="Liquid Snowboard",
            image_id=image_id,
            image_url=f"https://cdn.shopify.com/{image_id}.jpg",
            error_message="Rate limit exceeded - retry later",
            max_retries=max_retries,
            now=utcnow() - timedelta(minutes=minutes_ago),
        )


def catalog(mock: ShopifyMock) -> ShopifyCatalogClient:
    return ShopifyCatalogClient(TEST_SHOP, "shpat_test", transport=mock.transport())


async def test_successful_retry_removes_job(uow_factory, caption_generator, fake_vision):
    job = await enqueue_due_job(uow_factory, "m1")
    mock = ShopifyMock([])
    fake_vision.responses = ["Blue snowboard"]

    result = await drain_failed_jobs(
        TEST_SHOP, uow_factory, catalog(mock), caption_generator, sleep=RecordingSleep()
    )

    assert (result.attempted, result.succeeded, result.rescheduled) == (1, 1, 0)
    assert mock.mutations[0]["media"] == [{"id": "m1", "alt": "Blue snowboard"}]
    assert fake_vision.calls[0]["prompt"].count("Liquid Snowboard") == 1

    async with await uow_factory() as uow:
        assert await uow.failed_jobs.get_by_id(job.id) is None


async def test_failed_retry_is_rescheduled(uow_factory, caption_generator, fake_vision):
    job = await enqueue_due_job(uow_factory, "m1")
    fake_vision.responses = [Exception("network unreachable")]

    result = await drain_failed_jobs(
        TEST_SHOP, uow_factory, catalog(ShopifyMock([])), caption_generator
    )

    assert (result.attempted, result.succeeded, result.rescheduled) == (1, 0, 1)
    assert result.errors == ["Failed to generate alt-text: network unreachable"]

    async with await uow_factory() as uow:
        updated = await uow.failed_jobs.get_by_id(job.id)

    assert updated.status == FailedJobStatus.PENDING
    assert updated.retry_count == 1
    assert updated.next_retry_at > utcnow() + timedelta(seconds=100)
    assert updated.error_message == "Failed to generate alt-text: network unreachable"


async def test_user_errors_on_retry_count_toward_ceiling(uow_factory, caption_generator):
    job = await enqueue_due_job(uow_factory, "m1", max_retries=1)
    mock = ShopifyMock([], user_errors={"m1": "Alt is invalid"})

    result = await drain_failed_jobs(
        TEST_SHOP, uow_factory, catalog(mock), caption_generator, sleep=RecordingSleep()
    )

    assert result.failed_permanent == 1
    async with await uow_factory() as uow:
        updated = await uow.failed_jobs.get_by_id(job.id)
    assert updated.status == FailedJobStatus.FAILED_PERMANENT
    assert updated.error_message == "Shopify rejected alt text: Alt is invalid"


async def test_jobs_not_yet_due_are_left_alone(uow_factory, caption_generator, fake_vision):
    async with await uow_factory() as uow:
        await uow.failed_jobs.enqueue(
            shop=TEST_SHOP,
            product_id="p1",
            product_title="Mug",
            image_id="m1",
            image_url="https://cdn/m1.jpg",
            error_message="timeout",
        )

    result = await drain_failed_jobs(
        TEST_SHOP, uow_factory, catalog(ShopifyMock([])), caption_generator
    )

    assert result.attempted == 0
    assert fake_vision.calls == []


async def test_drain_pauses_after_each_write_back(uow_factory, caption_generator, fake_vision):
    async with await uow_factory() as uow:
        await uow.settings.upsert(TEST_SHOP, {"max_retries": 1})
    for image_id in ("m1", "m2", "m3"):
        await enqueue_due_job(uow_factory, image_id)
    mock = ShopifyMock([], user_errors={"m3": "Alt is invalid"})
    pause = RecordingSleep()
    fake_vision.responses = ["Blue snowboard", Exception("network unreachable"), "Red mug"]

    result = await drain_failed_jobs(
        TEST_SHOP,
        uow_factory,
        catalog(mock),
        caption_generator,
        write_back_pause_seconds=1.5,
        sleep=pause,
    )

    # m2 fails before reaching Shopify
    assert len(mock.mutations) == 2
    assert pause.waits == [1.5, 1.5]
    assert (result.succeeded, result.rescheduled) == (1, 2)
