"""Catalog scan orchestrator.

Walks every image of a shop's catalog, generates alt text where it is missing
(or everywhere when forced), writes it back to Shopify and records one
ProcessedImage per attempted image.

Failure semantics:
- Catalog fetch and Scan record persistence errors propagate to the caller.
- Every per-image failure is caught, counted, recorded as a failed
  ProcessedImage and, when the shop has auto-retry on and the error is
  transient, queued as a FailedJob. A scan always reaches a terminal status.

Images are processed strictly one at a time; the shop's batch_size setting
does not change that. A fixed pause follows every alt text mutation to stay
under the Admin API rate limit.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Awaitable, Callable
from uuid import UUID

import structlog

from altsniper.models.processed_image import ProcessedImageStatus
from altsniper.models.scan import ScanStatus
from altsniper.models.shop_settings import ShopSettings
from altsniper.services.captioning.caption_generator import CaptionGenerator
from altsniper.services.exceptions import ScanInProgressError
from altsniper.services.retry_policy import is_retryable_error
from altsniper.services.shopify.catalog_client import (
    DEFAULT_PAGE_SIZE,
    Product,
    ProductMedia,
    ShopifyCatalogClient,
)

logger = structlog.get_logger(__name__)

NO_ALT_TEXT_GENERATED = "No alt-text generated"
DEFAULT_WRITE_BACK_PAUSE_SECONDS = 2.0

# Shops with a scan in flight in this process
_running_shops: set[str] = set()


@dataclass
class ScanResult:
    """Summary returned to the caller once a scan reaches its terminal status."""

    scan_id: UUID
    status: ScanStatus
    total_products: int
    total_images: int
    missing_alt_text: int
    updated: int
    failed: int

    @property
    def skipped(self) -> int:
        return self.total_images - self.missing_alt_text


class ScanOrchestrator:
    """Runs one catalog-wide alt text scan for a shop."""

    def __init__(
        self,
        uow_factory: Callable,
        catalog_client: ShopifyCatalogClient,
        caption_generator: CaptionGenerator,
        page_size: int = DEFAULT_PAGE_SIZE,
        write_back_pause_seconds: float = DEFAULT_WRITE_BACK_PAUSE_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize the orchestrator.

        Args:
            uow_factory: Unit of Work factory; every write commits on its own
            catalog_client: Shopify client bound to the shop being scanned
            caption_generator: Alt text generator
            page_size: Products per catalog page
            write_back_pause_seconds: Pause after each alt text mutation
            sleep: Coroutine used for the pause
        """
        self._uow_factory = uow_factory
        self._catalog = catalog_client
        self._captions = caption_generator
        self._page_size = page_size
        self._pause = write_back_pause_seconds
        self._sleep = sleep

    async def run_scan(self, shop: str, force_all: bool = False) -> ScanResult:
        """Scan the shop's catalog and fill in missing alt text.

        Args:
            shop: Shop domain
            force_all: Regenerate alt text for images that already have it

        Returns:
            Final counters and terminal status

        Raises:
            ScanInProgressError: A scan for this shop is already running here
        """
        if shop in _running_shops:
            raise ScanInProgressError(f"A scan is already running for {shop}")

        _running_shops.add(shop)
        try:
            return await self._run(shop, force_all)
        finally:
            _running_shops.discard(shop)

    async def _run(self, shop: str, force_all: bool) -> ScanResult:
        start_time = time.time()

        async with await self._uow_factory() as uow:
            settings = await uow.settings.get_or_create(shop)
            scan = await uow.scans.create(shop, force_all=force_all)

        logger.info("scan.started", shop=shop, scan_id=str(scan.id), force_all=force_all)

        products = await self._catalog.fetch_all_products(self._page_size)

        total_images = 0
        missing_alt_text = 0
        updated = 0
        failed = 0

        for product in products:
            for media in product.images:
                total_images += 1

                if not force_all and media.has_alt_text:
                    continue

                missing_alt_text += 1
                if await self._process_image(scan.id, shop, settings, product, media):
                    updated += 1
                else:
                    failed += 1

        async with await self._uow_factory() as uow:
            scan = await uow.scans.complete(
                scan.id,
                total_products=len(products),
                total_images=total_images,
                images_processed=updated,
                images_skipped=total_images - missing_alt_text,
                images_failed=failed,
            )

        logger.info(
            "scan.completed",
            shop=shop,
            scan_id=str(scan.id),
            status=scan.status.value,
            total_products=len(products),
            total_images=total_images,
            missing_alt_text=missing_alt_text,
            updated=updated,
            failed=failed,
            duration_seconds=time.time() - start_time,
        )

        return ScanResult(
            scan_id=scan.id,
            status=scan.status,
            total_products=len(products),
            total_images=total_images,
            missing_alt_text=missing_alt_text,
            updated=updated,
            failed=failed,
        )

    async def _process_image(
        self,
        scan_id: UUID,
        shop: str,
        settings: ShopSettings,
        product: Product,
        media: ProductMedia,
    ) -> bool:
        """Generate, write back and record alt text for one image.

        Returns:
            True if Shopify accepted the new alt text and the success was
            recorded, False otherwise
        """
        try:
            new_alt_text = await self._captions.generate(
                media.image_url,
                product.title,
                product.tags,
                shop,
                max_retries=settings.max_retries,
            )
        except Exception as e:
            await self._handle_error(scan_id, shop, settings, product, media, e)
            return False

        if not new_alt_text:
            await self._record_failure(
                scan_id, shop, settings, product, media, NO_ALT_TEXT_GENERATED, enqueue=True
            )
            return False

        try:
            result = await self._catalog.update_media_alt_text(product.id, media.id, new_alt_text)
        except Exception as e:
            await self._handle_error(scan_id, shop, settings, product, media, e)
            return False

        updated = False
        if result.ok:
            try:
                async with await self._uow_factory() as uow:
                    await uow.processed_images.record(
                        scan_id=scan_id,
                        product_id=product.id,
                        product_title=product.title,
                        image_id=media.id,
                        image_url=media.image_url,
                        old_alt_text=media.alt,
                        new_alt_text=new_alt_text,
                        status=ProcessedImageStatus.SUCCESS,
                    )
            except Exception as e:
                # Shopify already holds the new alt text; only the record is missing
                await self._handle_error(scan_id, shop, settings, product, media, e)
            else:
                updated = True
                logger.info(
                    "image.updated",
                    shop=shop,
                    scan_id=str(scan_id),
                    product_id=product.id,
                    image_id=media.id,
                )
        else:
            message = f"Shopify rejected alt text: {result.error_message}"
            logger.warning(
                "image.rejected",
                shop=shop,
                scan_id=str(scan_id),
                product_id=product.id,
                image_id=media.id,
                error_message=message,
            )
            await self._record_failure(
                scan_id,
                shop,
                settings,
                product,
                media,
                message,
                enqueue=is_retryable_error(message),
            )

        await self._sleep(self._pause)
        return updated

    async def _handle_error(
        self,
        scan_id: UUID,
        shop: str,
        settings: ShopSettings,
        product: Product,
        media: ProductMedia,
        error: Exception,
    ) -> None:
        message = str(error) or type(error).__name__
        logger.warning(
            "image.failed",
            shop=shop,
            scan_id=str(scan_id),
            product_id=product.id,
            image_id=media.id,
            error_type=type(error).__name__,
            error_message=message,
        )
        await self._record_failure(
            scan_id,
            shop,
            settings,
            product,
            media,
            message,
            enqueue=is_retryable_error(error) or is_retryable_error(message),
        )

    async def _record_failure(
        self,
        scan_id: UUID,
        shop: str,
        settings: ShopSettings,
        product: Product,
        media: ProductMedia,
        message: str,
        enqueue: bool,
    ) -> None:
        async with await self._uow_factory() as uow:
            await uow.processed_images.record(
                scan_id=scan_id,
                product_id=product.id,
                product_title=product.title,
                image_id=media.id,
                image_url=media.image_url,
                old_alt_text=media.alt,
                new_alt_text="",
                status=ProcessedImageStatus.FAILED,
                error_message=message,
            )

            if settings.auto_retry and enqueue:
                job = await uow.failed_jobs.enqueue(
                    shop=shop,
                    product_id=product.id,
                    product_title=product.title,
                    image_id=media.id,
                    image_url=media.image_url,
                    error_message=message,
                    max_retries=settings.max_retries,
                )
                logger.info(
                    "failed_job.enqueued",
                    shop=shop,
                    job_id=str(job.id),
                    image_id=media.id,
                )
