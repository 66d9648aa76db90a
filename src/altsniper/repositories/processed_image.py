"""ProcessedImage repository.

Records are append-only: there is no update or delete method.
"""

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from altsniper.models.processed_image import ProcessedImage, ProcessedImageStatus


class ProcessedImageRepository:
    """Repository for ProcessedImage entities."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def record(
        self,
        *,
        scan_id: UUID,
        product_id: str,
        product_title: str,
        image_id: str,
        image_url: str,
        old_alt_text: str | None,
        new_alt_text: str,
        status: ProcessedImageStatus,
        error_message: str | None = None,
    ) -> ProcessedImage:
        """Persist the outcome of one image attempt.

        Args:
            scan_id: Owning scan
            product_id: Shopify product GID
            product_title: Product title at scan time
            image_id: Shopify MediaImage GID
            image_url: CDN URL of the image
            old_alt_text: Alt text before the attempt (None if absent)
            new_alt_text: Generated alt text ("" when the attempt failed)
            status: Outcome of the attempt
            error_message: Failure description (truncated to 1000 characters)

        Returns:
            Persisted record
        """
        image = ProcessedImage(
            scan_id=scan_id,
            product_id=product_id,
            product_title=product_title,
            image_id=image_id,
            image_url=image_url,
            old_alt_text=old_alt_text,
            new_alt_text=new_alt_text,
            status=status,
            error_message=error_message[:1000] if error_message else None,
        )
        self.session.add(image)
        await self.session.flush()
        return image

    async def list_by_scan(self, scan_id: UUID) -> list[ProcessedImage]:
        """Retrieve all images of a scan in processing order."""
        result = await self.session.execute(
            select(ProcessedImage)
            .where(ProcessedImage.scan_id == scan_id)  # type: ignore[arg-type]
            .order_by(ProcessedImage.processed_at.asc())  # type: ignore[attr-defined]
        )
        return list(result.scalars().all())

    async def count_by_scan(self, scan_id: UUID) -> int:
        result = await self.session.execute(
            select(func.count(ProcessedImage.id)).where(ProcessedImage.scan_id == scan_id)  # type: ignore[arg-type]
        )
        return result.scalar() or 0
