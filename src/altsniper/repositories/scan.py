"""Scan repository.

Provides data access methods for Scan entities and their processed images.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from altsniper.models.processed_image import ProcessedImage
from altsniper.models.scan import Scan


class ScanRepository:
    """Repository for Scan entities."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session for database operations
        """
        self.session = session

    async def create(self, shop: str, force_all: bool = False) -> Scan:
        """Persist a new running scan.

        Args:
            shop: Shop domain the scan belongs to
            force_all: Whether images with existing alt text are regenerated

        Returns:
            Persisted scan with generated ID
        """
        scan = Scan(shop=shop, force_all=force_all)
        self.session.add(scan)
        await self.session.flush()
        return scan

    async def get_by_id(self, scan_id: UUID) -> Scan | None:
        result = await self.session.execute(select(Scan).where(Scan.id == scan_id))  # type: ignore[arg-type]
        return result.scalar_one_or_none()

    async def complete(
        self,
        scan_id: UUID,
        *,
        total_products: int,
        total_images: int,
        images_processed: int,
        images_skipped: int,
        images_failed: int,
    ) -> Scan:
        """Store final aggregates and move the scan to its terminal status.

        Raises:
            LookupError: If the scan no longer exists
            InvalidStateTransition: If the scan already completed
        """
        scan = await self.get_by_id(scan_id)
        if scan is None:
            raise LookupError(f"Scan {scan_id} not found")

        scan.complete(
            total_products=total_products,
            total_images=total_images,
            images_processed=images_processed,
            images_skipped=images_skipped,
            images_failed=images_failed,
        )
        self.session.add(scan)
        await self.session.flush()
        return scan

    async def list_recent(self, shop: str, limit: int = 10) -> list[Scan]:
        """Retrieve the most recent scans for a shop (newest first)."""
        result = await self.session.execute(
            select(Scan)
            .where(Scan.shop == shop)  # type: ignore[arg-type]
            .order_by(Scan.started_at.desc())  # type: ignore[attr-defined]
            .limit(limit)
        )
        return list(result.scalars().all())

    async def list_since(self, shop: str, since: datetime) -> list[Scan]:
        """Retrieve scans started at or after `since` (oldest first)."""
        result = await self.session.execute(
            select(Scan)
            .where(Scan.shop == shop, Scan.started_at >= since)  # type: ignore[arg-type]
            .order_by(Scan.started_at.asc())  # type: ignore[attr-defined]
        )
        return list(result.scalars().all())

    async def get_with_images(
        self, scan_id: UUID, image_limit: int | None = None
    ) -> tuple[Scan, list[ProcessedImage]] | None:
        """Retrieve a scan together with its processed images (newest first).

        Args:
            scan_id: Scan's unique identifier
            image_limit: Optional cap on the number of images returned

        Returns:
            (scan, images) if the scan exists, None otherwise
        """
        scan = await self.get_by_id(scan_id)
        if scan is None:
            return None

        stmt = (
            select(ProcessedImage)
            .where(ProcessedImage.scan_id == scan_id)  # type: ignore[arg-type]
            .order_by(ProcessedImage.processed_at.desc())  # type: ignore[attr-defined]
        )
        if image_limit is not None:
            stmt = stmt.limit(image_limit)

        result = await self.session.execute(stmt)
        return scan, list(result.scalars().all())
