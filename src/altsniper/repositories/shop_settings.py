"""ShopSettings repository.

Settings rows are created lazily: reading a shop's settings for the first time
persists the defaults.
"""

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from altsniper.core.clock import utcnow
from altsniper.models.shop_settings import ShopSettings

UPDATABLE_FIELDS = frozenset(
    {
        "alt_text_style",
        "alt_text_length",
        "custom_prompt",
        "batch_size",
        "auto_retry",
        "max_retries",
    }
)


class ShopSettingsRepository:
    """Repository for per-shop ShopSettings."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session for database operations
        """
        self.session = session

    async def get_by_shop(self, shop: str) -> ShopSettings | None:
        result = await self.session.execute(
            select(ShopSettings).where(ShopSettings.shop == shop)  # type: ignore[arg-type]
        )
        return result.scalar_one_or_none()

    async def get_or_create(self, shop: str) -> ShopSettings:
        """Retrieve a shop's settings, persisting the defaults on first access.

        Two first reads racing for the same shop surface as an IntegrityError
        on the unique shop column.

        Args:
            shop: Shop domain

        Returns:
            Existing or freshly created settings
        """
        settings = await self.get_by_shop(shop)
        if settings is not None:
            return settings

        settings = ShopSettings(shop=shop)
        self.session.add(settings)
        await self.session.flush()
        return settings

    async def upsert(self, shop: str, changes: dict[str, Any]) -> ShopSettings:
        """Apply a partial update, creating the row with defaults if needed.

        Args:
            shop: Shop domain
            changes: Field values to overwrite (unknown keys are rejected)

        Returns:
            Updated settings

        Raises:
            ValueError: If changes contains a field that cannot be updated
        """
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown settings fields: {', '.join(sorted(unknown))}")

        settings = await self.get_or_create(shop)
        for field, value in changes.items():
            setattr(settings, field, value)
        settings.updated_at = utcnow()

        self.session.add(settings)
        await self.session.flush()
        return settings
