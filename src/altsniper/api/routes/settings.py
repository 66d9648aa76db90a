"""Per-shop settings endpoints.

- GET /api/settings - Current settings (defaults are persisted on first read)
- PUT /api/settings - Partial update; omitted fields keep their value
"""

from datetime import datetime

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from altsniper.api.dependencies import get_shop, get_uow_factory
from altsniper.models.shop_settings import AltTextLength, AltTextStyle, ShopSettings

logger = structlog.get_logger()
router = APIRouter(prefix="/api/settings", tags=["settings"])


class SettingsResponse(BaseModel):
    shop: str
    alt_text_style: AltTextStyle
    alt_text_length: AltTextLength
    max_length: int = Field(..., description="Character ceiling implied by alt_text_length")
    custom_prompt: str | None = None
    batch_size: int
    auto_retry: bool
    max_retries: int
    updated_at: datetime


class UpdateSettingsRequest(BaseModel):
    """Partial settings update. An empty custom_prompt clears it."""

    alt_text_style: AltTextStyle | None = None
    alt_text_length: AltTextLength | None = None
    custom_prompt: str | None = Field(default=None, max_length=2000)
    batch_size: int | None = Field(default=None, ge=1, le=10)
    auto_retry: bool | None = None
    max_retries: int | None = Field(default=None, ge=1, le=10)


def settings_to_response(settings: ShopSettings) -> SettingsResponse:
    return SettingsResponse(
        shop=settings.shop,
        alt_text_style=settings.alt_text_style,
        alt_text_length=settings.alt_text_length,
        max_length=settings.max_length,
        custom_prompt=settings.custom_prompt,
        batch_size=settings.batch_size,
        auto_retry=settings.auto_retry,
        max_retries=settings.max_retries,
        updated_at=settings.updated_at,
    )


@router.get("", response_model=SettingsResponse, status_code=status.HTTP_200_OK)
async def get_shop_settings(
    shop: str = Depends(get_shop),
    uow_factory=Depends(get_uow_factory),
) -> SettingsResponse:
    async with await uow_factory() as uow:
        settings = await uow.settings.get_or_create(shop)
    return settings_to_response(settings)


@router.put("", response_model=SettingsResponse, status_code=status.HTTP_200_OK)
async def update_shop_settings(
    request: UpdateSettingsRequest,
    shop: str = Depends(get_shop),
    uow_factory=Depends(get_uow_factory),
) -> SettingsResponse:
    """Update the shop's settings.

    Raises:
        HTTPException 400: Unknown field in the update
    """
    changes = request.model_dump(exclude_unset=True)
    # Explicit nulls only make sense for the optional custom prompt
    changes = {
        field: value
        for field, value in changes.items()
        if value is not None or field == "custom_prompt"
    }
    if changes.get("custom_prompt") is not None and not changes["custom_prompt"].strip():
        changes["custom_prompt"] = None

    try:
        async with await uow_factory() as uow:
            settings = await uow.settings.upsert(shop, changes)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    logger.info("settings.updated", shop=shop, fields=sorted(changes))
    return settings_to_response(settings)
