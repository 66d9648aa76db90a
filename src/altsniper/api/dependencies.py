"""FastAPI dependencies shared by the API routes.

This module provides reusable FastAPI dependencies for:
- Settings and Unit of Work access
- Resolving the calling shop from the X-Shop-Domain header
- Building the Shopify client, caption generator and scan orchestrator
"""

from typing import Annotated, Callable

from fastapi import Depends, Header, HTTPException, Request, status

from altsniper.core.config import Settings
from altsniper.services.captioning.caption_generator import CaptionGenerator
from altsniper.services.exceptions import InvalidShopDomainError
from altsniper.services.scan_orchestrator import ScanOrchestrator
from altsniper.services.shopify.catalog_client import ShopifyCatalogClient, normalize_shop_domain
from altsniper.uow import UnitOfWork


def get_settings() -> Settings:
    """Get application settings instance.

    Returns:
        Settings instance loaded from environment variables.
    """
    return Settings()  # type: ignore[call-arg]  # Pydantic loads from env vars


def get_uow_factory(request: Request) -> Callable[[], UnitOfWork]:
    """Get UnitOfWork factory from app state.

    Example:
        >>> @router.get("/endpoint")
        >>> async def endpoint(uow_factory=Depends(get_uow_factory)):
        ...     async with await uow_factory() as uow:
        ...         await uow.settings.get_or_create(shop)
    """
    return request.app.state.uow_factory


def get_shop(x_shop_domain: Annotated[str | None, Header()] = None) -> str:
    """Resolve the shop the request acts on.

    Raises:
        HTTPException: 400 if the X-Shop-Domain header is missing, blank or
            not a *.myshopify.com domain
    """
    if not x_shop_domain or not x_shop_domain.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Missing X-Shop-Domain header"
        )
    try:
        return normalize_shop_domain(x_shop_domain)
    except InvalidShopDomainError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e


def get_catalog_client(
    shop: str = Depends(get_shop),
    settings: Settings = Depends(get_settings),
) -> ShopifyCatalogClient:
    return ShopifyCatalogClient(
        shop=shop,
        access_token=settings.shopify_access_token,
        api_version=settings.shopify_api_version,
    )


def get_caption_generator(
    uow_factory: Callable = Depends(get_uow_factory),
    settings: Settings = Depends(get_settings),
) -> CaptionGenerator:
    return CaptionGenerator(
        uow_factory=uow_factory,
        api_key=settings.gemini_api_key,
        model=settings.gemini_model,
    )


def get_scan_orchestrator(
    uow_factory: Callable = Depends(get_uow_factory),
    catalog_client: ShopifyCatalogClient = Depends(get_catalog_client),
    caption_generator: CaptionGenerator = Depends(get_caption_generator),
    settings: Settings = Depends(get_settings),
) -> ScanOrchestrator:
    return ScanOrchestrator(
        uow_factory=uow_factory,
        catalog_client=catalog_client,
        caption_generator=caption_generator,
        page_size=settings.catalog_page_size,
        write_back_pause_seconds=settings.write_back_pause_seconds,
    )
