"""Scan API endpoints.

- POST /api/scans - Run a catalog scan for the calling shop and return its summary
- GET /api/scans - Recent scans with their newest processed images
- GET /api/scans/{scan_id} - One scan with every processed image

The scan runs inside the request; the response is sent once the scan has
reached its terminal status.
"""

from datetime import datetime
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from altsniper.api.dependencies import get_scan_orchestrator, get_shop, get_uow_factory
from altsniper.models.processed_image import ProcessedImage
from altsniper.models.scan import Scan
from altsniper.services.analytics import get_recent_activity, get_scan_details
from altsniper.services.exceptions import ScanInProgressError, ShopifyAPIError
from altsniper.services.scan_orchestrator import ScanOrchestrator

logger = structlog.get_logger()
router = APIRouter(prefix="/api/scans", tags=["scans"])


# Request/Response Models


class StartScanRequest(BaseModel):
    force_all: bool = Field(
        default=False,
        description="Regenerate alt text for images that already have it",
    )


class ScanResultResponse(BaseModel):
    """Summary of a finished scan."""

    scan_id: UUID
    status: str = Field(..., description="completed or completed_with_errors")
    total_products: int
    total_images: int
    missing_alt_text: int = Field(..., description="Images attempted in this scan")
    updated: int
    failed: int
    skipped: int


class ProcessedImageDTO(BaseModel):
    id: UUID
    product_id: str
    product_title: str
    image_id: str
    image_url: str
    old_alt_text: str | None = None
    new_alt_text: str
    status: str
    error_message: str | None = None
    processed_at: datetime


class ScanDTO(BaseModel):
    id: UUID
    status: str
    force_all: bool
    started_at: datetime
    completed_at: datetime | None = None
    total_products: int
    total_images: int
    images_processed: int
    images_skipped: int
    images_failed: int


class ScanDetailResponse(BaseModel):
    scan: ScanDTO
    images: list[ProcessedImageDTO]


def scan_to_dto(scan: Scan) -> ScanDTO:
    return ScanDTO(
        id=scan.id,
        status=scan.status.value,
        force_all=scan.force_all,
        started_at=scan.started_at,
        completed_at=scan.completed_at,
        total_products=scan.total_products,
        total_images=scan.total_images,
        images_processed=scan.images_processed,
        images_skipped=scan.images_skipped,
        images_failed=scan.images_failed,
    )


def image_to_dto(image: ProcessedImage) -> ProcessedImageDTO:
    return ProcessedImageDTO(
        id=image.id,
        product_id=image.product_id,
        product_title=image.product_title,
        image_id=image.image_id,
        image_url=image.image_url,
        old_alt_text=image.old_alt_text,
        new_alt_text=image.new_alt_text,
        status=image.status.value,
        error_message=image.error_message,
        processed_at=image.processed_at,
    )


# API Endpoints


@router.post("", response_model=ScanResultResponse, status_code=status.HTTP_200_OK)
async def start_scan(
    request: StartScanRequest,
    shop: str = Depends(get_shop),
    orchestrator: ScanOrchestrator = Depends(get_scan_orchestrator),
) -> ScanResultResponse:
    """Scan the shop's catalog and write generated alt text back to Shopify.

    Raises:
        HTTPException 409: A scan for this shop is already running
        HTTPException 502: The catalog could not be fetched from Shopify
    """
    try:
        result = await orchestrator.run_scan(shop, force_all=request.force_all)
    except ScanInProgressError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except ShopifyAPIError as e:
        logger.error("scan.catalog_fetch_failed", shop=shop, error=str(e))
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    return ScanResultResponse(
        scan_id=result.scan_id,
        status=result.status.value,
        total_products=result.total_products,
        total_images=result.total_images,
        missing_alt_text=result.missing_alt_text,
        updated=result.updated,
        failed=result.failed,
        skipped=result.skipped,
    )


@router.get("", response_model=list[ScanDetailResponse], status_code=status.HTTP_200_OK)
async def list_recent_scans(
    limit: int = Query(default=5, ge=1, le=50),
    shop: str = Depends(get_shop),
    uow_factory=Depends(get_uow_factory),
) -> list[ScanDetailResponse]:
    """Recent scans, newest first, each with up to five of its latest images."""
    activity = await get_recent_activity(uow_factory, shop, limit=limit)
    return [
        ScanDetailResponse(
            scan=scan_to_dto(entry.scan),
            images=[image_to_dto(image) for image in entry.images],
        )
        for entry in activity
    ]


@router.get("/{scan_id}", response_model=ScanDetailResponse, status_code=status.HTTP_200_OK)
async def get_scan(
    scan_id: UUID,
    shop: str = Depends(get_shop),
    uow_factory=Depends(get_uow_factory),
) -> ScanDetailResponse:
    """One scan with all of its processed images, newest first.

    Raises:
        HTTPException 404: Scan does not exist or belongs to another shop
    """
    details = await get_scan_details(uow_factory, scan_id)
    if details is None or details.scan.shop != shop:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Scan not found")

    return ScanDetailResponse(
        scan=scan_to_dto(details.scan),
        images=[image_to_dto(image) for image in details.images],
    )
