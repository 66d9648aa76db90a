"""SQLModel database entities.

All models are imported here to ensure they're registered with SQLModel metadata
for Alembic autogenerate support.
"""

from altsniper.models.failed_job import FailedJob, FailedJobStatus
from altsniper.models.processed_image import ProcessedImage, ProcessedImageStatus
from altsniper.models.scan import InvalidStateTransition, Scan, ScanStatus
from altsniper.models.shop_settings import AltTextLength, AltTextStyle, ShopSettings

__all__ = [
    "Scan",
    "ScanStatus",
    "InvalidStateTransition",
    "ProcessedImage",
    "ProcessedImageStatus",
    "ShopSettings",
    "AltTextStyle",
    "AltTextLength",
    "FailedJob",
    "FailedJobStatus",
]
