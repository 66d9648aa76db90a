"""Repository layer.

Provides data access abstractions for all domain entities.
Each repository is self-contained and works on the session it is given.
"""

from altsniper.repositories.failed_job import FailedJobRepository
from altsniper.repositories.processed_image import ProcessedImageRepository
from altsniper.repositories.scan import ScanRepository
from altsniper.repositories.shop_settings import ShopSettingsRepository

__all__ = [
    "ScanRepository",
    "ProcessedImageRepository",
    "ShopSettingsRepository",
    "FailedJobRepository",
]
