"""Shopify Admin API access."""

from altsniper.services.shopify.catalog_client import (
    MediaUpdateResult,
    Product,
    ProductMedia,
    ProductsPage,
    ShopifyCatalogClient,
    normalize_shop_domain,
)

__all__ = [
    "ShopifyCatalogClient",
    "Product",
    "ProductMedia",
    "ProductsPage",
    "MediaUpdateResult",
    "normalize_shop_domain",
]
