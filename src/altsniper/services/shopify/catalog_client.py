"""Shopify Admin GraphQL client for product media listing and alt text updates."""

import re
from typing import AsyncIterator, Callable, Optional

import httpx
import structlog
from pydantic import BaseModel, Field

from altsniper.services.exceptions import InvalidShopDomainError, ShopifyAPIError

logger = structlog.get_logger(__name__)

DEFAULT_PAGE_SIZE = 250
MEDIA_PER_PRODUCT = 10
REQUEST_TIMEOUT_SECONDS = 30.0
SHOP_DOMAIN_PATTERN = re.compile(r"^[a-z0-9][a-z0-9-]*\.myshopify\.com$")

PRODUCTS_QUERY = """
query getProductsWithMedia($first: Int!, $after: String) {
  products(first: $first, after: $after) {
    edges {
      node {
        id
        title
        handle
        tags
        media(first: %d) {
          edges {
            node {
              ... on MediaImage {
                id
                alt
                image {
                  url
                }
              }
            }
          }
        }
      }
      cursor
    }
    pageInfo {
      hasNextPage
      endCursor
    }
  }
}
""" % MEDIA_PER_PRODUCT

UPDATE_MEDIA_MUTATION = """
mutation updateProductMediaAltText($productId: ID!, $media: [UpdateMediaInput!]!) {
  productUpdateMedia(productId: $productId, media: $media) {
    media {
      ... on MediaImage {
        id
        alt
      }
    }
    userErrors {
      field
      message
    }
  }
}
"""


class ProductMedia(BaseModel):
    """One media edge of a product. Non-image media has no id or url."""

    id: Optional[str] = None
    alt: Optional[str] = None
    image_url: Optional[str] = None

    @property
    def is_image(self) -> bool:
        return bool(self.id and self.image_url)

    @property
    def has_alt_text(self) -> bool:
        return bool(self.alt and self.alt.strip())


class Product(BaseModel):
    id: str
    title: str
    handle: str = ""
    tags: list[str] = Field(default_factory=list)
    media: list[ProductMedia] = Field(default_factory=list)

    @property
    def images(self) -> list[ProductMedia]:
        """Media edges that carry an image."""
        return [m for m in self.media if m.is_image]


class ProductsPage(BaseModel):
    products: list[Product]
    has_next_page: bool
    end_cursor: Optional[str] = None


class UserError(BaseModel):
    field: Optional[list[str]] = None
    message: str


class MediaUpdateResult(BaseModel):
    media: list[ProductMedia] = Field(default_factory=list)
    user_errors: list[UserError] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.user_errors

    @property
    def error_message(self) -> str:
        return "; ".join(e.message for e in self.user_errors)


def _parse_media(node: dict) -> ProductMedia:
    image = node.get("image") or {}
    return ProductMedia(id=node.get("id"), alt=node.get("alt"), image_url=image.get("url"))


def _parse_product(node: dict) -> Product:
    return Product(
        id=node["id"],
        title=node.get("title") or "",
        handle=node.get("handle") or "",
        tags=node.get("tags") or [],
        media=[_parse_media(edge["node"]) for edge in node.get("media", {}).get("edges", [])],
    )


def normalize_shop_domain(shop: str | None) -> str:
    """Trim and lower-case a shop domain, accepting only *.myshopify.com.

    The domain becomes the host of every Admin API request, which carries the
    access token, so anything else is rejected.

    Raises:
        InvalidShopDomainError: If the value is blank or not a myshopify.com domain
    """
    normalized = (shop or "").strip().lower()
    if not SHOP_DOMAIN_PATTERN.match(normalized):
        raise InvalidShopDomainError(f"Invalid shop domain: {shop!r}")
    return normalized


class ShopifyCatalogClient:
    """Paginated product listing and media alt text updates for one shop.

    No caching and no retries: every call hits the Admin API and errors
    propagate to the caller.
    """

    def __init__(
        self,
        shop: str,
        access_token: str,
        api_version: str = "2025-01",
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize Shopify client.

        Args:
            shop: Shop domain (e.g. "example.myshopify.com")
            access_token: Admin API access token (from SHOPIFY_ACCESS_TOKEN env var)
            api_version: Admin API version
            transport: httpx transport override

        Raises:
            InvalidShopDomainError: If shop is not a *.myshopify.com domain
        """
        shop = normalize_shop_domain(shop)
        self.shop = shop
        self.endpoint = f"https://{shop}/admin/api/{api_version}/graphql.json"
        self.headers = {
            "X-Shopify-Access-Token": access_token,
            "Content-Type": "application/json",
        }
        self._transport = transport

    async def graphql(self, query: str, variables: dict | None = None) -> dict:
        """Execute a GraphQL document and return its data payload.

        Raises:
            ShopifyAPIError: Transport failure, non-2xx status, or top-level GraphQL errors
        """
        try:
            async with httpx.AsyncClient(
                timeout=REQUEST_TIMEOUT_SECONDS, transport=self._transport
            ) as client:
                response = await client.post(
                    self.endpoint,
                    headers=self.headers,
                    json={"query": query, "variables": variables or {}},
                )
        except httpx.TimeoutException as e:
            raise ShopifyAPIError(f"Request timeout after {REQUEST_TIMEOUT_SECONDS}s: {e}") from e
        except httpx.HTTPError as e:
            raise ShopifyAPIError(f"Network error: {e}") from e

        if response.status_code == 429:
            raise ShopifyAPIError(
                f"Rate limit exceeded (429): {response.text}", status_code=429
            )
        if response.status_code >= 400:
            raise ShopifyAPIError(
                f"Shopify API error ({response.status_code}): {response.text}",
                status_code=response.status_code,
            )

        body = response.json()
        if body.get("errors"):
            messages = "; ".join(
                str(error.get("message", error)) if isinstance(error, dict) else str(error)
                for error in (
                    body["errors"] if isinstance(body["errors"], list) else [body["errors"]]
                )
            )
            raise ShopifyAPIError(f"GraphQL errors: {messages}")

        return body.get("data") or {}

    async def fetch_products_page(
        self, page_size: int = DEFAULT_PAGE_SIZE, cursor: str | None = None
    ) -> ProductsPage:
        """Fetch a single page of products with their media.

        Args:
            page_size: Products per page (Shopify maximum: 250)
            cursor: endCursor of the previous page, None for the first page

        Returns:
            Products of the page and the pagination state
        """
        data = await self.graphql(PRODUCTS_QUERY, {"first": page_size, "after": cursor})
        products = data["products"]
        page_info = products["pageInfo"]
        return ProductsPage(
            products=[_parse_product(edge["node"]) for edge in products["edges"]],
            has_next_page=bool(page_info["hasNextPage"]),
            end_cursor=page_info.get("endCursor"),
        )

    async def iter_product_batches(
        self, page_size: int = DEFAULT_PAGE_SIZE, cursor: str | None = None
    ) -> AsyncIterator[list[Product]]:
        """Yield one batch of products per page, fetching the next page on demand.

        Finite and single-pass; calling again restarts from `cursor`.
        """
        has_next_page = True
        while has_next_page:
            page = await self.fetch_products_page(page_size, cursor)
            yield page.products
            has_next_page = page.has_next_page
            cursor = page.end_cursor

    async def fetch_all_products(
        self,
        page_size: int = DEFAULT_PAGE_SIZE,
        on_progress: Callable[[list[Product], int], None] | None = None,
    ) -> list[Product]:
        """Fetch the whole catalog by following cursors until exhausted.

        Args:
            page_size: Products per page
            on_progress: Called after each page with (page products, total fetched so far)

        Returns:
            All products in catalog order
        """
        all_products: list[Product] = []
        async for batch in self.iter_product_batches(page_size):
            all_products.extend(batch)
            logger.debug(
                "catalog.page_fetched",
                shop=self.shop,
                page_products=len(batch),
                total_fetched=len(all_products),
            )
            if on_progress is not None:
                on_progress(batch, len(all_products))
        return all_products

    async def count_products(self) -> int:
        """Estimate the catalog size from a one-product page.

        Shopify offers no direct count here, so any catalog with more than one
        product reports DEFAULT_PAGE_SIZE as "many products".
        """
        page = await self.fetch_products_page(page_size=1)
        if page.has_next_page:
            return DEFAULT_PAGE_SIZE
        return len(page.products)

    async def update_media_alt_text(
        self, product_id: str, media_id: str, alt: str
    ) -> MediaUpdateResult:
        """Write alt text to one product image.

        Returns:
            Updated media and any field-level user errors reported by Shopify
        """
        data = await self.graphql(
            UPDATE_MEDIA_MUTATION,
            {"productId": product_id, "media": [{"id": media_id, "alt": alt}]},
        )
        payload = data.get("productUpdateMedia") or {}
        return MediaUpdateResult(
            media=[_parse_media(node) for node in payload.get("media") or [] if node],
            user_errors=[UserError(**error) for error in payload.get("userErrors") or []],
        )
