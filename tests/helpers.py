"""Test doubles shared across test modules."""

import json

import httpx

TEST_SHOP = "test-shop.myshopify.com"


class FakeVisionClient:
    """Vision client returning queued responses (strings) or raising queued exceptions.

    The last queued response repeats once the others are used up.
    """

    def __init__(self, responses=None):
        self.responses = list(responses or ["A red cotton t-shirt on a white background"])
        self.calls: list[dict] = []

    async def describe_image(self, image_bytes: bytes, prompt: str, mime_type: str) -> str:
        self.calls.append({"image_bytes": image_bytes, "prompt": prompt, "mime_type": mime_type})
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response


class RecordingSleep:
    """asyncio.sleep replacement that records requested waits and returns immediately."""

    def __init__(self):
        self.waits: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.waits.append(seconds)


def product_node(product_id: str, title: str, media: list[dict], tags=None) -> dict:
    """Build a products edge node the way the Admin API returns it."""
    return {
        "id": product_id,
        "title": title,
        "handle": title.lower().replace(" ", "-"),
        "tags": tags or [],
        "media": {"edges": [{"node": node} for node in media]},
    }


def image_node(media_id: str, alt: str | None, url: str | None = None) -> dict:
    return {
        "id": media_id,
        "alt": alt,
        "image": {"url": url or f"https://cdn.shopify.com/{media_id.rsplit('/', 1)[-1]}.jpg"},
    }


class ShopifyMock:
    """In-memory Admin GraphQL endpoint for httpx.MockTransport.

    Serves `pages` (lists of product nodes) in order for the products query and
    answers productUpdateMedia with `user_errors` for media ids listed there.
    """

    def __init__(self, pages: list[list[dict]], user_errors: dict[str, str] | None = None):
        self.pages = pages
        self.user_errors = user_errors or {}
        self.queries: list[dict] = []
        self.mutations: list[dict] = []

    def handler(self, request):
        body = json.loads(request.content)
        variables = body["variables"]

        if "productUpdateMedia" in body["query"]:
            self.mutations.append(variables)
            media = variables["media"][0]
            message = self.user_errors.get(media["id"])
            payload = {
                "media": [] if message else [{"id": media["id"], "alt": media["alt"]}],
                "userErrors": [{"field": ["media", "0", "alt"], "message": message}]
                if message
                else [],
            }
            return httpx.Response(200, json={"data": {"productUpdateMedia": payload}})

        self.queries.append(variables)
        index = int(variables["after"]) if variables.get("after") else 0
        page = self.pages[index] if self.pages else []
        has_next = index + 1 < len(self.pages)
        return httpx.Response(
            200,
            json={
                "data": {
                    "products": {
                        "edges": [{"node": node, "cursor": f"c{index}"} for node in page],
                        "pageInfo": {
                            "hasNextPage": has_next,
                            "endCursor": str(index + 1) if has_next else None,
                        },
                    }
                }
            },
        )

    def transport(self):
        return httpx.MockTransport(self.handler)
