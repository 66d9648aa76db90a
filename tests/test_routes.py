"""API route tests through httpx.ASGITransport.

The lifespan is not run; app.state is wired to the test database and the
Shopify client, caption generator and settings dependencies are overridden.
"""

from uuid import uuid4

import httpx
import pytest
import pytest_asyncio

from altsniper.api.dependencies import get_caption_generator, get_catalog_client, get_settings
from altsniper.app import create_app
from altsniper.core.config import Settings
from altsniper.core.database import create_session_factory
from altsniper.services import scan_orchestrator as orchestrator_module
from altsniper.services.shopify.catalog_client import ShopifyCatalogClient
from helpers import TEST_SHOP, ShopifyMock, image_node, product_node

HEADERS = {"X-Shop-Domain": TEST_SHOP}


@pytest.fixture
def shopify() -> ShopifyMock:
    return ShopifyMock(
        [
            [
                product_node("gid://shopify/Product/1", "Mug", [image_node("gid://m/1", None)]),
                product_node("gid://shopify/Product/2", "Hat", [image_node("gid://m/2", "Hat")]),
            ]
        ]
    )


@pytest_asyncio.fixture
async def client(engine, uow_factory, caption_generator, shopify):
    app = create_app()
    app.state.session_factory = create_session_factory(engine)
    app.state.uow_factory = uow_factory

    app.dependency_overrides[get_settings] = lambda: Settings(
        DATABASE_URL="sqlite+aiosqlite:///:memory:",
        APP_ENV="test",
        WRITE_BACK_PAUSE_SECONDS=0,
    )
    app.dependency_overrides[get_caption_generator] = lambda: caption_generator
    app.dependency_overrides[get_catalog_client] = lambda: ShopifyCatalogClient(
        TEST_SHOP, "shpat_test", transport=shopify.transport()
    )

    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://testserver"
    ) as client:
        yield client


async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


async def test_missing_shop_header_is_rejected(client):
    response = await client.get("/api/settings")

    assert response.status_code == 400
    assert response.json()["detail"] == "Missing X-Shop-Domain header"


@pytest.mark.parametrize("path", ["/api/scans", "/api/failed-jobs/drain"])
async def test_foreign_shop_domain_is_rejected(client, shopify, path):
    response = await client.post(
        path, headers={"X-Shop-Domain": "attacker.example.com/steal?x="}, json={}
    )

    assert response.status_code == 400
    assert "Invalid shop domain" in response.json()["detail"]
    assert shopify.queries == []
    assert shopify.mutations == []


async def test_shop_domain_header_is_normalized(client):
    await client.put(
        "/api/settings",
        headers={"X-Shop-Domain": "  TEST-SHOP.myshopify.com "},
        json={"alt_text_style": "casual"},
    )

    response = await client.get("/api/settings", headers=HEADERS)

    assert response.json()["alt_text_style"] == "casual"


async def test_settings_defaults_and_partial_update(client):
    response = await client.get("/api/settings", headers=HEADERS)
    assert response.status_code == 200
    body = response.json()
    assert body["alt_text_style"] == "professional"
    assert body["alt_text_length"] == "medium"
    assert body["max_length"] == 100
    assert body["auto_retry"] is True

    response = await client.put(
        "/api/settings",
        headers=HEADERS,
        json={"alt_text_length": "long", "custom_prompt": "Describe it.", "max_retries": 5},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["alt_text_length"] == "long"
    assert body["max_length"] == 125
    assert body["custom_prompt"] == "Describe it."
    assert body["max_retries"] == 5
    assert body["alt_text_style"] == "professional"

    response = await client.put("/api/settings", headers=HEADERS, json={"custom_prompt": ""})
    assert response.json()["custom_prompt"] is None


@pytest.mark.parametrize(
    "payload",
    [
        {"batch_size": 11},
        {"batch_size": 0},
        {"max_retries": 0},
        {"alt_text_style": "shouty"},
        {"alt_text_length": "epic"},
    ],
)
async def test_invalid_settings_are_rejected(client, payload):
    response = await client.put("/api/settings", headers=HEADERS, json=payload)

    assert response.status_code == 422


async def test_scan_and_scan_details(client, shopify):
    response = await client.post("/api/scans", headers=HEADERS, json={})

    assert response.status_code == 200
    result = response.json()
    assert result["status"] == "completed"
    assert result["total_images"] == 2
    assert result["missing_alt_text"] == 1
    assert result["updated"] == 1
    assert result["skipped"] == 1
    assert len(shopify.mutations) == 1

    response = await client.get(f"/api/scans/{result['scan_id']}", headers=HEADERS)
    assert response.status_code == 200
    details = response.json()
    assert details["scan"]["images_processed"] == 1
    assert [i["image_id"] for i in details["images"]] == ["gid://m/1"]
    assert details["images"][0]["status"] == "success"

    response = await client.get("/api/scans", headers=HEADERS)
    assert [entry["scan"]["id"] for entry in response.json()] == [result["scan_id"]]


async def test_scan_of_another_shop_is_not_found(client):
    result = (await client.post("/api/scans", headers=HEADERS, json={})).json()

    other = await client.get(
        f"/api/scans/{result['scan_id']}", headers={"X-Shop-Domain": "other.myshopify.com"}
    )
    missing = await client.get(f"/api/scans/{uuid4()}", headers=HEADERS)

    assert other.status_code == 404
    assert missing.status_code == 404


async def test_concurrent_scan_is_conflict(client):
    orchestrator_module._running_shops.add(TEST_SHOP)
    try:
        response = await client.post("/api/scans", headers=HEADERS, json={"force_all": True})
    finally:
        orchestrator_module._running_shops.discard(TEST_SHOP)

    assert response.status_code == 409


async def test_analytics_after_scan(client):
    await client.post("/api/scans", headers=HEADERS, json={"force_all": True})

    response = await client.get("/api/analytics", headers=HEADERS)

    assert response.status_code == 200
    body = response.json()
    assert body["total_scans"] == 1
    assert body["total_images_processed"] == 2
    assert body["success_rate"] == 100.0
    assert body["recent_scans"][0]["processed_image_count"] == 2
    assert len(body["chart"]) == 1
    assert body["chart"][0]["scans"] == 1


async def test_failed_jobs_listing_and_drain(client, fake_vision):
    fake_vision.responses = [Exception("Request timeout")]
    await client.post("/api/scans", headers=HEADERS, json={})

    response = await client.get("/api/failed-jobs", headers=HEADERS)
    body = response.json()
    assert body["pending"] == 1
    assert body["jobs"][0]["image_id"] == "gid://m/1"
    assert body["jobs"][0]["status"] == "pending"

    # First retry is not due for another minute
    response = await client.post("/api/failed-jobs/drain", headers=HEADERS)
    assert response.status_code == 200
    assert response.json()["attempted"] == 0
