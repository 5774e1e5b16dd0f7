import pytest
from httpx import AsyncClient, ASGITransport

from app.core.db import get_db
from app.core.container import get_inventory_service, get_reorder_alert_service
from main import app

ADMIN = {"X-Actor-Id": "7", "X-Actor-Role": "admin", "X-Actor-Name": "alice"}
VIEWER = {"X-Actor-Id": "8", "X-Actor-Role": "customer"}


@pytest.fixture
async def client(session_factory, inventory, alerts):
    async def override_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_inventory_service] = lambda: inventory
    app.dependency_overrides[get_reorder_alert_service] = lambda: alerts

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


async def seed(client):
    product = (await client.post("/products/", json={"sku": "CH-1", "name": "Chair", "reorder_threshold": 10}, headers=ADMIN)).json()["data"]
    north = (await client.post("/inventory/locations/", json={"code": "NORTH", "name": "North"}, headers=ADMIN)).json()["data"]
    south = (await client.post("/inventory/locations/", json={"code": "SOUTH", "name": "South"}, headers=ADMIN)).json()["data"]
    return product, north, south


async def test_health(client):
    resp = await client.get("/")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


async def test_actor_headers_required(client):
    resp = await client.get("/inventory/analytics/dashboard")

    assert resp.status_code == 401
    assert resp.json()["success"] is False
    assert resp.json()["error_code"] == "UNAUTHORIZED"


async def test_read_only_role_cannot_write(client):
    resp = await client.post("/products/", json={"sku": "X", "name": "X"}, headers=VIEWER)

    assert resp.status_code == 403


async def test_inventory_flow_over_http(client):
    product, north, south = await seed(client)

    resp = await client.post(
        "/inventory/batches",
        json={
            "product_id": product["id"],
            "location_id": north["id"],
            "batch": {"batch_number": "B1", "quantity": 20, "cost_price": "5.00"},
        },
        headers=ADMIN,
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["record"]["quantity"] == 20

    resp = await client.post(
        "/inventory/update",
        json={"product_id": product["id"], "location_id": north["id"], "quantity_change": -5, "transaction_type": "sale"},
        headers=ADMIN,
    )
    assert resp.json()["data"]["new_quantity"] == 15

    resp = await client.post(
        "/inventory/transfer",
        json={"product_id": product["id"], "from_location_id": north["id"], "to_location_id": south["id"], "quantity": 10},
        headers=ADMIN,
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["destination"]["new_quantity"] == 10

    resp = await client.get(f"/inventory/products/{product['id']}", headers=VIEWER)
    body = resp.json()["data"]
    assert body["total_quantity"] == 15
    assert len(body["by_location"]) == 2

    resp = await client.get(f"/inventory/stock/locations/{south['id']}", headers=VIEWER)
    assert resp.json()["data"]["total_quantity"] == 10

    resp = await client.get("/inventory/transactions", params={"product_id": product["id"]}, headers=VIEWER)
    assert resp.json()["data"]["total"] == 4

    resp = await client.get(f"/inventory/products/{product['id']}/movements", headers=VIEWER)
    assert len(resp.json()["data"]) == 4


async def test_domain_errors_use_envelope(client):
    product, north, south = await seed(client)
    await client.post(
        "/inventory/batches",
        json={"product_id": product["id"], "location_id": north["id"], "batch": {"batch_number": "B1", "quantity": 2}},
        headers=ADMIN,
    )

    resp = await client.post(
        "/inventory/transfer",
        json={"product_id": product["id"], "from_location_id": north["id"], "to_location_id": south["id"], "quantity": 3},
        headers=ADMIN,
    )
    assert resp.status_code == 409
    assert resp.json()["error_code"] == "STOCK_TRANSFER_INSUFFICIENT_STOCK"

    resp = await client.post(
        "/inventory/batches",
        json={"product_id": product["id"], "location_id": north["id"], "batch": {"batch_number": "B1", "quantity": 2}},
        headers=ADMIN,
    )
    assert resp.status_code == 409
    assert resp.json()["error_code"] == "INVENTORY_DUPLICATE_BATCH"

    resp = await client.post(
        "/inventory/update",
        json={"product_id": product["id"], "location_id": north["id"], "quantity_change": 0},
        headers=ADMIN,
    )
    assert resp.status_code == 422

    resp = await client.get("/inventory/serials/NOPE", headers=VIEWER)
    assert resp.status_code == 404


async def test_alert_endpoints(client):
    product, north, _ = await seed(client)

    resp = await client.post("/inventory/alerts/scan", params={"wait": True}, headers=ADMIN)
    created = resp.json()["data"]["alerts_created"]
    assert len(created) == 1
    alert_id = created[0]["id"]

    resp = await client.get("/inventory/alerts/", params={"open_only": True}, headers=VIEWER)
    assert resp.json()["data"]["total"] == 1

    resp = await client.post(f"/inventory/alerts/{alert_id}/acknowledge", json={"notes": "on it"}, headers=ADMIN)
    assert resp.json()["data"]["status"] == "acknowledged"

    resp = await client.post(f"/inventory/alerts/{alert_id}/cancel", json={}, headers=ADMIN)
    assert resp.status_code == 409
    assert resp.json()["error_code"] == "ALERT_INVALID_STATUS"

    resp = await client.post(f"/inventory/alerts/{alert_id}/resolve", json={}, headers=ADMIN)
    assert resp.json()["data"]["status"] == "resolved"

    resp = await client.get(f"/inventory/alerts/{alert_id}", headers=VIEWER)
    assert len(resp.json()["data"]["events"]) == 3


async def test_analytics_endpoints(client):
    await seed(client)

    for path in ("turnover", "aging", "valuation", "dashboard"):
        resp = await client.get(f"/inventory/analytics/{path}", headers=VIEWER)
        assert resp.status_code == 200, path
        assert resp.json()["success"] is True


async def test_event_stream_requires_actor(client):
    resp = await client.get("/inventory/events/")

    assert resp.status_code == 401
