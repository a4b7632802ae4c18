"""Tests for API endpoints"""
import pytest
from fastapi.testclient import TestClient
from unittest.mock import AsyncMock, Mock

from api.index import app
from cartsync.auth import create_web_session, revoke_web_session
from cartsync.config import Settings

OWNER = "owner-1"


@pytest.fixture
def context(server):
    """Persistence context backed by the fake tiers"""
    ctx = Mock()
    ctx.server = server
    ctx.settings = Settings()
    ctx.check_local_store = AsyncMock(
        return_value={"connected": True, "duration": "3ms", "message": "ok"}
    )
    return ctx


@pytest.fixture
def client(context):
    """Test client (lifespan not run; context injected)"""
    app.state.context = context
    yield TestClient(app)
    del app.state.context


@pytest.fixture
def auth_headers():
    token = create_web_session(OWNER, username="tester")
    yield {"Authorization": f"Bearer {token}"}
    revoke_web_session(token)


def test_health_check(client):
    """Test health check endpoint"""
    response = client.get("/api/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["local_store"]["connected"] is True


def test_health_check_degraded(client, context):
    context.check_local_store.return_value = {
        "connected": False, "error": "timeout", "message": "Local store connection failed"
    }

    response = client.get("/api/health")

    assert response.json()["status"] == "degraded"


def test_cart_requires_auth(client):
    assert client.get("/api/cart").status_code == 401
    assert client.get("/api/cart", headers={"Authorization": "Bearer nope"}).status_code == 401
    assert client.get("/api/cart", headers={"Authorization": "Basic abc"}).status_code == 401


def test_revoked_session_rejected(client):
    token = create_web_session(OWNER)
    revoke_web_session(token)

    response = client.get("/api/cart", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


def test_get_empty_cart(client, auth_headers):
    response = client.get("/api/cart", headers=auth_headers)

    assert response.status_code == 200
    assert response.json() == {"items": [], "count": 0, "source": "none"}


def test_get_cart_from_remote(client, auth_headers, remote_tier, make_item):
    remote_tier.carts[OWNER] = [make_item("r1", 2)]

    data = client.get("/api/cart", headers=auth_headers).json()

    assert data["source"] == "remote"
    assert data["count"] == 2
    assert data["items"][0]["itemId"] == "r1"


def test_add_item(client, auth_headers, local_tier):
    response = client.post(
        "/api/cart/items",
        json={"itemId": "r1", "quantity": 2, "title": "A Love Supreme", "price": "30.00"},
        headers=auth_headers,
    )

    assert response.status_code == 200
    assert response.json() == {"success": True, "count": 2}
    assert local_tier.carts[OWNER][0].title == "A Love Supreme"


@pytest.mark.parametrize("payload", [
    {"itemId": 12345, "quantity": 1},
    {"recordId": "12345", "quantity": 1},
    {"discogsReleaseId": 12345},
])
def test_add_item_accepts_client_id_shapes(client, auth_headers, local_tier, payload):
    response = client.post("/api/cart/items", json=payload, headers=auth_headers)

    assert response.status_code == 200
    assert response.json() == {"success": True, "count": 1}
    assert local_tier.carts[OWNER][0].item_id == "12345"


def test_add_item_without_id_rejected(client, auth_headers):
    response = client.post("/api/cart/items", json={"quantity": 1}, headers=auth_headers)

    assert response.status_code == 422


def test_add_item_invalid_quantity(client, auth_headers):
    response = client.post(
        "/api/cart/items", json={"itemId": "r1", "quantity": 0}, headers=auth_headers
    )

    assert response.status_code == 400


def test_update_and_remove_item(client, auth_headers, local_tier, make_item):
    local_tier.carts[OWNER] = [make_item("a", 1), make_item("b", 1)]

    response = client.patch("/api/cart/items/a", json={"quantity": 4}, headers=auth_headers)
    assert response.json()["count"] == 5

    response = client.patch("/api/cart/items/a", json={"quantity": 0}, headers=auth_headers)
    assert response.json()["count"] == 1

    response = client.delete("/api/cart/items/b", headers=auth_headers)
    assert response.json()["count"] == 0


def test_clear_cart(client, auth_headers, local_tier, make_item):
    local_tier.carts[OWNER] = [make_item("a", 1)]

    response = client.delete("/api/cart", headers=auth_headers)

    assert response.status_code == 200
    assert OWNER not in local_tier.carts


def test_merge_guest_cart(client, auth_headers, local_tier, make_item):
    local_tier.carts[OWNER] = [make_item("a", 1), make_item("b", 1)]

    response = client.post(
        "/api/cart/merge",
        json={"guestCartItems": [{"itemId": "a", "quantity": 5}, {"id": "c"}]},
        headers=auth_headers,
    )

    data = response.json()
    assert response.status_code == 200
    assert data["merged"] is True
    assert data["source"] == "local"
    assert {i["itemId"]: i["quantity"] for i in data["items"]} == {"a": 5, "b": 1, "c": 1}


def test_merge_empty_guest_cart(client, auth_headers):
    response = client.post("/api/cart/merge", json={"guestCartItems": []}, headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["merged"] is False


@pytest.mark.parametrize("payload", [
    {"guestCartItems": "not-a-list"},
    {"guestCartItems": [{"title": "missing id"}]},
    {},
])
def test_merge_malformed_guest_cart(client, auth_headers, payload):
    response = client.post("/api/cart/merge", json=payload, headers=auth_headers)

    assert response.status_code == 400


def test_tier_failure_returns_502(client, auth_headers, local_tier, remote_tier):
    local_tier.fail_writes = True
    remote_tier.fail_writes = True

    response = client.post("/api/cart/items", json={"itemId": "r1"}, headers=auth_headers)

    assert response.status_code == 502
    assert "failed" not in response.json()["detail"].lower()
