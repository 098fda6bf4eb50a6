try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import copy

import httpx
import pytest

from aa_dashboard.clients import XApiClient
from aa_dashboard.main import app

WEBHOOK_ID = "wh-1"
SUBSCRIPTIONS_PATH = f"/2/account_activity/webhooks/{WEBHOOK_ID}/subscriptions/all"
LIST_PATH = f"{SUBSCRIPTIONS_PATH}/list"


class FakeAccountActivityAPI:
    """In-memory stand-in for the subscription and user lookup endpoints."""

    def __init__(self) -> None:
        self.subscribers: list[str] = []
        self.users = {
            "100": {"id": "100", "name": "Me", "username": "me", "profile_image_url": "https://img/me"},
        }
        self.token_for: dict[str, str] = {"user-token": "100"}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        bearer = request.headers.get("authorization", "").removeprefix("Bearer ")

        if request.method == "POST" and path == SUBSCRIPTIONS_PATH:
            user_id = self.token_for.get(bearer)
            if user_id is None:
                return httpx.Response(401, json={"title": "Unauthorized"})
            if user_id not in self.subscribers:
                self.subscribers.append(user_id)
            return httpx.Response(200, json={"data": {"subscribed": True}})

        if request.method == "GET" and path == SUBSCRIPTIONS_PATH:
            subscribed = self.token_for.get(bearer) in self.subscribers
            return httpx.Response(200, json={"data": {"subscribed": subscribed}})

        if request.method == "GET" and path == LIST_PATH:
            return httpx.Response(
                200,
                json={
                    "data": {
                        "webhook_id": WEBHOOK_ID,
                        "subscriptions": [{"user_id": user_id} for user_id in self.subscribers],
                    }
                },
            )

        if request.method == "DELETE" and path.startswith(f"/2/account_activity/webhooks/{WEBHOOK_ID}/subscriptions/"):
            user_id = path.split("/")[-2]
            if user_id in self.subscribers:
                self.subscribers.remove(user_id)
            return httpx.Response(200, json={"data": {"subscribed": False}})

        if request.method == "GET" and path == "/2/account_activity/subscriptions/count":
            return httpx.Response(
                200, json={"data": {"subscriptions_count_all": str(len(self.subscribers))}}
            )

        if request.method == "GET" and path == "/2/users/me":
            user_id = self.token_for.get(bearer)
            if user_id is None:
                return httpx.Response(401, json={"title": "Unauthorized"})
            return httpx.Response(200, json={"data": self.users[user_id]})

        if request.method == "GET" and path.startswith("/2/users/"):
            user_id = path.rsplit("/", 1)[-1]
            if user_id in self.users:
                return httpx.Response(200, json={"data": self.users[user_id]})
            return httpx.Response(404, json={"title": "Not Found Error"})

        return httpx.Response(404, json={"title": "Not Found"})


@pytest.fixture()
def fake_api():
    from aa_dashboard import dependencies
    from aa_dashboard.core.config import get_settings

    fake = FakeAccountActivityAPI()
    settings = copy.deepcopy(get_settings())
    client = XApiClient(settings.x_api, transport=httpx.MockTransport(fake))
    app.dependency_overrides[dependencies.get_x_api_client] = lambda: client
    yield fake

    app.dependency_overrides.clear()


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")


AUTH = {"Authorization": "Bearer user-token"}


@pytest.mark.anyio
async def test_subscribe_then_list_includes_caller_once(fake_api):
    async with _client() as client:
        first = await client.post(f"/api/webhooks/{WEBHOOK_ID}/subscriptions", headers=AUTH)
        second = await client.post(f"/api/webhooks/{WEBHOOK_ID}/subscriptions", headers=AUTH)
        listing = await client.get(f"/api/webhooks/{WEBHOOK_ID}/subscriptions/list")

    assert first.status_code == 200
    assert second.status_code == 200
    assert listing.status_code == 200
    assert listing.json() == [
        {
            "id": "100",
            "username": "me",
            "name": "Me",
            "avatar_url": "https://img/me",
            "error": False,
            "message": None,
        }
    ]


@pytest.mark.anyio
async def test_subscribe_uses_caller_token(fake_api):
    async with _client() as client:
        await client.post(f"/api/webhooks/{WEBHOOK_ID}/subscriptions", headers=AUTH)

    assert fake_api.requests[0].headers["authorization"] == "Bearer user-token"


@pytest.mark.anyio
async def test_subscription_routes_require_bearer_token(fake_api):
    async with _client() as client:
        missing = await client.post(f"/api/webhooks/{WEBHOOK_ID}/subscriptions")
        malformed = await client.get(
            f"/api/webhooks/{WEBHOOK_ID}/subscriptions", headers={"Authorization": "Token abc"}
        )
        unsubscribe = await client.delete(f"/api/webhooks/{WEBHOOK_ID}/subscriptions/100")

    for response in (missing, malformed, unsubscribe):
        assert response.status_code == 401
        assert response.json() == {"error": "Missing or invalid Authorization header"}
    assert fake_api.requests == []


@pytest.mark.anyio
async def test_check_reflects_subscription_state(fake_api):
    async with _client() as client:
        before = await client.get(f"/api/webhooks/{WEBHOOK_ID}/subscriptions", headers=AUTH)
        await client.post(f"/api/webhooks/{WEBHOOK_ID}/subscriptions", headers=AUTH)
        after = await client.get(f"/api/webhooks/{WEBHOOK_ID}/subscriptions", headers=AUTH)

    assert before.json() == {"data": {"subscribed": False}}
    assert after.json() == {"data": {"subscribed": True}}


@pytest.mark.anyio
async def test_unsubscribe_removes_user(fake_api):
    fake_api.subscribers.append("100")

    async with _client() as client:
        response = await client.delete(f"/api/webhooks/{WEBHOOK_ID}/subscriptions/100", headers=AUTH)
        listing = await client.get(f"/api/webhooks/{WEBHOOK_ID}/subscriptions/list")

    assert response.status_code == 200
    assert listing.json() == []
    delete_request = next(r for r in fake_api.requests if r.method == "DELETE")
    assert delete_request.url.path == f"/2/account_activity/webhooks/{WEBHOOK_ID}/subscriptions/100/all"


@pytest.mark.anyio
async def test_failed_hydration_becomes_placeholder(fake_api):
    fake_api.subscribers.extend(["100", "404"])

    async with _client() as client:
        listing = await client.get(f"/api/webhooks/{WEBHOOK_ID}/subscriptions/list")

    assert listing.status_code == 200
    entries = listing.json()
    assert [entry["id"] for entry in entries] == ["100", "404"]
    assert entries[0]["error"] is False
    assert entries[1]["error"] is True
    assert entries[1]["message"]


@pytest.mark.anyio
async def test_unexpected_user_payload_becomes_placeholder(fake_api):
    fake_api.subscribers.append("200")
    fake_api.users["200"] = None

    async with _client() as client:
        listing = await client.get(f"/api/webhooks/{WEBHOOK_ID}/subscriptions/list")

    assert listing.json()[0]["message"] == "User details not found or in unexpected format."


@pytest.mark.anyio
async def test_subscription_count_uses_app_token(fake_api):
    fake_api.subscribers.append("100")

    async with _client() as client:
        response = await client.get("/api/webhooks/subscriptions/count")

    assert response.status_code == 200
    assert response.json() == {"data": {"subscriptions_count_all": "1"}}
    assert fake_api.requests[0].headers["authorization"] == "Bearer test-app-token"


@pytest.mark.anyio
async def test_user_lookup_forwards_not_found(fake_api):
    async with _client() as client:
        found = await client.get("/api/users/100")
        missing = await client.get("/api/users/999")

    assert found.json()["data"]["username"] == "me"
    assert missing.status_code == 404
    assert missing.json()["details"] == {"title": "Not Found Error"}


@pytest.mark.anyio
async def test_current_user_uses_caller_token(fake_api):
    async with _client() as client:
        me = await client.get("/api/auth/users/me", headers=AUTH)
        anonymous = await client.get("/api/auth/users/me")

    assert me.status_code == 200
    assert me.json()["data"]["id"] == "100"
    assert anonymous.status_code == 401
    assert len(fake_api.requests) == 1
