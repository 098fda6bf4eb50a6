try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import copy
import json

import httpx
import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from aa_dashboard.main import app
from aa_dashboard.services.webhook_admin import compute_crc_response

SIGNATURE_HEADER = "x-twitter-webhooks-signature"
POST_PAYLOAD = {
    "for_user_id": "100",
    "tweet_create_events": [
        {"id_str": "1", "text": "hello", "user": {"id_str": "42", "name": "Alice", "screen_name": "alice"}}
    ],
}


def _signed(payload) -> tuple[bytes, dict[str, str]]:
    body = json.dumps(payload).encode("utf-8")
    signature = compute_crc_response(body.decode("utf-8"), "s3cr3t")
    return body, {SIGNATURE_HEADER: signature, "content-type": "application/json"}


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")


@pytest.fixture()
def transport_settings():
    from aa_dashboard import dependencies
    from aa_dashboard.core.config import get_settings

    settings = copy.deepcopy(get_settings())
    app.dependency_overrides[dependencies.get_app_settings] = lambda: settings
    yield settings

    app.dependency_overrides.clear()


@pytest.mark.anyio
async def test_poll_requires_token():
    async with _client() as client:
        response = await client.get("/events/poll")

    assert response.status_code == 401
    assert response.json() == {"error": "Missing token"}


@pytest.mark.anyio
async def test_first_poll_only_acknowledges(transport_settings):
    body, headers = _signed(POST_PAYLOAD)

    async with _client() as client:
        await client.post("/api/webhooks/provider", content=body, headers=headers)
        response = await client.get("/events/poll", params={"token": "user-token"})

    assert response.status_code == 200
    data = response.json()
    assert data["cursor"] == app.state.event_hub.cursor
    assert [item["event"]["kind"] for item in data["events"]] == ["connection_ack"]
    assert data["events"][0]["event"]["message"] == "Connected to live event stream."


@pytest.mark.anyio
async def test_poll_returns_event_published_after_cursor(transport_settings):
    body, headers = _signed(POST_PAYLOAD)

    async with _client() as client:
        attach = await client.get("/events/poll", params={"token": "user-token"})
        cursor = attach.json()["cursor"]

        published = await client.post("/api/webhooks/provider", content=body, headers=headers)
        update = await client.get("/events/poll", params={"token": "user-token", "cursor": cursor})
        next_cursor = update.json()["cursor"]
        idle = await client.get("/events/poll", params={"token": "user-token", "cursor": next_cursor})

    assert published.status_code == 200
    assert published.json()["kind"] == "post_created"

    events = update.json()["events"]
    assert len(events) == 1
    assert events[0]["sequence"] == cursor + 1
    assert events[0]["title"] == "New Post"
    assert events[0]["event"]["author"]["handle"] == "alice"
    assert "hello" in events[0]["card_html"]
    assert idle.json()["events"] == []


@pytest.mark.anyio
async def test_cursor_ahead_of_hub_is_treated_as_new_attach(transport_settings):
    async with _client() as client:
        response = await client.get(
            "/events/poll",
            params={"token": "user-token", "cursor": app.state.event_hub.cursor + 100},
        )

    assert [item["event"]["kind"] for item in response.json()["events"]] == ["connection_ack"]


@pytest.mark.anyio
async def test_provider_rejects_bad_signature(transport_settings):
    before = app.state.event_hub.cursor
    body, _ = _signed(POST_PAYLOAD)

    async with _client() as client:
        response = await client.post(
            "/api/webhooks/provider",
            content=body,
            headers={SIGNATURE_HEADER: "sha256=forged"},
        )

    assert response.status_code == 403
    assert app.state.event_hub.cursor == before


@pytest.mark.anyio
async def test_provider_without_secret_is_server_error(transport_settings):
    transport_settings.x_api.api_key_secret = None
    before = app.state.event_hub.cursor
    body, headers = _signed(POST_PAYLOAD)

    async with _client() as client:
        response = await client.post("/api/webhooks/provider", content=body, headers=headers)

    assert response.status_code == 500
    assert response.json()["error"].startswith("Server misconfigured")
    assert app.state.event_hub.cursor == before


@pytest.mark.anyio
async def test_provider_rejects_invalid_json(transport_settings):
    body = b"{not json"
    headers = {SIGNATURE_HEADER: compute_crc_response(body.decode("utf-8"), "s3cr3t")}

    async with _client() as client:
        response = await client.post("/api/webhooks/provider", content=body, headers=headers)

    assert response.status_code == 400


@pytest.mark.anyio
async def test_provider_classifies_unknown_payloads(transport_settings):
    transport_settings.events.verify_signature = False

    async with _client() as client:
        response = await client.post("/api/webhooks/provider", json={"brand_new_events": [{}]})

    assert response.status_code == 200
    assert response.json()["kind"] == "unrecognized"


def test_websocket_receives_ack_and_broadcasts(transport_settings):
    body, headers = _signed(POST_PAYLOAD)

    with TestClient(app) as client:
        with client.websocket_connect("/events/ws") as websocket:
            websocket.send_json({"type": "auth", "token": "user-token"})
            ack = websocket.receive_json()
            assert ack["event"]["kind"] == "connection_ack"
            assert app.state.event_hub.connection_count == 1

            response = client.post("/api/webhooks/provider", content=body, headers=headers)
            assert response.status_code == 200

            message = websocket.receive_json()

    assert message["sequence"] == response.json()["sequence"]
    assert message["event"]["kind"] == "post_created"
    assert message["title"] == "New Post"
    assert app.state.event_hub.connection_count == 0


@pytest.mark.parametrize(
    "handshake",
    [
        {"type": "auth"},
        {"type": "auth", "token": ""},
        {"type": "hello", "token": "user-token"},
        ["auth", "user-token"],
        "not json",
    ],
)
def test_websocket_rejects_invalid_handshake(transport_settings, handshake):
    with TestClient(app) as client:
        with client.websocket_connect("/events/ws") as websocket:
            websocket.send_json(handshake)
            with pytest.raises(WebSocketDisconnect) as excinfo:
                websocket.receive_json()

    assert excinfo.value.code == 4001
    assert app.state.event_hub.connection_count == 0


def test_websocket_rejects_binary_handshake(transport_settings):
    with TestClient(app) as client:
        with client.websocket_connect("/events/ws") as websocket:
            websocket.send_bytes(b'{"type": "auth", "token": "user-token"}')
            with pytest.raises(WebSocketDisconnect) as excinfo:
                websocket.receive_json()

    assert excinfo.value.code == 4001
    assert app.state.event_hub.connection_count == 0


def test_websocket_closes_when_handshake_times_out(transport_settings):
    transport_settings.events.handshake_timeout_seconds = 0.05

    with TestClient(app) as client:
        with client.websocket_connect("/events/ws") as websocket:
            with pytest.raises(WebSocketDisconnect) as excinfo:
                websocket.receive_json()

    assert excinfo.value.code == 4001
