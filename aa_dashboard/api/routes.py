"""
FastAPI routes for webhook administration, subscriptions and OAuth login.
"""

from __future__ import annotations

import json
import logging
from http import HTTPStatus
from typing import Annotated, Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import httpx
from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse, RedirectResponse

from aa_dashboard.clients import OAuthTokenExchangeError
from aa_dashboard.dependencies import (
    get_app_settings,
    get_event_hub,
    get_oauth_flow_manager,
    get_subscription_service,
    get_webhook_admin_service,
    get_x_api_client,
)
from aa_dashboard.schemas import (
    AuthStartResponse,
    RefreshTokenRequest,
    SubscriberProfile,
    WebhookCreateRequest,
)
from aa_dashboard.services import InvalidOAuthStateError
from aa_dashboard.utils.http import bearer_token_from_header

router = APIRouter()
logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-twitter-webhooks-signature"


def require_user_token(
    authorization: Annotated[str | None, Header()] = None,
) -> str:
    """Dependency returning the caller's bearer token."""
    token = bearer_token_from_header(authorization)
    if not token:
        raise HTTPException(
            status_code=HTTPStatus.UNAUTHORIZED,
            detail="Missing or invalid Authorization header",
        )
    return token


def _with_query(url: str, params: dict[str, Any]) -> str:
    parts = urlsplit(url)
    query = parse_qsl(parts.query, keep_blank_values=True)
    query.extend((key, str(value)) for key, value in params.items() if value is not None)
    return urlunsplit(parts._replace(query=urlencode(query)))


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck(hub: Annotated[Any, Depends(get_event_hub)]) -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok", "live_connections": hub.connection_count}


# --- OAuth ---------------------------------------------------------------


@router.get("/auth/start", status_code=HTTPStatus.OK, response_model=AuthStartResponse)
async def start_oauth_flow(
    request: Request,
    flow: Annotated[Any, Depends(get_oauth_flow_manager)],
    redirect: bool = Query(
        default=False,
        description="When true, respond with a redirect to the X consent screen.",
    ),
) -> Any:
    """Kick off the PKCE flow by issuing a state token and authorization URL."""
    authorization = flow.start()

    accept_header = request.headers.get("accept", "")
    wants_html = "text/html" in accept_header.lower()
    if redirect or wants_html:
        return RedirectResponse(
            url=authorization.authorization_url, status_code=HTTPStatus.TEMPORARY_REDIRECT
        )

    return AuthStartResponse(
        authorization_url=authorization.authorization_url, state=authorization.state
    )


@router.get("/auth/callback")
async def handle_oauth_callback(
    flow: Annotated[Any, Depends(get_oauth_flow_manager)],
    settings: Annotated[Any, Depends(get_app_settings)],
    code: str | None = Query(None, description="Authorization code returned by X."),
    state: str | None = Query(None, description="OAuth state token."),
) -> Response:
    """Complete the code exchange and hand the tokens to the dashboard."""
    if not code or not state:
        raise HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail="Missing required parameters")

    try:
        credential = await flow.complete(code=code, state=state)
    except InvalidOAuthStateError as exc:
        raise HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail=str(exc)) from exc
    except (OAuthTokenExchangeError, httpx.HTTPError) as exc:
        logger.warning("OAuth code exchange failed: %s", exc)
        if settings.frontend_base_url:
            target = _with_query(str(settings.frontend_base_url), {"error": "token_exchange_failed"})
            return RedirectResponse(url=target, status_code=HTTPStatus.TEMPORARY_REDIRECT)
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="Failed to exchange code for tokens",
        ) from exc

    if settings.frontend_base_url:
        target = _with_query(str(settings.frontend_base_url), credential.model_dump())
        return RedirectResponse(url=target, status_code=HTTPStatus.TEMPORARY_REDIRECT)

    return JSONResponse(content=credential.model_dump())


@router.post("/auth/refresh", status_code=HTTPStatus.OK)
async def refresh_access_token(
    payload: RefreshTokenRequest,
    flow: Annotated[Any, Depends(get_oauth_flow_manager)],
) -> dict:
    try:
        credential = await flow.refresh(payload.refresh_token)
    except OAuthTokenExchangeError as exc:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST, detail="Failed to refresh access token"
        ) from exc
    return credential.model_dump()


@router.get("/auth/users/me", status_code=HTTPStatus.OK)
async def get_current_user(
    token: Annotated[str, Depends(require_user_token)],
    client: Annotated[Any, Depends(get_x_api_client)],
) -> Any:
    return await client.get_me(user_token=token)


@router.get("/users/{user_id}", status_code=HTTPStatus.OK)
async def get_user(
    user_id: str,
    client: Annotated[Any, Depends(get_x_api_client)],
) -> Any:
    return await client.get_user(user_id)


# --- Webhook provider endpoint -------------------------------------------


@router.get("/webhooks/provider", status_code=HTTPStatus.OK)
async def answer_crc_challenge(
    admin: Annotated[Any, Depends(get_webhook_admin_service)],
    crc_token: str | None = Query(None, description="Challenge token sent by X."),
) -> dict:
    """Prove knowledge of the consumer secret to the X API."""
    logger.info("Received CRC challenge.")
    return admin.crc_response(crc_token or "")


@router.post("/webhooks/provider", status_code=HTTPStatus.OK)
async def receive_activity(
    request: Request,
    admin: Annotated[Any, Depends(get_webhook_admin_service)],
    hub: Annotated[Any, Depends(get_event_hub)],
    settings: Annotated[Any, Depends(get_app_settings)],
) -> dict:
    """Accept an activity delivery from X and broadcast it to live clients."""
    body = await request.body()
    if settings.events.verify_signature and not admin.signature_is_valid(
        body, request.headers.get(SIGNATURE_HEADER)
    ):
        raise HTTPException(status_code=HTTPStatus.FORBIDDEN, detail="Invalid webhook signature")

    try:
        payload = json.loads(body)
    except ValueError as exc:
        raise HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail="Invalid JSON payload") from exc

    delivered = await hub.publish(payload)
    return {"status": "accepted", "kind": delivered.event.kind, "sequence": delivered.sequence}


# --- Webhooks -------------------------------------------------------------


@router.get("/webhooks", status_code=HTTPStatus.OK)
async def list_webhooks(admin: Annotated[Any, Depends(get_webhook_admin_service)]) -> Any:
    return await admin.list_webhooks()


@router.post("/webhooks")
async def create_webhook(
    payload: WebhookCreateRequest,
    admin: Annotated[Any, Depends(get_webhook_admin_service)],
) -> JSONResponse:
    status_code, body = await admin.register(payload.url)
    return JSONResponse(status_code=status_code, content=body)


@router.get("/webhooks/subscriptions/count", status_code=HTTPStatus.OK)
async def get_subscription_count(
    subscriptions: Annotated[Any, Depends(get_subscription_service)],
) -> Any:
    return await subscriptions.count()


@router.put("/webhooks/{webhook_id}", status_code=HTTPStatus.NO_CONTENT)
async def validate_webhook(
    webhook_id: str,
    admin: Annotated[Any, Depends(get_webhook_admin_service)],
) -> Response:
    """Trigger a CRC re-challenge for the webhook."""
    await admin.validate(webhook_id)
    return Response(status_code=HTTPStatus.NO_CONTENT)


@router.delete("/webhooks/{webhook_id}", status_code=HTTPStatus.NO_CONTENT)
async def delete_webhook(
    webhook_id: str,
    admin: Annotated[Any, Depends(get_webhook_admin_service)],
) -> Response:
    await admin.delete(webhook_id)
    return Response(status_code=HTTPStatus.NO_CONTENT)


@router.post("/webhooks/{webhook_id}/replay", status_code=HTTPStatus.OK)
async def replay_webhook_events(
    webhook_id: str,
    admin: Annotated[Any, Depends(get_webhook_admin_service)],
    from_date: str | None = Query(None, description="Local time as YYYYMMDDHHmm."),
    to_date: str | None = Query(None, description="Local time as YYYYMMDDHHmm."),
) -> Any:
    return await admin.replay(webhook_id, from_date=from_date, to_date=to_date)


# --- Subscriptions --------------------------------------------------------


@router.get("/webhooks/{webhook_id}/subscriptions", status_code=HTTPStatus.OK)
async def check_subscription(
    webhook_id: str,
    token: Annotated[str, Depends(require_user_token)],
    subscriptions: Annotated[Any, Depends(get_subscription_service)],
) -> Any:
    return await subscriptions.check(webhook_id, user_token=token)


@router.get(
    "/webhooks/{webhook_id}/subscriptions/list",
    status_code=HTTPStatus.OK,
    response_model=list[SubscriberProfile],
)
async def list_subscriptions(
    webhook_id: str,
    subscriptions: Annotated[Any, Depends(get_subscription_service)],
) -> Any:
    return await subscriptions.list_subscribers(webhook_id)


@router.post("/webhooks/{webhook_id}/subscriptions", status_code=HTTPStatus.OK)
async def subscribe(
    webhook_id: str,
    token: Annotated[str, Depends(require_user_token)],
    subscriptions: Annotated[Any, Depends(get_subscription_service)],
) -> Any:
    """Subscribe the authenticated caller to the webhook."""
    return await subscriptions.subscribe(webhook_id, user_token=token)


@router.delete("/webhooks/{webhook_id}/subscriptions/{user_id}", status_code=HTTPStatus.OK)
async def unsubscribe(
    webhook_id: str,
    user_id: str,
    token: Annotated[str, Depends(require_user_token)],
    subscriptions: Annotated[Any, Depends(get_subscription_service)],
) -> Any:
    return await subscriptions.unsubscribe(webhook_id, user_id, user_token=token)


__all__ = ["router", "require_user_token"]
