"""
Async client for the X API v2 webhook, Account Activity and user endpoints.

Upstream failures are raised as ``UpstreamAPIError`` carrying the upstream
status and decoded body so routes can forward them to the dashboard.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from aa_dashboard.core.config import XSettings
from aa_dashboard.utils.http import response_payload

logger = logging.getLogger(__name__)

USER_FIELDS = "profile_image_url,name,username"


class UpstreamAPIError(Exception):
    """Raised when the X API answers with a non-2xx status."""

    def __init__(self, status_code: int, details: Any, message: str | None = None) -> None:
        super().__init__(message or f"Upstream API returned {status_code}")
        self.status_code = status_code
        self.details = details
        self.message = message


class ServerMisconfiguredError(Exception):
    """Raised when a credential required for an upstream call is not configured."""


class XApiClient:
    """Thin wrapper around the X API endpoints used by the dashboard."""

    def __init__(
        self,
        settings: XSettings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings = settings
        self._base_url = settings.api_base_url.rstrip("/")
        self._transport = transport

    def _app_token(self) -> str:
        token = self._settings.bearer_token
        if not token:
            logger.error("X_BEARER_TOKEN is not configured.")
            raise ServerMisconfiguredError("Missing API token.")
        return token

    async def _request(
        self,
        method: str,
        path: str,
        *,
        token: str,
        error_message: str | None,
        params: Dict[str, Any] | None = None,
        json: Any = None,
    ) -> httpx.Response:
        headers = {"Authorization": f"Bearer {token}"}
        # No application-level timeout: a hung upstream only hangs this request.
        async with httpx.AsyncClient(
            base_url=self._base_url, timeout=None, transport=self._transport
        ) as client:
            response = await client.request(
                method, path, headers=headers, params=params, json=json
            )

        logger.info("X API %s %s -> %s", method, path, response.status_code)
        if not response.is_success:
            details = response_payload(response)
            logger.warning(
                "X API error for %s %s: %s %s", method, path, response.status_code, details
            )
            raise UpstreamAPIError(response.status_code, details, error_message)
        return response

    async def list_webhooks(self) -> Any:
        response = await self._request(
            "GET",
            "/webhooks",
            token=self._app_token(),
            error_message="Failed to fetch data from X API.",
        )
        return response_payload(response)

    async def create_webhook(self, url: str) -> tuple[int, Any]:
        """Register a webhook URL. Upstream errors are forwarded verbatim."""
        response = await self._request(
            "POST",
            "/webhooks",
            token=self._app_token(),
            error_message=None,
            json={"url": url},
        )
        return response.status_code, response_payload(response)

    async def validate_webhook(self, webhook_id: str) -> None:
        """Ask the X API to re-run the CRC challenge against a webhook."""
        await self._request(
            "PUT",
            f"/webhooks/{webhook_id}",
            token=self._app_token(),
            error_message="X API error during validation request.",
        )

    async def delete_webhook(self, webhook_id: str) -> None:
        await self._request(
            "DELETE",
            f"/webhooks/{webhook_id}",
            token=self._app_token(),
            error_message="Failed to delete webhook from X API.",
        )

    async def request_replay(self, webhook_id: str, *, from_date: str, to_date: str) -> Any:
        """Request a replay job. Dates are ``YYYYMMDDHHmm`` in UTC."""
        response = await self._request(
            "POST",
            f"/account_activity/replay/webhooks/{webhook_id}/subscriptions/all",
            token=self._app_token(),
            error_message="X API error during replay request.",
            params={"from_date": from_date, "to_date": to_date},
        )
        return response_payload(response)

    async def subscription_count(self) -> Any:
        response = await self._request(
            "GET",
            "/account_activity/subscriptions/count",
            token=self._app_token(),
            error_message="Failed to get subscription count.",
        )
        return response_payload(response)

    async def check_subscription(self, webhook_id: str, *, user_token: str) -> Any:
        response = await self._request(
            "GET",
            f"/account_activity/webhooks/{webhook_id}/subscriptions/all",
            token=user_token,
            error_message="Failed to check subscription.",
        )
        return response_payload(response)

    async def list_subscriptions(self, webhook_id: str) -> Any:
        response = await self._request(
            "GET",
            f"/account_activity/webhooks/{webhook_id}/subscriptions/all/list",
            token=self._app_token(),
            error_message="Failed to get subscriptions list.",
        )
        return response_payload(response)

    async def subscribe(self, webhook_id: str, *, user_token: str) -> Any:
        response = await self._request(
            "POST",
            f"/account_activity/webhooks/{webhook_id}/subscriptions/all",
            token=user_token,
            error_message="Failed to subscribe user.",
            json={},
        )
        return response_payload(response)

    async def unsubscribe(self, webhook_id: str, user_id: str, *, user_token: str) -> Any:
        response = await self._request(
            "DELETE",
            f"/account_activity/webhooks/{webhook_id}/subscriptions/{user_id}/all",
            token=user_token,
            error_message="Failed to unsubscribe user.",
        )
        return response_payload(response)

    async def get_user(self, user_id: str) -> Any:
        response = await self._request(
            "GET",
            f"/users/{user_id}",
            token=self._app_token(),
            error_message="Failed to get user details.",
            params={"user.fields": USER_FIELDS},
        )
        return response_payload(response)

    async def get_me(self, *, user_token: str) -> Any:
        response = await self._request(
            "GET",
            "/users/me",
            token=user_token,
            error_message="Failed to get user info.",
            params={"user.fields": USER_FIELDS},
        )
        return response_payload(response)


__all__ = ["ServerMisconfiguredError", "UpstreamAPIError", "XApiClient"]
