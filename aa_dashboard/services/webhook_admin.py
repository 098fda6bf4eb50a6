"""
Webhook administration on top of the X API client.

Input is validated here so malformed requests are rejected before any
network call.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import logging
import re
from datetime import datetime, timezone, tzinfo
from typing import Any, Optional

from aa_dashboard.clients.x_api import ServerMisconfiguredError, XApiClient
from aa_dashboard.core.config import XSettings

logger = logging.getLogger(__name__)

REPLAY_DATE_FORMAT = "%Y%m%d%H%M"
_REPLAY_DATE_PATTERN = re.compile(r"[0-9]{12}")


class InvalidWebhookRequestError(ValueError):
    """Raised for client input that must not reach the upstream API."""


def local_to_utc_stamp(value: str, tz: Optional[tzinfo] = None) -> str:
    """Convert a local ``YYYYMMDDHHmm`` wall-clock string to the same format in UTC.

    ``tz`` defaults to the host's local timezone.
    """
    if not isinstance(value, str) or not _REPLAY_DATE_PATTERN.fullmatch(value):
        raise InvalidWebhookRequestError(
            "Invalid date format: 'from_date' and 'to_date' must be in YYYYMMDDHHmm "
            "format representing local time."
        )
    try:
        parsed = datetime.strptime(value, REPLAY_DATE_FORMAT)
    except ValueError as exc:
        raise InvalidWebhookRequestError(f"'{value}' is not a valid calendar time.") from exc

    # A naive datetime's astimezone() interprets it in the host's local zone.
    local = parsed.replace(tzinfo=tz) if tz is not None else parsed.astimezone()
    return local.astimezone(timezone.utc).strftime(REPLAY_DATE_FORMAT)


def compute_crc_response(crc_token: str, secret: str) -> str:
    """Return ``sha256=`` + base64(HMAC-SHA256(secret, crc_token))."""
    digest = hmac.new(secret.encode("utf-8"), crc_token.encode("utf-8"), hashlib.sha256).digest()
    return f"sha256={base64.b64encode(digest).decode('utf-8')}"


def verify_payload_signature(body: bytes, signature: Optional[str], secret: str) -> bool:
    """Check an ``x-twitter-webhooks-signature`` header against the raw body."""
    if not signature:
        return False
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    expected = f"sha256={base64.b64encode(digest).decode('utf-8')}"
    return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))


class WebhookAdminService:
    """Register, validate, delete and replay webhooks; answer CRC challenges."""

    def __init__(self, client: XApiClient, x_settings: XSettings) -> None:
        self._client = client
        self._x = x_settings

    def _shared_secret(self) -> str:
        secret = self._x.api_key_secret
        if not secret:
            logger.error("X_API_KEY_SECRET is not configured.")
            raise ServerMisconfiguredError("Missing API key secret.")
        return secret

    async def list_webhooks(self) -> Any:
        return await self._client.list_webhooks()

    async def register(self, url: Any) -> tuple[int, Any]:
        if not isinstance(url, str) or not url.strip():
            raise InvalidWebhookRequestError(
                "Invalid request body: 'url' is required and must be a string."
            )
        return await self._client.create_webhook(url.strip())

    async def validate(self, webhook_id: str) -> None:
        await self._client.validate_webhook(webhook_id)

    async def delete(self, webhook_id: str) -> None:
        await self._client.delete_webhook(webhook_id)

    async def replay(
        self,
        webhook_id: str,
        *,
        from_date: Optional[str],
        to_date: Optional[str],
        tz: Optional[tzinfo] = None,
    ) -> Any:
        if not from_date or not to_date:
            raise InvalidWebhookRequestError(
                "Invalid query parameters: 'from_date' and 'to_date' are required strings "
                "in YYYYMMDDHHmm format representing local time."
            )
        from_utc = local_to_utc_stamp(from_date, tz)
        to_utc = local_to_utc_stamp(to_date, tz)
        logger.info(
            "Requesting replay for webhook %s from %s to %s (UTC), local inputs %s-%s.",
            webhook_id,
            from_utc,
            to_utc,
            from_date,
            to_date,
        )
        return await self._client.request_replay(webhook_id, from_date=from_utc, to_date=to_utc)

    def crc_response(self, crc_token: str) -> dict:
        if not crc_token:
            raise InvalidWebhookRequestError("Missing crc_token parameter.")
        return {"response_token": compute_crc_response(crc_token, self._shared_secret())}

    def signature_is_valid(self, body: bytes, signature: Optional[str]) -> bool:
        return verify_payload_signature(body, signature, self._shared_secret())


__all__ = [
    "InvalidWebhookRequestError",
    "WebhookAdminService",
    "compute_crc_response",
    "local_to_utc_stamp",
    "verify_payload_signature",
]
