"""
X OAuth 2.0 utilities.

These helpers build the PKCE authorization URL and exchange or refresh
authorization codes against the X token endpoint.
"""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import urlencode

import httpx

from fastapi import status

from aa_dashboard.clients.x_api import ServerMisconfiguredError
from aa_dashboard.core.config import OAuthSettings, XSettings
from aa_dashboard.models.oauth import AccessCredential
from aa_dashboard.utils.http import response_payload

logger = logging.getLogger(__name__)


class OAuthTokenExchangeError(Exception):
    """Raised when the token endpoint returns an error."""


def _expires_in(value: object) -> int:
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise OAuthTokenExchangeError(f"Invalid expires_in value from X: {value!r}.") from exc


class XOAuthClient:
    """Build X authorization URLs and exchange authorization codes."""

    def __init__(
        self,
        x_settings: XSettings,
        oauth_settings: OAuthSettings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._x = x_settings
        self._oauth = oauth_settings
        self._transport = transport

    @property
    def token_url(self) -> str:
        return f"{self._x.api_base_url.rstrip('/')}/oauth2/token"

    def _require_client(self) -> tuple[str, str]:
        if not self._x.client_id or not self._x.redirect_uri:
            logger.error("X_CLIENT_ID or X_REDIRECT_URI is not configured.")
            raise ServerMisconfiguredError("Missing OAuth client configuration.")
        return self._x.client_id, str(self._x.redirect_uri)

    def build_authorization_url(self, state: str, code_challenge: str) -> str:
        """Construct the X OAuth consent URL for a PKCE S256 challenge."""
        client_id, redirect_uri = self._require_client()
        params = {
            "response_type": "code",
            "client_id": client_id,
            "redirect_uri": redirect_uri,
            "scope": self._oauth.scopes,
            "state": state,
            "code_challenge": code_challenge,
            "code_challenge_method": "S256",
        }
        return f"{self._x.authorize_url}?{urlencode(params)}"

    async def _post_token(self, payload: dict[str, str]) -> dict:
        client_id, _ = self._require_client()
        payload = {**payload, "client_id": client_id}
        # Confidential clients authenticate with HTTP basic auth.
        auth = (client_id, self._x.client_secret) if self._x.client_secret else None

        async with httpx.AsyncClient(timeout=None, transport=self._transport) as client:
            response = await client.post(self.token_url, data=payload, auth=auth)

        if response.status_code != status.HTTP_200_OK:
            logger.warning(
                "Token endpoint returned %s: %s",
                response.status_code,
                response_payload(response),
            )
            raise OAuthTokenExchangeError(f"Token endpoint returned {response.status_code}.")

        token_payload = response_payload(response)
        if not isinstance(token_payload, dict):
            raise OAuthTokenExchangeError("Token endpoint returned a non-JSON payload.")
        return token_payload

    async def exchange_authorization_code(self, code: str, code_verifier: str) -> AccessCredential:
        """Exchange an authorization code and its PKCE verifier for tokens."""
        _, redirect_uri = self._require_client()
        token_payload = await self._post_token(
            {
                "code": code,
                "grant_type": "authorization_code",
                "redirect_uri": redirect_uri,
                "code_verifier": code_verifier,
            }
        )

        access_token = token_payload.get("access_token")
        expires_in = token_payload.get("expires_in")
        if not access_token or not expires_in:
            raise OAuthTokenExchangeError("Incomplete token payload returned from X.")

        return AccessCredential(
            access_token=access_token,
            refresh_token=token_payload.get("refresh_token"),
            expires_in=_expires_in(expires_in),
        )

    async def refresh_token(self, refresh_token: str) -> AccessCredential:
        """Refresh the access token using a refresh token held by the client."""
        token_payload = await self._post_token(
            {"refresh_token": refresh_token, "grant_type": "refresh_token"}
        )

        access_token = token_payload.get("access_token")
        expires_in = token_payload.get("expires_in")
        if not access_token or not expires_in:
            raise OAuthTokenExchangeError("Incomplete refresh payload returned from X.")

        return AccessCredential(
            access_token=access_token,
            refresh_token=token_payload.get("refresh_token") or refresh_token,
            expires_in=_expires_in(expires_in),
        )


__all__ = ["OAuthTokenExchangeError", "XOAuthClient"]
