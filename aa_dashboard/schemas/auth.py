"""Schemas related to OAuth flows."""

from __future__ import annotations

from pydantic import BaseModel, Field


class AuthStartResponse(BaseModel):
    """Returned by ``/auth/start`` when the client does not want a redirect."""

    authorization_url: str = Field(..., description="X consent screen URL.")
    state: str = Field(..., description="Opaque state token bound to the PKCE verifier.")


class RefreshTokenRequest(BaseModel):
    """Payload for exchanging a refresh token for a new access token."""

    refresh_token: str = Field(..., min_length=1)


__all__ = ["AuthStartResponse", "RefreshTokenRequest"]
