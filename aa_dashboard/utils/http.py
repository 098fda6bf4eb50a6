"""HTTP helpers shared by the upstream API clients and routes."""

from __future__ import annotations

from typing import Any

import httpx


def response_payload(response: httpx.Response) -> Any:
    """Return the decoded JSON body, falling back to text for non-JSON bodies."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text or response.reason_phrase


def bearer_token_from_header(authorization: str | None) -> str | None:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


__all__ = ["bearer_token_from_header", "response_payload"]
