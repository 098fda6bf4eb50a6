"""
OAuth 2.0 PKCE flow management.

A login attempt is ``Pending`` from ``start`` until its callback arrives.
The callback consumes the pending record; records that are missing or older
than the TTL are rejected. A background sweep removes abandoned records.
"""

from __future__ import annotations

import asyncio
import base64
import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional

from aa_dashboard.clients.x_oauth import XOAuthClient
from aa_dashboard.models.oauth import AccessCredential, PendingAuth

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_code_verifier() -> str:
    """Return a 43-character base64url verifier from 32 random bytes."""
    return secrets.token_urlsafe(32)


def derive_code_challenge(code_verifier: str) -> str:
    """Derive the S256 challenge: unpadded base64url of SHA-256(verifier)."""
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def generate_state() -> str:
    return secrets.token_hex(16)


class InvalidOAuthStateError(Exception):
    """Raised when a callback state is unknown or has expired."""


class PendingAuthStore:
    """Process-lifetime table of login attempts keyed by state."""

    def __init__(self, ttl_seconds: int, *, clock: Optional[Clock] = None) -> None:
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock or _utcnow
        self._records: Dict[str, PendingAuth] = {}

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, state: object) -> bool:
        return state in self._records

    def issue(self, code_verifier: str) -> PendingAuth:
        record = PendingAuth(
            state=generate_state(),
            code_verifier=code_verifier,
            issued_at=self._clock(),
        )
        self._records[record.state] = record
        return record

    def pop(self, state: str) -> Optional[PendingAuth]:
        return self._records.pop(state, None)

    def is_expired(self, record: PendingAuth) -> bool:
        return self._clock() - record.issued_at > self._ttl

    def purge_expired(self) -> int:
        """Drop records older than the TTL and return how many were removed."""
        expired = [state for state, record in self._records.items() if self.is_expired(record)]
        for state in expired:
            del self._records[state]
        return len(expired)


@dataclass(slots=True)
class AuthorizationRequest:
    authorization_url: str
    state: str


class OAuthFlowManager:
    """Coordinate PKCE login attempts between the store and the X token endpoint."""

    def __init__(self, store: PendingAuthStore, oauth_client: XOAuthClient) -> None:
        self._store = store
        self._oauth = oauth_client

    def start(self) -> AuthorizationRequest:
        code_verifier = generate_code_verifier()
        record = self._store.issue(code_verifier)
        try:
            url = self._oauth.build_authorization_url(
                state=record.state,
                code_challenge=derive_code_challenge(code_verifier),
            )
        except Exception:
            self._store.pop(record.state)
            raise
        return AuthorizationRequest(authorization_url=url, state=record.state)

    async def complete(self, *, code: str, state: str) -> AccessCredential:
        """Consume the pending record for ``state`` and exchange ``code``."""
        record = self._store.pop(state)
        if record is None:
            raise InvalidOAuthStateError("Invalid state parameter.")
        # The sweep may not have run yet, so the age is checked here too.
        if self._store.is_expired(record):
            raise InvalidOAuthStateError("OAuth state has expired.")
        return await self._oauth.exchange_authorization_code(code, record.code_verifier)

    async def refresh(self, refresh_token: str) -> AccessCredential:
        return await self._oauth.refresh_token(refresh_token)


async def sweep_pending_auth(store: PendingAuthStore, interval_seconds: float) -> None:
    """Purge expired pending records forever; cancel the task to stop."""
    while True:
        await asyncio.sleep(interval_seconds)
        removed = store.purge_expired()
        if removed:
            logger.info("Purged %d expired OAuth state(s).", removed)


__all__ = [
    "AuthorizationRequest",
    "InvalidOAuthStateError",
    "OAuthFlowManager",
    "PendingAuthStore",
    "derive_code_challenge",
    "generate_code_verifier",
    "generate_state",
    "sweep_pending_auth",
]
