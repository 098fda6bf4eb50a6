"""
Domain models for the OAuth PKCE flow.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field


class PendingAuth(BaseModel):
    """A login attempt awaiting its callback."""

    state: str = Field(..., description="Opaque state token sent to the provider.")
    code_verifier: str = Field(..., description="PKCE verifier bound to the state.")
    issued_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class AccessCredential(BaseModel):
    """Tokens handed to the browser. The server never keeps a copy."""

    access_token: str
    refresh_token: Optional[str] = None
    expires_in: int


__all__ = ["AccessCredential", "PendingAuth"]
