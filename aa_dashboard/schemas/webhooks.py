"""Schemas for webhook and subscription administration."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


class WebhookCreateRequest(BaseModel):
    """Body of ``POST /webhooks``. The URL is checked by the service."""

    url: Any = Field(None, description="Public HTTPS URL receiving activity.")


class SubscriberProfile(BaseModel):
    """A subscribed user hydrated for display, or an error placeholder."""

    id: str
    username: Optional[str] = None
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    error: bool = False
    message: Optional[str] = None


__all__ = ["SubscriberProfile", "WebhookCreateRequest"]
