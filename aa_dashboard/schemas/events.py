"""Schemas for events delivered to dashboard clients."""

from __future__ import annotations

from datetime import datetime
from typing import List

from pydantic import BaseModel, Field

from aa_dashboard.models.events import ActivityEvent


class DeliveredEvent(BaseModel):
    """An event as sent over either transport."""

    sequence: int = Field(..., description="Hub sequence number; 0 before any event.")
    received_at: datetime
    event: ActivityEvent
    title: str
    card_html: str


class PollResponse(BaseModel):
    """Short-poll result. ``cursor`` is echoed back on the next poll."""

    cursor: int
    events: List[DeliveredEvent] = Field(default_factory=list)


class SocketAuthMessage(BaseModel):
    """First message a push-channel client must send."""

    type: str
    token: str = Field(..., min_length=1)


__all__ = ["DeliveredEvent", "PollResponse", "SocketAuthMessage"]
