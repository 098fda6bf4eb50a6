"""Public schema exports."""

from .auth import AuthStartResponse, RefreshTokenRequest
from .events import DeliveredEvent, PollResponse, SocketAuthMessage
from .webhooks import SubscriberProfile, WebhookCreateRequest

__all__ = [
    "AuthStartResponse",
    "DeliveredEvent",
    "PollResponse",
    "RefreshTokenRequest",
    "SocketAuthMessage",
    "SubscriberProfile",
    "WebhookCreateRequest",
]
