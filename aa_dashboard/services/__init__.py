"""Service layer exports."""

from .event_classifier import classify
from .event_feed import EventFeed
from .event_hub import EventHub
from .event_renderer import EventCard, render_event
from .oauth_flow import InvalidOAuthStateError, OAuthFlowManager, PendingAuthStore
from .subscriptions import SubscriptionService
from .webhook_admin import InvalidWebhookRequestError, WebhookAdminService

__all__ = [
    "EventCard",
    "EventFeed",
    "EventHub",
    "InvalidOAuthStateError",
    "InvalidWebhookRequestError",
    "OAuthFlowManager",
    "PendingAuthStore",
    "SubscriptionService",
    "WebhookAdminService",
    "classify",
    "render_event",
]
