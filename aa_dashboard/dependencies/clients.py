"""
Factory functions to provide shared clients and services as FastAPI dependencies.

Upstream clients are process singletons. The pending-auth store and the
event hub are owned by the application instance and read from ``app.state``.
"""

from functools import lru_cache

from fastapi import Depends
from fastapi.requests import HTTPConnection

from aa_dashboard.clients import XApiClient, XOAuthClient
from aa_dashboard.core.config import AppSettings, get_settings
from aa_dashboard.dependencies.config import get_app_settings
from aa_dashboard.services import (
    EventHub,
    OAuthFlowManager,
    PendingAuthStore,
    SubscriptionService,
    WebhookAdminService,
)


@lru_cache()
def _settings():
    """Internal helper to cache settings for client factories."""
    return get_settings()


@lru_cache()
def get_x_api_client() -> XApiClient:
    """Create a singleton X API client."""
    return XApiClient(_settings().x_api)


@lru_cache()
def get_x_oauth_client() -> XOAuthClient:
    """Create a singleton X OAuth client."""
    settings = _settings()
    return XOAuthClient(settings.x_api, settings.oauth)


def get_pending_auth_store(connection: HTTPConnection) -> PendingAuthStore:
    """Return the application's pending OAuth state table."""
    return connection.app.state.pending_auth


def get_event_hub(connection: HTTPConnection) -> EventHub:
    """Return the application's live event hub."""
    return connection.app.state.event_hub


def get_oauth_flow_manager(
    store: PendingAuthStore = Depends(get_pending_auth_store),
    oauth_client: XOAuthClient = Depends(get_x_oauth_client),
) -> OAuthFlowManager:
    return OAuthFlowManager(store, oauth_client)


def get_webhook_admin_service(
    client: XApiClient = Depends(get_x_api_client),
    settings: AppSettings = Depends(get_app_settings),
) -> WebhookAdminService:
    return WebhookAdminService(client, settings.x_api)


def get_subscription_service(
    client: XApiClient = Depends(get_x_api_client),
) -> SubscriptionService:
    return SubscriptionService(client)


__all__ = [
    "get_event_hub",
    "get_oauth_flow_manager",
    "get_pending_auth_store",
    "get_subscription_service",
    "get_webhook_admin_service",
    "get_x_api_client",
    "get_x_oauth_client",
]
