"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_event_hub,
    get_oauth_flow_manager,
    get_pending_auth_store,
    get_subscription_service,
    get_webhook_admin_service,
    get_x_api_client,
    get_x_oauth_client,
)
from .config import SettingsDependency, get_app_settings

__all__ = [
    "SettingsDependency",
    "get_app_settings",
    "get_event_hub",
    "get_oauth_flow_manager",
    "get_pending_auth_store",
    "get_subscription_service",
    "get_webhook_admin_service",
    "get_x_api_client",
    "get_x_oauth_client",
]
