"""Expose constructed client wrappers."""

from .x_api import ServerMisconfiguredError, UpstreamAPIError, XApiClient
from .x_oauth import OAuthTokenExchangeError, XOAuthClient

__all__ = [
    "OAuthTokenExchangeError",
    "ServerMisconfiguredError",
    "UpstreamAPIError",
    "XApiClient",
    "XOAuthClient",
]
