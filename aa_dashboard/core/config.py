"""
Application configuration models and helpers.

Centralizes settings management so the FastAPI app, the event transport and
the helper scripts share a consistent configuration surface.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

import os

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


class XSettings(BaseSettings):
    """Credentials and endpoints for the upstream X API.

    Every credential is optional at load time. Handlers that need a missing
    value answer with a 500 instead of refusing to boot.
    """

    client_id: Optional[str] = Field(None, validation_alias="X_CLIENT_ID")
    client_secret: Optional[str] = Field(None, validation_alias="X_CLIENT_SECRET")
    redirect_uri: Optional[AnyHttpUrl] = Field(None, validation_alias="X_REDIRECT_URI")
    bearer_token: Optional[str] = Field(
        None,
        validation_alias="X_BEARER_TOKEN",
        description="App-only bearer token used for webhook administration.",
    )
    api_key_secret: Optional[str] = Field(
        None,
        validation_alias="X_API_KEY_SECRET",
        description="Consumer secret used to answer CRC challenges.",
    )
    api_base_url: str = Field("https://api.twitter.com/2", validation_alias="X_API_BASE_URL")
    authorize_url: str = Field(
        "https://twitter.com/i/oauth2/authorize", validation_alias="X_AUTHORIZE_URL"
    )

    def missing_credentials(self) -> list[str]:
        """Return the env names of credentials that are not configured."""
        required = {
            "X_CLIENT_ID": self.client_id,
            "X_REDIRECT_URI": self.redirect_uri,
            "X_BEARER_TOKEN": self.bearer_token,
            "X_API_KEY_SECRET": self.api_key_secret,
        }
        return [name for name, value in required.items() if not value]


class OAuthSettings(BaseSettings):
    """OAuth PKCE flow configuration."""

    state_ttl_seconds: int = Field(3600, validation_alias="OAUTH_STATE_TTL")
    sweep_interval_seconds: int = Field(300, validation_alias="OAUTH_SWEEP_INTERVAL")
    scopes: str = Field(
        "tweet.read users.read offline.access dm.read dm.write",
        validation_alias="OAUTH_SCOPES",
    )

    @field_validator("scopes", mode="before")
    @classmethod
    def _normalize_scopes(cls, value: str | list[str] | tuple[str, ...]) -> str:
        """Support providing scopes as a comma or space separated string."""
        if isinstance(value, (list, tuple)):
            parts = list(value)
        else:
            parts = value.replace(",", " ").split()
        return " ".join(part.strip() for part in parts if part.strip())


class EventSettings(BaseSettings):
    """Live event transport configuration."""

    poll_interval_seconds: float = Field(5.0, validation_alias="EVENTS_POLL_INTERVAL")
    max_displayed: int = Field(50, validation_alias="EVENTS_MAX_DISPLAYED")
    handshake_timeout_seconds: float = Field(
        10.0, validation_alias="EVENTS_HANDSHAKE_TIMEOUT"
    )
    verify_signature: bool = Field(True, validation_alias="EVENTS_VERIFY_SIGNATURE")


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    host: str = Field("0.0.0.0", validation_alias="HOST")
    port: int = Field(8000, validation_alias="PORT")
    frontend_base_url: Optional[AnyHttpUrl] = Field(
        None,
        validation_alias="FRONTEND_URL",
        description="Dashboard URL that receives tokens after a successful login.",
    )
    x_api: XSettings = Field(default_factory=XSettings)
    oauth: OAuthSettings = Field(default_factory=OAuthSettings)
    events: EventSettings = Field(default_factory=EventSettings)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()


__all__ = [
    "AppSettings",
    "EventSettings",
    "OAuthSettings",
    "XSettings",
    "get_settings",
]
