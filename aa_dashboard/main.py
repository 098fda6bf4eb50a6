"""
FastAPI application entrypoint for the account activity dashboard.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from aa_dashboard.api.errors import register_exception_handlers
from aa_dashboard.api.events import router as events_router
from aa_dashboard.api.routes import router as api_router
from aa_dashboard.core.config import get_settings
from aa_dashboard.core.logging import configure_logging
from aa_dashboard.services import EventHub, PendingAuthStore
from aa_dashboard.services.oauth_flow import sweep_pending_auth

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Run the pending-auth sweep for the lifetime of the application."""
    interval = app.state.settings.oauth.sweep_interval_seconds
    sweeper = asyncio.create_task(sweep_pending_auth(app.state.pending_auth, interval))
    logger.info("Started OAuth state sweep every %ss.", interval)
    try:
        yield
    finally:
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    missing = settings.x_api.missing_credentials()
    if missing:
        logger.warning("Missing X credentials: %s. Affected routes will return 500.", ", ".join(missing))

    app = FastAPI(
        title="Account Activity Dashboard",
        version="0.1.0",
        description="Webhook administration, subscriptions and live activity events for the X API.",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.pending_auth = PendingAuthStore(ttl_seconds=settings.oauth.state_ttl_seconds)
    app.state.event_hub = EventHub()

    register_exception_handlers(app)
    app.include_router(api_router, prefix="/api")
    app.include_router(events_router)
    return app


app = create_app()


def run() -> None:
    """Serve the application with uvicorn on the configured host and port."""
    import uvicorn

    settings = get_settings()
    uvicorn.run("aa_dashboard.main:app", host=settings.host, port=settings.port)


__all__ = ["app", "create_app", "run"]
