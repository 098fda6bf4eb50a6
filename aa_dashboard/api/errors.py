"""
Exception handlers translating service errors into the local error envelope.

Every error body has the shape ``{"error": <message>}``, with ``details``
added when the upstream API supplied a body.
"""

from __future__ import annotations

import logging
from http import HTTPStatus

import httpx
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from aa_dashboard.clients import ServerMisconfiguredError, UpstreamAPIError
from aa_dashboard.services import InvalidWebhookRequestError

logger = logging.getLogger(__name__)


async def _upstream_error(request: Request, exc: UpstreamAPIError) -> JSONResponse:
    if exc.message is None and exc.details is not None:
        content = exc.details
    else:
        content = {"error": exc.message or "Upstream request failed.", "details": exc.details}
    logger.info("%s %s -> %s (upstream)", request.method, request.url.path, exc.status_code)
    return JSONResponse(status_code=exc.status_code, content=content)


async def _misconfigured(request: Request, exc: ServerMisconfiguredError) -> JSONResponse:
    return JSONResponse(
        status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
        content={"error": f"Server misconfigured: {exc}"},
    )


async def _invalid_input(request: Request, exc: InvalidWebhookRequestError) -> JSONResponse:
    return JSONResponse(status_code=HTTPStatus.BAD_REQUEST, content={"error": str(exc)})


async def _transport_error(request: Request, exc: httpx.HTTPError) -> JSONResponse:
    logger.error(
        "Upstream call failed for %s %s", request.method, request.url.path, exc_info=exc
    )
    return JSONResponse(
        status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error while contacting the X API."},
    )


async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=HTTPStatus.BAD_REQUEST,
        content={"error": "Invalid request.", "details": jsonable_encoder(exc.errors())},
    )


async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(UpstreamAPIError, _upstream_error)
    app.add_exception_handler(ServerMisconfiguredError, _misconfigured)
    app.add_exception_handler(InvalidWebhookRequestError, _invalid_input)
    app.add_exception_handler(httpx.HTTPError, _transport_error)
    app.add_exception_handler(RequestValidationError, _validation_error)
    app.add_exception_handler(StarletteHTTPException, _http_error)


__all__ = ["register_exception_handlers"]
