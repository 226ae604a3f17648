# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""FastAPI application factory for the mail gateway.

Routes:

- ``GET /health``: liveness payload, no dependency checks.
- ``GET /stats``: delivery counters and uptime.
- ``GET /metrics``: Prometheus exposition.
- ``POST /send-email`` and its alias ``POST /api/v1/email``: send one email.
  Both are gated by the per-client rate limiter.

Every response carries permissive CORS headers and any ``OPTIONS`` request is
answered with an empty 200 before routing. Errors raised by the pipeline are
rendered as ``{"error", "code", "message"}`` JSON bodies.

Example:
    Creating and running the API application::

        from mail_gateway.api import create_app
        from mail_gateway.config import load_settings
        from mail_gateway.state import AppState

        app = create_app(AppState.from_settings(load_settings()))

        # Run with uvicorn
        uvicorn.run(app, host="0.0.0.0", port=8080)
"""

import logging
import time
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse, Response

from . import __version__
from .errors import MailGatewayError, RateLimitExceeded
from .models import EmailResponse, ErrorResponse, HealthResponse, StatsResponse
from .state import AppState

logger = logging.getLogger(__name__)

SEND_ROUTES = ("/send-email", "/api/v1/email")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS, PUT, DELETE",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
    "Access-Control-Max-Age": "86400",
}


def get_state(request: Request) -> AppState:
    """Return the :class:`AppState` attached to the running application."""
    return request.app.state.gateway


async def enforce_rate_limit(request: Request, state: AppState = Depends(get_state)) -> None:
    """Reject the request with 429 when its client is inside the cooldown window."""
    identity = state.identity(request)
    if not await state.rate_limiter.check(identity):
        state.metrics.inc("rate_limited")
        raise RateLimitExceeded(state.rate_limiter.window_seconds)


rate_limit_dependency = Depends(enforce_rate_limit)


def create_app(
    state: AppState,
    lifespan: Callable[[FastAPI], AbstractAsyncContextManager] | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Parameters
    ----------
    state:
        Shared :class:`mail_gateway.state.AppState` holding the sender, the
        stats tracker, the rate limiter and the metrics.
    lifespan:
        Optional lifespan context manager for startup/shutdown events.

    Returns
    -------
    FastAPI
        A configured application ready to be served by Uvicorn or any ASGI
        server.
    """
    api = FastAPI(title="Mail Gateway", version=__version__, lifespan=lifespan)
    api.state.gateway = state

    @api.exception_handler(MailGatewayError)
    async def gateway_error_handler(request: Request, exc: MailGatewayError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @api.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        payload = ErrorResponse(error="Internal server error", code=500, message=str(exc))
        return JSONResponse(status_code=500, content=payload.model_dump(), headers=CORS_HEADERS)

    @api.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log each request on entry and its duration on completion."""
        start = time.perf_counter()
        client = request.client.host if request.client else "-"
        logger.info("%s %s %s", request.method, request.url.path, client)
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "%s %s completed with %s in %.1fms",
            request.method, request.url.path, response.status_code, elapsed_ms,
        )
        return response

    # Registered last so it wraps the logging middleware.
    @api.middleware("http")
    async def cors(request: Request, call_next):
        """Attach CORS headers and answer preflight requests directly."""
        if request.method == "OPTIONS":
            return Response(status_code=200, headers=CORS_HEADERS)
        response = await call_next(request)
        response.headers.update(CORS_HEADERS)
        return response

    @api.get("/health", response_model=HealthResponse)
    async def health():
        """Liveness signal.

        Always reports ``healthy``: no SMTP or other dependency is probed, so
        the answer is the same in mock and relay mode.
        """
        return HealthResponse(
            status="healthy",
            timestamp=datetime.now(timezone.utc),
            version=__version__,
            services={"email": "operational", "database": "n/a", "cache": "n/a"},
        )

    @api.get("/stats", response_model=StatsResponse)
    async def stats(state: AppState = Depends(get_state)):
        """Return delivery counters since process start."""
        return await state.stats.snapshot()

    @api.get("/metrics")
    async def metrics(state: AppState = Depends(get_state)):
        """Export Prometheus metrics in text exposition format."""
        return Response(content=state.metrics.generate_latest(), media_type="text/plain; version=0.0.4")

    async def send_email(request: Request, state: AppState = Depends(get_state)):
        """Send one email, or simulate it when no SMTP relay is configured.

        The body is read raw so that malformed JSON and missing fields are
        reported with the gateway's own messages.
        """
        body = await request.body()
        return await state.handler.handle(body)

    for path in SEND_ROUTES:
        api.add_api_route(
            path,
            send_email,
            methods=["POST"],
            response_model=EmailResponse,
            response_model_exclude_none=True,
            dependencies=[rate_limit_dependency],
            responses={
                400: {"model": ErrorResponse},
                429: {"model": ErrorResponse},
                500: {"model": ErrorResponse},
            },
        )

    return api
