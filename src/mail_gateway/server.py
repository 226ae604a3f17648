# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""ASGI application entry point for uvicorn.

This module builds the application from the environment at import time.

Usage:
    uvicorn mail_gateway.server:app --host 0.0.0.0 --port 8080

See :mod:`mail_gateway.config` for the environment variables read.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .api import create_app
from .config import load_settings
from .logger import configure_logging
from .state import AppState

_logger = logging.getLogger(__name__)


def build_lifespan(state: AppState):
    """Return a lifespan that runs the rate-limit sweeper while serving."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        interval = state.settings.rate_limit_sweep_seconds
        _logger.info(
            "Mail gateway starting in %s mode (rate limit %gs, sweep every %gs)",
            state.sender.mode, state.rate_limiter.window_seconds, interval,
        )
        sweeper = asyncio.create_task(state.rate_limiter.run_sweeper(interval))
        try:
            yield
        finally:
            sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sweeper
            _logger.info("Mail gateway stopped")

    return lifespan


def build_app(settings=None) -> FastAPI:
    """Create the configured application from ``settings`` or the environment."""
    settings = settings or load_settings()
    state = AppState.from_settings(settings)
    return create_app(state, lifespan=build_lifespan(state))


_settings = load_settings()
configure_logging(_settings.log_level)

app = build_app(_settings)
