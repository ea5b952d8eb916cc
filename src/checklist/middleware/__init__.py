"""Middleware registration."""

from __future__ import annotations

from typing import TYPE_CHECKING

from checklist.middleware.cors import setup_cors
from checklist.middleware.error_handler import setup_error_handlers
from checklist.middleware.logging import setup_logging
from checklist.middleware.rate_limit import RateLimitMiddleware, build_rate_limiters
from checklist.middleware.request_id import RequestIdMiddleware

if TYPE_CHECKING:
    from fastapi import FastAPI

    from checklist.config import Settings


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register all middleware in the correct order.

    FastAPI/Starlette executes middleware in reverse-add order (last added = outermost).
    CORS must be outermost so it wraps error responses from inner middleware (e.g. 429).
    The per-group limiters are published on ``app.state.rate_limiters`` for the
    ``rate_limit`` route dependency.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.state.rate_limiters = build_rate_limiters(settings)
    app.add_middleware(RateLimitMiddleware, limiter=app.state.rate_limiters.get("general"))
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)  # added last → outermost → wraps 429 responses
