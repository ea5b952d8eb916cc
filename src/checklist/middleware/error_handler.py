"""Global error handler: one JSON error envelope for every route group.

Every error response has the shape::

    {"error": {"message": str, "status": int, ...extra}}
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = structlog.get_logger()

_VALUE_ERROR_PREFIX = "Value error, "


class APIError(HTTPException):
    """HTTPException carrying extra envelope fields (``attempts_remaining``, ``retry_after``)."""

    def __init__(
        self,
        status_code: int,
        message: str,
        headers: dict[str, str] | None = None,
        **extra: Any,  # noqa: ANN401
    ) -> None:
        super().__init__(status_code=status_code, detail=message, headers=headers)
        self.extra = extra


def error_body(status: int, message: str, **extra: Any) -> dict[str, Any]:  # noqa: ANN401
    """Build the error envelope."""
    return {"error": {"message": message, "status": status, **extra}}


def _describe(error: dict[str, Any]) -> dict[str, str]:
    """Reduce a pydantic error to {field, message}."""
    loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
    message = str(error.get("msg", "Invalid value")).removeprefix(_VALUE_ERROR_PREFIX)
    return {"field": ".".join(loc), "message": message}


def setup_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Handle HTTP exceptions, keeping their headers (Retry-After, WWW-Authenticate)."""
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        extra = getattr(exc, "extra", {})
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.status_code, message, **extra),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
        """Malformed input is a 400; the first problem becomes the message."""
        details = [_describe(e) for e in exc.errors()]
        if not details:
            message = "Invalid request"
        elif details[0]["field"] and exc.errors()[0].get("type") != "value_error":
            message = f"{details[0]['field']}: {details[0]['message']}"
        else:
            message = details[0]["message"]
        return JSONResponse(
            status_code=400,
            content=error_body(400, message, details=details),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unhandled exceptions: always return JSON."""
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content=error_body(500, "Internal server error"),
        )
