"""Client error hierarchy and FastAPI exception handlers.

All connectivity errors extend ClientError. Domain call sites catch these to
show a message or offer a manual refresh. The diagnostics service registers
handlers that render them as the JSON envelope: { success, data, error, meta }.
"""

from __future__ import annotations

import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Error hierarchy
# ---------------------------------------------------------------------------


class ClientError(Exception):
    """Base error for all API client errors."""

    status_code: int = 500
    message: str = "API client error"

    def __init__(self, message: str | None = None, **kwargs: object) -> None:
        self.message = message or self.__class__.message
        self.details = kwargs
        super().__init__(self.message)


class NoReachableEndpointError(ClientError):
    """Every candidate failed its reachability probe."""

    status_code = 503
    message = "No reachable backend endpoint"

    def __init__(self, candidates: list[str] | None = None, message: str | None = None) -> None:
        self.candidates = list(candidates or [])
        super().__init__(message, candidates=self.candidates)


class NetworkError(ClientError):
    """Transport-level failure (timeout, refused, DNS) against a resolved endpoint."""

    status_code = 502
    message = "Network error"
    retryable = True

    def __init__(
        self,
        message: str | None = None,
        *,
        endpoint: str | None = None,
        error_kind: str = "transport",
    ) -> None:
        self.endpoint = endpoint
        self.error_kind = error_kind
        super().__init__(message, endpoint=endpoint, error_kind=error_kind)


class ApiError(ClientError):
    """Backend responded with a non-2xx status."""

    message = "API request failed"

    def __init__(
        self,
        status: int,
        message: str | None = None,
        *,
        endpoint: str | None = None,
        retryable: bool = False,
        payload: object = None,
    ) -> None:
        self.status = status
        self.status_code = status
        self.endpoint = endpoint
        self.retryable = retryable
        self.payload = payload
        super().__init__(message or f"HTTP {status}", status=status, endpoint=endpoint)


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------


def _envelope(
    status_code: int,
    error: str,
    meta: dict | None = None,
) -> JSONResponse:
    """Build a JSON envelope error response."""
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "data": None,
            "error": error,
            "meta": meta,
        },
    )


async def _client_error_handler(_request: Request, exc: ClientError) -> JSONResponse:
    """Handle ClientError subclasses."""
    meta = exc.details if exc.details else None
    return _envelope(exc.status_code, exc.message, meta=meta)


async def _unhandled_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions — log traceback, return generic 500."""
    logger.error(
        "Unhandled exception: %s\n%s",
        exc,
        traceback.format_exc(),
    )
    return _envelope(status_code=500, error="Internal server error")


def register_error_handlers(app: FastAPI) -> None:
    """Wire up all exception handlers on the FastAPI application."""
    app.add_exception_handler(ClientError, _client_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _unhandled_error_handler)  # type: ignore[arg-type]
