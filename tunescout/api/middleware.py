"""API middleware -- CORS, request logging, and error handling.

Provides helper functions and middleware classes to configure cross-origin
resource sharing, structured request logging (via structlog), and automatic
conversion of ``TuneScoutError`` subclasses into JSON ``ErrorResponse``
bodies with a status code chosen per error class.

# ─── MIDDLEWARE EXECUTION ORDER ───────────────────────────────────────
#
# Starlette middleware is a stack (LIFO -- last added, first executed):
#
#   In main.py:
#     app.add_middleware(ErrorHandlingMiddleware)   # added 1st -> inner
#     app.add_middleware(RequestLoggingMiddleware)   # added 2nd -> outer
#
#   Request flow:
#     Client -> RequestLogging -> ErrorHandling -> route handler
#
# So RequestLoggingMiddleware sees the *final* status code, including
# the one ErrorHandling picked for a domain error.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import time

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from tunescout.api.schemas import ErrorResponse
from tunescout.utils.errors import (
    AuthenticationError,
    InvalidRequestError,
    SignalStoreError,
    TuneScoutError,
    UserNotFoundError,
)
from tunescout.utils.logging import clear_request_context, get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

# First match wins; anything else is a 500.
_STATUS_BY_ERROR: tuple[tuple[type[TuneScoutError], int], ...] = (
    (AuthenticationError, 401),
    (UserNotFoundError, 404),
    (InvalidRequestError, 400),
    (SignalStoreError, 503),
)


def status_for(exc: TuneScoutError) -> int:
    """Return the HTTP status code for a domain error."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 500


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------


def configure_cors(app: FastAPI, *, allowed_origins: list[str] | None = None) -> None:
    """Add CORS middleware to the FastAPI application.

    Parameters
    ----------
    app:
        The FastAPI application instance.
    allowed_origins:
        Explicit list of allowed origins.  Defaults to ``["*"]`` for
        development; override with specific origins in production.
    """
    origins = allowed_origins or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["ETag"],
    )


# ---------------------------------------------------------------------------
# Request Logging
# ---------------------------------------------------------------------------


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every HTTP request with method, path, status code, and duration."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        # Context bound by a previous request on this task must not leak.
        clear_request_context()
        start = time.perf_counter()
        response: Response | None = None

        try:
            response = await call_next(request)
            return response
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            status_code = response.status_code if response else 500
            _logger.info(
                "http_request",
                method=request.method,
                path=str(request.url.path),
                status=status_code,
                duration_ms=duration_ms,
            )
            clear_request_context()


# ---------------------------------------------------------------------------
# Error Handling
# ---------------------------------------------------------------------------


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Catch ``TuneScoutError`` subclasses and return structured JSON errors.

    Caller errors (missing identity, unknown user, bad parameters) map to
    4xx codes, an unreachable signal store to 503.  Stack traces stay in
    the server log; the client only sees the error type and message.
    Generic Python exceptions fall through to FastAPI's default 500
    handler.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        try:
            return await call_next(request)
        except TuneScoutError as exc:
            status_code = status_for(exc)
            log = _logger.warning if status_code < 500 else _logger.error
            log(
                "application_error",
                error_type=type(exc).__name__,
                message=exc.message,
                provider=exc.provider_name,
                path=str(request.url.path),
                status=status_code,
            )
            body = ErrorResponse(
                error=type(exc).__name__,
                detail=exc.message,
            )
            return JSONResponse(
                status_code=status_code,
                content=body.model_dump(),
            )
