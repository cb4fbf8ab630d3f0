"""API middleware: CORS, request logging, and error-to-response mapping.

Starlette runs middleware as a stack (last added, first executed).  In
``main.py``::

    app.add_middleware(ErrorHandlingMiddleware)   # innermost
    app.add_middleware(RequestLoggingMiddleware)
    configure_cors(app)                            # outermost

So CORS headers are applied even to error responses, and the request log
sees the final status code after errors have been mapped.
"""

from __future__ import annotations

import time
import traceback

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from docqa.api.schemas import ErrorResponse
from docqa.utils.errors import (
    AuthError,
    BadRequestError,
    DocQAError,
    DownloadError,
    ExtractionError,
    NoContentError,
    ProcessingLimitError,
    UnsupportedFormatError,
)
from docqa.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

# Local development servers on any port are always allowed.
_LOCALHOST_ORIGIN_REGEX = r"https?://(localhost|127\.0\.0\.1)(:\d+)?"

_GENERIC_SERVER_ERROR = "The server could not complete the request"

# First match wins; anything else derived from DocQAError maps to 500.
_STATUS_BY_ERROR: tuple[tuple[type[DocQAError], int], ...] = (
    (BadRequestError, 400),
    (UnsupportedFormatError, 400),
    (ExtractionError, 400),
    (NoContentError, 400),
    (DownloadError, 400),
    (AuthError, 401),
    (ProcessingLimitError, 508),
)


def status_for(exc: DocQAError) -> int:
    """Return the HTTP status code for an application error."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 500


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------


def configure_cors(app: FastAPI, *, allowed_origins: list[str] | None = None) -> None:
    """Add CORS middleware for the allow-list plus localhost variants.

    Preflight ``OPTIONS`` requests are answered here, before routing, so
    they never reach the authentication dependency.
    """
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins or [],
        allow_origin_regex=_LOCALHOST_ORIGIN_REGEX,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "Accept"],
        max_age=86400,
    )


# ---------------------------------------------------------------------------
# Request Validation
# ---------------------------------------------------------------------------


def _describe_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request body"
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    detail = first.get("msg", "invalid value")
    return f"Invalid request body: {field}: {detail}" if field else f"Invalid request body: {detail}"


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = _describe_validation_error(exc)
    _logger.warning(
        "application_error",
        error_type="BadRequestError",
        message=message,
        status=400,
        path=str(request.url.path),
    )
    body = ErrorResponse(error="BadRequestError", message=message)
    return JSONResponse(status_code=400, content=body.model_dump(exclude_none=True))


def register_validation_handler(app: FastAPI) -> None:
    """Answer malformed request bodies with a 400 in the standard error shape.

    FastAPI validates bodies before the route runs and would otherwise reply
    422 with its own ``{"detail": [...]}`` body.
    """
    app.add_exception_handler(RequestValidationError, _validation_error_handler)


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
        start = time.perf_counter()
        response: Response | None = None

        try:
            response = await call_next(request)
            return response
        finally:
            _logger.info(
                "http_request",
                method=request.method,
                path=str(request.url.path),
                status=response.status_code if response else 500,
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
            )


# ---------------------------------------------------------------------------
# Error Handling
# ---------------------------------------------------------------------------


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Turn exceptions into structured JSON ``{error, message, hint?, details?}``.

    ``DocQAError`` subclasses map to a status code via :func:`status_for`
    and keep their message, except that 5xx messages are replaced by a
    generic one unless ``expose_details`` is set (development).  Any other
    exception becomes a 500 whose message and traceback are likewise only
    exposed when ``expose_details`` is set.
    """

    def __init__(self, app: ASGIApp, expose_details: bool = False) -> None:
        super().__init__(app)
        self._expose_details = expose_details

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        try:
            return await call_next(request)
        except DocQAError as exc:
            status_code = status_for(exc)
            log = _logger.warning if status_code < 500 else _logger.error
            log(
                "application_error",
                error_type=type(exc).__name__,
                message=exc.message,
                provider=exc.provider_name,
                kind=exc.kind.value,
                status=status_code,
                path=str(request.url.path),
            )
            # Server-side failures can carry upstream error text; keep it in the log.
            message = exc.message
            if status_code >= 500 and not self._expose_details:
                message = _GENERIC_SERVER_ERROR
            body = ErrorResponse(
                error=type(exc).__name__,
                message=message,
                hint=exc.hint,
            )
            return JSONResponse(
                status_code=status_code,
                content=body.model_dump(exclude_none=True),
            )
        except Exception as exc:
            _logger.exception(
                "unhandled_error",
                error_type=type(exc).__name__,
                path=str(request.url.path),
            )
            if self._expose_details:
                body = ErrorResponse(
                    error=type(exc).__name__,
                    message=str(exc) or "Internal Server Error",
                    details="".join(traceback.format_exception(exc)),
                )
            else:
                body = ErrorResponse(
                    error="InternalServerError",
                    message="An unexpected error occurred",
                )
            return JSONResponse(
                status_code=500,
                content=body.model_dump(exclude_none=True),
            )
