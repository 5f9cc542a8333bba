"""
Domain exceptions and the FastAPI exception handlers that render them.

Services raise plain ``ValueError`` for missing records (mapped to 404
by the endpoints, as elsewhere in the codebase), ``ValidationError``
for rule violations and ``ConflictError`` for operations that clash
with existing data.  The handlers registered by ``register_exception_handlers``
convert every error into the standard response envelope
``{"success": false, "message": ..., "errors": [...]}``.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import settings


logger = logging.getLogger(__name__)


class ValidationError(Exception):
    """Business rule violation with field‑keyed details.

    ``errors`` is a list of ``{"field": ..., "message": ...}`` dicts.
    """

    def __init__(self, errors: List[Dict[str, str]], message: str = "Validation failed") -> None:
        super().__init__(message)
        self.message = message
        self.errors = errors


class ConflictError(Exception):
    """Operation conflicts with existing data (duplicates, references)."""

    def __init__(self, message: str, status_code: int = status.HTTP_409_CONFLICT) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class RateLimitExceeded(Exception):
    """Client exceeded the allowed number of requests in the window."""

    def __init__(self, message: str, retry_after: int) -> None:
        super().__init__(message)
        self.message = message
        self.retry_after = retry_after


def error_body(message: str, errors: Optional[List[Any]] = None, error: Optional[str] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    if error is not None:
        body["error"] = error
    return body


async def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    detail = exc.detail
    if isinstance(detail, dict):
        body = {"success": False, **detail}
    else:
        body = error_body(str(detail))
    return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, "headers", None))


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        errors.append({"field": ".".join(loc), "message": err.get("msg", "Invalid value")})
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body("Validation failed", errors),
    )


async def _validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(exc.message, exc.errors),
    )


async def _conflict_handler(request: Request, exc: ConflictError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.message))


async def _rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content=error_body(exc.message, error="RATE_LIMIT_EXCEEDED"),
        headers={"Retry-After": str(exc.retry_after)},
    )


async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(
            "Internal server error",
            error=str(exc) if settings.expose_errors else None,
        ),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach all envelope‑producing exception handlers to ``app``."""
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(ValidationError, _validation_error_handler)
    app.add_exception_handler(ConflictError, _conflict_handler)
    app.add_exception_handler(RateLimitExceeded, _rate_limit_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)
