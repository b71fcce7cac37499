"""Uniform failure responses for every route.

``shape_error`` is the pure classification step: it maps an exception to a
status code and the ``{success, message, error, timestamp}`` envelope. The
FastAPI handlers around it log each failure exactly once, then shape it.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from inventory_api.api.schemas.common import iso_timestamp
from inventory_api.core.errors import (
    AppError,
    AuthReason,
    ErrorKind,
    FieldViolation,
    ValidationError,
)

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal Server Error"
VALIDATION_ERROR_MESSAGE = "Validation Error"
AUTH_MESSAGES = {
    AuthReason.INVALID: "Invalid token",
    AuthReason.EXPIRED: "Token expired",
}


def _envelope(message: str, error: str | None, **extra: Any) -> dict[str, Any]:
    body: dict[str, Any] = {
        "success": False,
        "message": message,
        "error": error,
        "timestamp": iso_timestamp(),
    }
    body.update(extra)
    return body


def shape_error(exc: BaseException, *, production: bool) -> tuple[int, dict[str, Any]]:
    """Classify ``exc`` by its error kind and build the client-facing body."""
    if isinstance(exc, AppError):
        if exc.kind is ErrorKind.VALIDATION:
            details = [v.as_dict() for v in getattr(exc, "violations", [])]
            return 400, _envelope(
                VALIDATION_ERROR_MESSAGE, getattr(exc, "detail", exc.message), details=details
            )
        if exc.kind is ErrorKind.AUTHENTICATION:
            message = AUTH_MESSAGES.get(getattr(exc, "reason", None), exc.message)
            return exc.status_code, _envelope(message, exc.message)
        if exc.is_operational:
            return exc.status_code, _envelope(exc.message, exc.message)

    detail = None if production else str(exc)
    return 500, _envelope(INTERNAL_ERROR_MESSAGE, detail)


def log_failure(request: Request, exc: BaseException) -> None:
    """Record message, stack, URL, method and time for a failed request."""
    expected = isinstance(exc, AppError) and exc.is_operational and exc.status_code < 500
    level = logging.WARNING if expected else logging.ERROR
    message = str(exc) or exc.__class__.__name__
    timestamp = iso_timestamp()
    logger.log(
        level,
        f"Error: {message} | {request.method} {request.url} | {timestamp}",
        exc_info=exc,
        extra={
            "error_message": message,
            "url": str(request.url),
            "method": request.method,
            "error_timestamp": timestamp,
        },
    )


def _is_production(request: Request) -> bool:
    settings = getattr(request.app.state, "settings", None)
    return bool(settings is not None and settings.is_production)


def error_response(request: Request, exc: BaseException) -> JSONResponse:
    log_failure(request, exc)
    status_code, body = shape_error(exc, production=_is_production(request))
    return JSONResponse(status_code=status_code, content=body)


def not_found_response(request: Request) -> JSONResponse:
    """Fallback for requests that matched no route."""
    path = request.url.path
    if request.url.query:
        path = f"{path}?{request.url.query}"
    return JSONResponse(
        status_code=404,
        content={
            "success": False,
            "message": f"Route {path} not found",
            "timestamp": iso_timestamp(),
        },
    )


async def handle_app_error(request: Request, exc: AppError) -> JSONResponse:
    return error_response(request, exc)


async def handle_request_validation(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report FastAPI's own parameter/body checks as a domain validation error."""
    violations = []
    seen = set()
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ())]
        if error.get("type") == "json_invalid":
            # loc is ('body', <character offset>); the whole body is at fault
            field = "body"
        else:
            # Drop the leading 'body'/'query'/'path' marker unless it is all there is
            field = ".".join(loc[1:]) if len(loc) > 1 else ".".join(loc) or "body"
        if field in seen:
            continue
        seen.add(field)
        violations.append(FieldViolation(field=field, message=error.get("msg", "Invalid value")))
    error = ValidationError(violations)
    error.__cause__ = exc
    return error_response(request, error)


async def handle_http_exception(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    if exc.status_code == 404:
        return not_found_response(request)
    error = AppError(str(exc.detail), exc.status_code)
    return error_response(request, error)


class UnhandledErrorMiddleware(BaseHTTPMiddleware):
    """Turn any unclassified exception into the 500 envelope."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            return error_response(request, exc)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, handle_app_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_middleware(UnhandledErrorMiddleware)
