from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

_LOG = logging.getLogger("app.errors")


class AppError(Exception):
    """Base of every failure that is reported to the caller by kind."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    default_message = "Invalid request"


class Unauthorized(AppError):
    status_code = 401
    default_message = "Unauthorized"


class NotFound(AppError):
    status_code = 404
    default_message = "Not found"


class FormInactive(AppError):
    status_code = 400
    default_message = "This form is no longer accepting responses"


class ServiceUnavailable(AppError):
    status_code = 503
    default_message = "Service temporarily unavailable"
    retry_after_seconds = 5


class InternalError(AppError):
    status_code = 500


def error_response(status_code: int, message: str, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


def _describe_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return ValidationError.default_message
    first = errors[0]
    loc = [str(part) for part in first.get("loc", ()) if part != "body"]
    msg = str(first.get("msg") or "invalid value")
    if loc:
        return f"Invalid field {'.'.join(loc)}: {msg}"
    return f"Invalid request body: {msg}"


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def _app_error_handler(request: Request, exc: AppError):
        headers = None
        if isinstance(exc, ServiceUnavailable):
            headers = {"Retry-After": str(exc.retry_after_seconds)}
        _LOG.info("%s %s -> %s %s", request.method, request.url.path, exc.status_code, exc.message)
        return error_response(exc.status_code, exc.message, headers)

    @app.exception_handler(RequestValidationError)
    async def _request_validation_handler(request: Request, exc: RequestValidationError):
        message = _describe_validation_error(exc)
        _LOG.info("%s %s -> 400 %s", request.method, request.url.path, message)
        return error_response(400, message)

    @app.exception_handler(HTTPException)
    async def _http_exception_handler(request: Request, exc: HTTPException):
        return error_response(exc.status_code, str(exc.detail), getattr(exc, "headers", None))

    @app.exception_handler(OperationalError)
    @app.exception_handler(PoolTimeoutError)
    async def _store_unavailable_handler(request: Request, exc: Exception):
        _LOG.warning("store unavailable path=%s: %s", request.url.path, exc)
        return error_response(
            ServiceUnavailable.status_code,
            ServiceUnavailable.default_message,
            {"Retry-After": str(ServiceUnavailable.retry_after_seconds)},
        )

    @app.exception_handler(DBAPIError)
    async def _store_error_handler(request: Request, exc: DBAPIError):
        if exc.connection_invalidated:
            return error_response(
                ServiceUnavailable.status_code,
                ServiceUnavailable.default_message,
                {"Retry-After": str(ServiceUnavailable.retry_after_seconds)},
            )
        _LOG.error("store error path=%s", request.url.path, exc_info=exc)
        return error_response(500, InternalError.default_message)

    @app.exception_handler(Exception)
    async def _unhandled_handler(request: Request, exc: Exception):
        _LOG.error("unhandled exception path=%s", request.url.path, exc_info=exc)
        return error_response(500, InternalError.default_message)
