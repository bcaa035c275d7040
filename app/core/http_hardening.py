from __future__ import annotations

import asyncio
import logging
import re
from time import perf_counter
from uuid import uuid4

from fastapi import FastAPI, Request
from starlette.responses import Response

from app.core.config import settings
from app.core.errors import InternalError, error_response

REQUEST_ID_HEADER = "X-Request-ID"
_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9._-]{1,128}$")
_LOG = logging.getLogger("app.http")
_ERRORS_LOG = logging.getLogger("app.errors")

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "X-Permitted-Cross-Domain-Policies": "none",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "Permissions-Policy": "geolocation=(), microphone=(), camera=(), payment=(), usb=()",
    "Cache-Control": "no-store",
    "Pragma": "no-cache",
}


def resolve_request_id(raw: str | None) -> str:
    """Reuse a caller-supplied id when it is safe to echo, else mint one."""
    candidate = str(raw or "").strip()
    if candidate and _VALID_REQUEST_ID.fullmatch(candidate):
        return candidate
    return uuid4().hex


def _stamp(response: Response, request_id: str) -> Response:
    response.headers.update(SECURITY_HEADERS)
    response.headers[REQUEST_ID_HEADER] = request_id
    return response


def install_http_hardening(app: FastAPI) -> None:
    @app.middleware("http")
    async def _harden(request: Request, call_next):
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id
        started = perf_counter()

        try:
            response = await asyncio.wait_for(call_next(request), timeout=settings.REQUEST_TIMEOUT_SECONDS)
        except asyncio.TimeoutError:
            _LOG.warning(
                "deadline exceeded method=%s path=%s limit_s=%s request_id=%s",
                request.method,
                request.url.path,
                settings.REQUEST_TIMEOUT_SECONDS,
                request_id,
            )
            response = error_response(504, "Request timed out")
        except Exception:
            _ERRORS_LOG.error(
                "unhandled exception method=%s path=%s request_id=%s",
                request.method,
                request.url.path,
                request_id,
                exc_info=True,
            )
            response = error_response(InternalError.status_code, InternalError.default_message)

        _stamp(response, request_id)
        _LOG.info(
            "method=%s path=%s status=%s elapsed_ms=%.1f request_id=%s",
            request.method,
            request.url.path,
            response.status_code,
            (perf_counter() - started) * 1000.0,
            request_id,
        )
        return response
