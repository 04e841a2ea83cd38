# app/middleware/request_logging.py
from __future__ import annotations

import logging
import time
import uuid
from typing import Iterable, Optional, Tuple

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("app.request")

QUIET_PREFIXES: Tuple[str, ...] = (
    "/api/healthz",
    "/api/readyz",
    "/docs",
    "/redoc",
    "/openapi.json",
)

INVITE_SEGMENT = "/invites/"


def _client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def _redact(path: str) -> str:
    """Invite tokens are credentials; keep only a short suffix in logs."""
    head, found, rest = path.partition(INVITE_SEGMENT)
    if not found:
        return path
    token, sep, tail = rest.partition("/")
    if len(token) > 6:
        token = "..." + token[-6:]
    return f"{head}{INVITE_SEGMENT}{token}{sep}{tail}"


def _level(status: Optional[int]) -> int:
    if status is None or status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    One log line per request (method, redacted path, status, caller, duration)
    tagged with a trace id that is also returned as X-Request-ID.
    """

    def __init__(self, app, quiet_prefixes: Iterable[str] = QUIET_PREFIXES):
        super().__init__(app)
        self.quiet_prefixes = tuple(quiet_prefixes)

    def _quiet(self, request: Request) -> bool:
        return request.method == "OPTIONS" or request.url.path.startswith(self.quiet_prefixes)

    def _log(self, request: Request, status: Optional[int], started: float, exc_info: bool = False) -> None:
        trace_id = request.state.trace_id
        logger.log(
            _level(status),
            "request %s %s -> %s ip=%s user_id=%s dur_ms=%s trace_id=%s",
            request.method,
            _redact(request.url.path),
            status if status is not None else "CRASH",
            _client_ip(request),
            getattr(request.state, "user_id", None),
            int((time.perf_counter() - started) * 1000),
            trace_id,
            exc_info=exc_info,
            extra={"trace_id": trace_id},
        )

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request.state.trace_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        quiet = self._quiet(request)
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            if not quiet:
                self._log(request, None, started, exc_info=True)
            raise

        response.headers["X-Request-ID"] = request.state.trace_id
        if not quiet:
            self._log(request, response.status_code, started)
        return response
