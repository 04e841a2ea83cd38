# app/core/errors.py
from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

log = logging.getLogger("app.errors")


# -----------------------------
# Domain error taxonomy
# -----------------------------
class CampaignError(Exception):
    """
    Base for every failure the invite/role core reports to the user.
    Each subclass carries a stable `code` (the error "type" in responses)
    and an HTTP status.
    """

    code = "campaign_error"
    status_code = 400
    default_message = "Request failed."

    def __init__(self, message: Optional[str] = None, *, details: Optional[Any] = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class InvalidRequest(CampaignError):
    code = "invalid_request"
    status_code = 400
    default_message = "Invalid request."


class NotFound(CampaignError):
    code = "not_found"
    status_code = 404
    default_message = "Not found."


class Expired(CampaignError):
    code = "invite_expired"
    status_code = 410
    default_message = "This invite has expired."


class AlreadyResolved(CampaignError):
    code = "invite_already_resolved"
    status_code = 409
    default_message = "This invite has already been used."


class AlreadyMember(CampaignError):
    code = "already_member"
    status_code = 409
    default_message = "You are already a member of this campaign."


class DuplicateInvite(CampaignError):
    code = "duplicate_invite"
    status_code = 409
    default_message = "An invite has already been sent to this email for this campaign."


class Unauthorized(CampaignError):
    code = "unauthorized"
    status_code = 403
    default_message = "You do not have permission to do that."


class TransientIO(CampaignError):
    code = "transient_io"
    status_code = 503
    default_message = "Service temporarily unavailable. Please try again."


# -----------------------------
# Response building
# -----------------------------
def _trace_id(request: Request) -> str:
    """
    The middleware normally sets request.state.trace_id; fall back to the
    caller's X-Request-ID, then to a fresh id.
    """
    trace_id = getattr(request.state, "trace_id", None) or request.headers.get("x-request-id")
    if not trace_id:
        trace_id = uuid.uuid4().hex
    request.state.trace_id = trace_id
    return trace_id


def _error_response(
    request: Request,
    *,
    status: int,
    typ: str,
    message: str,
    details: Optional[Any] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    trace_id = _trace_id(request)
    error: Dict[str, Any] = {
        "type": typ,
        "message": message,
        "status": status,
        "trace_id": trace_id,
    }
    if details is not None:
        error["details"] = details
    return JSONResponse(
        status_code=status,
        headers={**(headers or {}), "X-Request-ID": trace_id},
        content={"ok": False, "error": error},
    )


def _from_campaign_error(request: Request, exc: CampaignError) -> JSONResponse:
    log.log(
        logging.ERROR if exc.status_code >= 500 else logging.INFO,
        "%s %s %s -> %s | %s",
        exc.code,
        request.method,
        request.url.path,
        exc.status_code,
        exc.message,
    )
    return _error_response(
        request,
        status=exc.status_code,
        typ=exc.code,
        message=exc.message,
        details=exc.details,
    )


# -----------------------------
# Registration
# -----------------------------
def register_exception_handlers(app: FastAPI) -> None:
    """Every error leaves the API as {"ok": false, "error": {...}}."""

    @app.exception_handler(CampaignError)
    async def campaign_error_handler(request: Request, exc: CampaignError):
        return _from_campaign_error(request, exc)

    @app.exception_handler(OperationalError)
    async def store_unavailable_handler(request: Request, exc: OperationalError):
        # lock timeouts, dropped connections
        log.warning("store unavailable: %s", exc.orig if exc.orig is not None else exc)
        return _from_campaign_error(request, TransientIO())

    @app.exception_handler(HTTPException)
    async def http_error_handler(request: Request, exc: HTTPException):
        status = int(exc.status_code)
        log.log(
            logging.ERROR if status >= 500 else logging.WARNING,
            "http_error %s %s -> %s | detail=%r",
            request.method,
            request.url.path,
            status,
            exc.detail,
        )
        return _error_response(
            request,
            status=status,
            typ="http_error",
            message=exc.detail if isinstance(exc.detail, str) else "HTTP error",
            details=exc.detail if isinstance(exc.detail, dict) else None,
            headers=exc.headers,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        problems = [{"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in exc.errors()]
        log.info("validation_error %s %s -> 422 | %s", request.method, request.url.path, problems)
        return _error_response(
            request,
            status=422,
            typ="validation_error",
            message="Validation failed.",
            details=problems,
        )

    @app.exception_handler(Exception)
    async def internal_error_handler(request: Request, exc: Exception):
        log.exception("internal_error %s %s -> 500", request.method, request.url.path)
        return _error_response(
            request,
            status=500,
            typ="internal_error",
            message="Internal server error.",
        )
