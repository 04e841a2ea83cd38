# app/services/audit.py
from __future__ import annotations

import json
import logging
from typing import Any, Optional, Dict

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from fastapi import Request

from app.models.audit_log import AuditLog

log = logging.getLogger("app.audit")


# -----------------------------
# Helpers
# -----------------------------
def ip_from_request(request: Optional[Request]) -> Optional[str]:
    """
    Best-effort client IP extraction compatible with proxies.
    Order:
      - X-Forwarded-For (first in the list)
      - X-Real-IP
      - request.client.host
    """
    if request is None:
        return None

    xff = request.headers.get("x-forwarded-for")
    if xff:
        first = xff.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    client = getattr(request, "client", None)
    return getattr(client, "host", None)


def _dumps_meta(meta: Optional[Dict[str, Any]]) -> str:
    return json.dumps(meta or {}, ensure_ascii=False, separators=(",", ":"), default=str)


# -----------------------------
# Core API
# -----------------------------
def audit_log(
    db: Session,
    *,
    campaign_id: Optional[int],
    user_id: Optional[int],
    action: str,
    entity_type: Optional[str],
    entity_id: Optional[int],
    meta: Optional[Dict[str, Any]] = None,
    ip: Optional[str] = None,
) -> None:
    """
    Inserts an audit record in its own commit.
    Failures are logged and rolled back; they never fail the caller's request.
    """
    try:
        db.add(
            AuditLog(
                campaign_id=campaign_id,
                user_id=user_id,
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                meta=_dumps_meta(meta),
                ip_address=ip,
            )
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        log.exception("audit write failed action=%s campaign_id=%s", action, campaign_id)
