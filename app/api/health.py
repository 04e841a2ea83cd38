# app/api/health.py
import time

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.auth import get_db
from app.core.clock import utcnow
from app.core.config import settings

router = APIRouter(tags=["health"])

NO_STORE = {"Cache-Control": "no-store"}


@router.get("/healthz")
def healthz() -> dict:
    return {"ok": True, "service": "loot_tracker", "ts": utcnow().isoformat() + "Z"}


@router.get("/readyz")
def readyz(db: Session = Depends(get_db)):
    """
    Ready when the store answers. Email is reported but never blocks
    readiness: invites still work without it (link is shared by hand).
    """
    started = time.perf_counter()
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        return JSONResponse(
            status_code=503,
            content={"ok": False, "db": "down", "error": str(e)},
            headers=NO_STORE,
        )
    return JSONResponse(
        status_code=200,
        content={
            "ok": True,
            "db": "up",
            "db_latency_ms": round((time.perf_counter() - started) * 1000.0, 2),
            "email": "configured" if settings.smtp_configured else "disabled",
        },
        headers=NO_STORE,
    )
