# app/main.py
from __future__ import annotations

from fastapi import FastAPI

from app.core.config import settings
from app.core.errors import register_exception_handlers
from app.core.logging_config import setup_logging
from app.db.session import engine
from app.middleware.request_logging import RequestLoggingMiddleware

# ---------------------------
# MODELS (registers every table on Base.metadata)
# ---------------------------
from app.models import Base

# ---------------------------
# ROUTERS
# ---------------------------
from app.api import health
from app.api.v1 import auth, campaigns, members, invites


def create_app() -> FastAPI:
    setup_logging()

    # dev-only; production schema comes from alembic
    if settings.ENABLE_CREATE_ALL:
        Base.metadata.create_all(bind=engine)

    application = FastAPI(title="D20 Loot Tracker", version="1.0.0")
    application.add_middleware(RequestLoggingMiddleware)
    register_exception_handlers(application)

    application.include_router(auth.router, prefix="/api/v1", tags=["auth"])
    application.include_router(campaigns.router, prefix="/api/v1", tags=["campaigns"])
    application.include_router(members.router, prefix="/api/v1", tags=["members"])
    application.include_router(invites.router, prefix="/api/v1", tags=["invites"])
    application.include_router(health.router, prefix="/api", tags=["health"])
    return application


app = create_app()
