# app/core/config.py
from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv, find_dotenv

# 1) root .env (if present)
load_dotenv(find_dotenv(usecwd=True))
# 2) app/.env (do not override values already loaded)
load_dotenv(Path(__file__).resolve().parent.parent / ".env", override=False)


def _flag(name: str, default: str) -> bool:
    return (os.getenv(name, default) or "").strip().lower() in {"1", "true", "yes", "on"}


# Invites are valid for a fixed window; not configurable per call.
INVITE_TTL_DAYS = 7


class Settings:
    """Process-wide settings read from the environment once at import."""

    def __init__(self) -> None:
        self.DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./loot_tracker.db")
        self.DB_TIMEOUT_SECONDS: int = int(os.getenv("DB_TIMEOUT_SECONDS", "10"))

        # JWT
        self.SECRET_KEY: str = os.getenv("SECRET_KEY", "change-me-in-production")
        self.ALGORITHM: str = "HS256"
        self.ACCESS_TOKEN_EXPIRE_MINUTES: int = int(
            os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24))
        )

        # Invite links: <APP_ORIGIN>?invite=<token>
        self.APP_ORIGIN: str = os.getenv("APP_ORIGIN", "http://localhost:5173").rstrip("/")

        # Whether contributors may rename a campaign (owners always can)
        self.CONTRIBUTORS_CAN_RENAME: bool = _flag("CONTRIBUTORS_CAN_RENAME", "1")

        # SMTP dispatcher
        self.SMTP_HOST: str = os.getenv("SMTP_HOST", "")
        self.SMTP_PORT: int = int(os.getenv("SMTP_PORT", "587"))
        self.SMTP_USER: str = os.getenv("SMTP_USER", "")
        self.SMTP_PASSWORD: str = os.getenv("SMTP_PASSWORD", "")
        self.FROM_EMAIL: str = os.getenv("FROM_EMAIL", self.SMTP_USER)
        self.NOTIFY_TIMEOUT_SECONDS: float = float(os.getenv("NOTIFY_TIMEOUT_SECONDS", "15"))

        # Dev-only schema bootstrap
        self.ENABLE_CREATE_ALL: bool = _flag("ENABLE_CREATE_ALL", "1")
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    @property
    def smtp_configured(self) -> bool:
        return bool(self.SMTP_HOST and self.SMTP_USER and self.SMTP_PASSWORD)


settings = Settings()
