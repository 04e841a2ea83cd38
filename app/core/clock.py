# app/core/clock.py
from datetime import datetime, timezone


def utcnow() -> datetime:
    # tz-aware UTC, stored as naive UTC (SQLite-friendly)
    return datetime.now(timezone.utc).replace(tzinfo=None)
