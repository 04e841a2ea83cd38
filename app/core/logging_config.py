# app/core/logging_config.py
from __future__ import annotations

import json
import logging
import sys

from app.core.config import settings


class JsonFormatter(logging.Formatter):
    """One JSON object per line (stdout is collected by the platform)."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
        }
        trace_id = getattr(record, "trace_id", None)
        if trace_id:
            payload["trace_id"] = trace_id
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def setup_logging(level: str | None = None) -> None:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())

    root = logging.getLogger()
    root.setLevel(level or settings.LOG_LEVEL)
    # avoid duplicate lines when called twice (reload, tests)
    root.handlers.clear()
    root.addHandler(handler)
