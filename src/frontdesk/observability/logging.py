"""Structured JSON logging.

One JSON object per line on stdout, shaped for Cloud Logging:

    {"time": ..., "severity": "INFO", "logger": ..., "message": ...,
     "correlationId": ..., <extra_fields>...}

Callers attach context with extra={"extra_fields": {...}}; anything that
may hold guest data goes through redaction.safe_log_context first.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

from .correlation import get_correlation_id


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "time": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "severity": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        correlation_id = get_correlation_id()
        if correlation_id:
            entry["correlationId"] = correlation_id

        entry.update(getattr(record, "extra_fields", None) or {})

        if record.exc_info:
            entry["error_type"] = record.exc_info[0].__name__
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def _level_from_env() -> int:
    level = logging.getLevelName(os.environ.get("LOG_LEVEL", "INFO").upper())
    return level if isinstance(level, int) else logging.INFO


def get_logger(name: str) -> logging.Logger:
    """Logger writing JSON lines to stdout at LOG_LEVEL (default INFO).

    Configured once per name; later calls return the same logger untouched.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)
    logger.setLevel(_level_from_env())
    logger.propagate = False
    return logger
