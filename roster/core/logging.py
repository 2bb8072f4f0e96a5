# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Structured JSON logging: one JSON line per record.

The request middleware binds the request id and the caller's user id to
context variables for the duration of a request, so every record emitted
while serving it (from controllers, services, repositories or the
notification worker) carries both without passing them around.
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Optional

from roster.core.config import settings

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
caller_id_var: ContextVar[Optional[str]] = ContextVar("caller_id", default=None)

# Attributes passed through logger.*(..., extra={...}) that end up in the line.
EXTRA_FIELDS: tuple[str, ...] = ("swap_request_id", "schedule_id")


class JSONFormatter(logging.Formatter):
    """Render a record with the service name, request context and swap ids."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "service": settings.SERVICE_NAME,
            "logger": record.name,
            "message": record.getMessage(),
        }
        request_id = getattr(record, "request_id", None) or request_id_var.get()
        if request_id:
            log_data["request_id"] = request_id
        caller_id = caller_id_var.get()
        if caller_id:
            log_data["caller_id"] = caller_id
        for field in EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_data[field] = value
        if record.exc_info and record.exc_info[1]:
            log_data["error"] = str(record.exc_info[1])
            log_data["error_type"] = type(record.exc_info[1]).__name__
        return json.dumps(log_data, default=str)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a logger writing JSON lines to stdout at the configured level."""
    logger = logging.getLogger(name or settings.SERVICE_NAME)
    if not logger.handlers:
        logger.setLevel(getattr(logging, settings.LOG_LEVEL, logging.INFO))
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JSONFormatter())
        logger.addHandler(handler)
        logger.propagate = False
    return logger
