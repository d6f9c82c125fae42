"""Structured JSON logging with correlation ID support."""

import json
import logging
import os
import socket
import sys
from datetime import datetime, timezone
from typing import Any

from .correlation import get_correlation_id

SERVICE_NAME = "mari-agent-microservice"


def _default_level() -> int:
    """Resolve log level: LOG_LEVEL wins, else INFO in production and DEBUG elsewhere."""
    explicit = os.environ.get("LOG_LEVEL")
    if explicit:
        level = logging.getLevelName(explicit.upper())
        return level if isinstance(level, int) else logging.INFO
    if os.environ.get("APP_ENV", "development") == "production":
        return logging.INFO
    return logging.DEBUG


class JsonFormatter(logging.Formatter):
    """JSON formatter that includes service metadata and correlation ID."""

    def __init__(self) -> None:
        super().__init__()
        self._base = {
            "service": SERVICE_NAME,
            "pid": os.getpid(),
            "hostname": socket.gethostname(),
        }

    def format(self, record: logging.LogRecord) -> str:
        log_obj: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **self._base,
        }

        correlation_id = get_correlation_id()
        if correlation_id:
            log_obj["correlationId"] = correlation_id

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra_fields"):
            log_obj.update(record.extra_fields)

        return json.dumps(log_obj, default=str, ensure_ascii=False)


def get_logger(name: str) -> logging.Logger:
    """Get a logger configured for JSON output."""
    logger = logging.getLogger(name)

    # Only configure if no handlers (avoid duplicate handlers)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JsonFormatter())
        logger.addHandler(handler)
        logger.setLevel(_default_level())
        logger.propagate = False

    return logger
