"""
Logging helpers shared by every module.

Usage:
    from tenant_rbac.utils import get_logger

    log = get_logger(__name__)
"""
import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

from tenant_rbac.core import config


_configured = False

# Extra attributes copied onto structured log lines when present
_EXTRA_FIELDS = (
    "org_id",
    "from_org_id",
    "user_id",
    "role_id",
    "resource_id",
    "action",
    "entity",
    "reason",
    "backend",
    "principal",
)


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "ts": datetime.now(UTC).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in _EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_data[field] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def configure_logging(level: str | None = None, json_output: bool | None = None) -> None:
    """
    Install a single stream handler on the root logger.

    Safe to call more than once; only the first call has an effect.

    Args:
        level: Log level name, defaults to ``TENANT_RBAC_LOG_LEVEL``
        json_output: Emit JSON lines, defaults to ``TENANT_RBAC_LOG_JSON``
    """
    global _configured
    if _configured:
        return

    level = level or config.LOG_LEVEL
    if json_output is None:
        json_output = config.LOG_JSON

    handler = logging.StreamHandler(sys.stdout)
    if json_output:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))

    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel(level.upper())
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return a module logger."""
    return logging.getLogger(name)
