"""Structured JSON logging.

Log lines carry timestamp, level, logger, message, module, func and line, plus
the identity fields (user_id, account_id, tenant_id, session_id, group_id) when
a caller passes them through ``extra=``.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from accounthub.config import settings

CONTEXT_FIELDS = ("user_id", "account_id", "tenant_id", "session_id", "group_id")


class JSONFormatter(logging.Formatter):
    """Format log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "func": record.funcName,
            "line": record.lineno,
        }

        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_data[field] = value

        if record.exc_info:
            log_data["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def configure_logging(level: str | None = None, json_output: bool | None = None) -> None:
    """
    Install a single stdout handler on the root logger.

    Args:
        level: Log level name, defaults to settings.LOG_LEVEL
        json_output: Emit JSON lines, defaults to settings.LOG_JSON
    """
    level = level or settings.LOG_LEVEL
    json_output = settings.LOG_JSON if json_output is None else json_output

    handler = logging.StreamHandler(sys.stdout)
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level.upper())
