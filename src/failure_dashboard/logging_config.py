"""Logging setup for the build.

Human-friendly UTC text logs by default, or one JSON object per line when
``json_logs`` is on. Library modules only call ``logging.getLogger(__name__)``;
the CLI calls :func:`setup_logging` once.
"""

from __future__ import annotations

import json
import logging
import sys
import time
from datetime import datetime, timezone
from typing import Any

from .config import get_settings

_STANDARD_ATTRS = {
    "name", "msg", "args", "levelname", "levelno", "pathname", "filename", "module",
    "exc_info", "exc_text", "stack_info", "lineno", "funcName", "created", "msecs",
    "relativeCreated", "thread", "threadName", "processName", "process", "taskName",
    "message", "asctime",
}


def _utc_iso8601() -> str:
    # Example: 2026-01-24T18:03:12.123Z
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class JsonFormatter(logging.Formatter):
    """Always-valid JSON lines; `extra={...}` keys are merged in."""

    def format(self, record: logging.LogRecord) -> str:
        base: dict[str, Any] = {
            "timestamp": _utc_iso8601(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "line": record.lineno,
        }
        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and key not in base:
                base[key] = value
        if record.exc_info:
            base["exception"] = self.formatException(record.exc_info)
        return json.dumps(base, ensure_ascii=False, default=str)


class TextFormatter(logging.Formatter):
    converter = time.gmtime  # UTC

    def __init__(self) -> None:
        super().__init__("%(asctime)sZ | %(levelname)s | %(name)s | %(message)s")


def setup_logging(*, level: str | None = None, json_logs: bool | None = None) -> None:
    """
    Configure the root logger. Explicit arguments win over settings
    (FAILBOARD_LOG_LEVEL / FAILBOARD_LOG_JSON). Existing root handlers are
    replaced so repeated CLI runs in one process don't double-log.
    """
    config = get_settings().logging
    level_name = (level or config.level).upper()
    use_json = config.json_logs if json_logs is None else json_logs

    root = logging.getLogger()
    root.setLevel(getattr(logging, level_name, logging.INFO))

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter() if use_json else TextFormatter())

    for h in list(root.handlers):
        root.removeHandler(h)
    root.addHandler(handler)
