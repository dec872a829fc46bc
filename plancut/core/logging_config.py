"""Structured logging configuration for applications embedding plancut.

The library itself only creates module loggers; handlers are installed here,
on request.
"""
from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional

from plancut.core.settings import CutoutSettings

_EXTRA_FIELDS = ("surface_id", "cutout_id", "plan_id")


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        for name in _EXTRA_FIELDS:
            if hasattr(record, name):
                entry[name] = getattr(record, name)
        return json.dumps(entry)


def setup_logging(level: str = "INFO", json_output: bool = False, logger_name: str = "plancut") -> logging.Logger:
    """Attach a single stdout handler to the ``plancut`` logger tree."""
    log = logging.getLogger(logger_name)
    log.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler(sys.stdout)
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s [%(name)s] %(levelname)s: %(message)s"))

    log.handlers = [handler]
    return log


def setup_logging_from_settings(settings: Optional[CutoutSettings] = None) -> logging.Logger:
    s = settings or CutoutSettings()
    return setup_logging(s.log_level, json_output=(s.log_format == "json"))
