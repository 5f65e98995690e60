"""Logging configuration for oss-resolver.

The "oss_resolver" logger writes to stderr; stdout carries command output.
OSS_RESOLVER_LOG_LEVEL and OSS_RESOLVER_LOG_FORMAT ("text" or "json") set the
initial level and format.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

LOGGER_NAME = "oss_resolver"

TEXT_FORMAT = "[%(asctime)s] %(levelname)s - %(threadName)s - %(message)s"


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def _level(name: Optional[str]) -> int:
    level = logging.getLevelName((name or "INFO").upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logging(level: Optional[str] = None, structured: Optional[bool] = None) -> logging.Logger:
    """
    Configure the resolver logger once.

    Args:
        level: Logging level name; OSS_RESOLVER_LOG_LEVEL or INFO when omitted
        structured: JSON output; OSS_RESOLVER_LOG_FORMAT=json when omitted

    Returns:
        The "oss_resolver" logger
    """
    log = logging.getLogger(LOGGER_NAME)
    if log.handlers:
        return log

    if level is None:
        level = os.getenv("OSS_RESOLVER_LOG_LEVEL")
    if structured is None:
        structured = os.getenv("OSS_RESOLVER_LOG_FORMAT", "text").lower() == "json"

    handler = logging.StreamHandler(sys.stderr)
    if structured:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

    log.addHandler(handler)
    set_log_level(level, log)
    return log


def set_log_level(level: Optional[str], log: Optional[logging.Logger] = None) -> None:
    """Change the level of the resolver logger and its handlers."""
    log = log or logging.getLogger(LOGGER_NAME)
    numeric = _level(level)
    log.setLevel(numeric)
    for handler in log.handlers:
        handler.setLevel(numeric)


logger = setup_logging()
