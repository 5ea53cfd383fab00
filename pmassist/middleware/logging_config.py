"""
Logging setup for the dashboard service.

Two output shapes on stderr:
  readable   coloured one-liners with [program=..] / [key=..] tags (dev, tests)
  json       one JSON object per line (production)

Records logged while a request is active are stamped with its request id
and, for /programs/<program_id>/... routes, the program id, so storage and
AI log lines can be correlated with the request that caused them.

Level and shape come from app config (LOG_LEVEL, LOG_FORMAT), defaulting to
INFO/json in production and DEBUG/readable otherwise.
"""

import json
import logging
import sys
from datetime import datetime, timezone

from flask import g, has_request_context, request

# Record attributes serialised into JSON lines when set
CONTEXT_FIELDS = (
    "request_id",
    "program_id",
    "storage_key",
    "method",
    "path",
    "status",
    "duration_ms",
    "remote_addr",
)

_LEVEL_COLORS = {
    logging.DEBUG: "\033[36m",
    logging.INFO: "\033[32m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[35m",
}
_RESET = "\033[0m"

_QUIET_LOGGERS = ("urllib3", "werkzeug", "sqlalchemy.engine")


class RequestContextFilter(logging.Filter):
    """Copy the active request's id and program id onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not has_request_context():
            return True
        if getattr(record, "request_id", None) is None:
            record.request_id = g.get("request_id")
        if getattr(record, "program_id", None) is None:
            record.program_id = (request.view_args or {}).get("program_id")
        return True


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "where": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        entry.update(
            (name, getattr(record, name))
            for name in CONTEXT_FIELDS
            if getattr(record, name, None) is not None
        )
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        color = _LEVEL_COLORS.get(record.levelno, "")
        clock = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        tags = ""
        program_id = getattr(record, "program_id", None)
        if program_id is not None:
            tags += f" [program={program_id}]"
        storage_key = getattr(record, "storage_key", None)
        if storage_key is not None:
            tags += f" [key={storage_key}]"
        duration = getattr(record, "duration_ms", None)
        if duration is not None:
            tags += f" [{duration:.0f}ms]"
        line = (f"{color}{clock} {record.levelname:<8}{_RESET} "
                f"{record.name}: {record.getMessage()}{tags}")
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def _setting(app, name: str, default: str) -> str:
    return str(app.config.get(name) or default)


def configure_logging(app):
    """Install a single stderr handler on the root logger.

    Existing root handlers are replaced, so building several apps in one
    process (tests) never duplicates output.
    """
    is_testing = app.config.get("TESTING", False)
    is_prod = not app.config.get("DEBUG", False) and not is_testing

    level_name = _setting(app, "LOG_LEVEL", "INFO" if is_prod else "DEBUG").upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO
    shape = _setting(app, "LOG_FORMAT", "json" if is_prod else "readable").lower()

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if shape == "json" else ReadableFormatter())
    handler.addFilter(RequestContextFilter())
    handler.setLevel(level)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    app.logger.setLevel(level)

    if not is_testing:
        app.logger.info("Logging configured: level=%s format=%s", level_name, shape)
