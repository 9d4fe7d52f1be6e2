"""Logging configuration for the workflow builder.

Log records carry the context of the run or request that produced them
(``execution_id``, ``workflow_id``, ``request_id``). The context lives in a
context variable, so concurrent requests served from the thread pool do not
see each other's fields.
"""

import json
import logging
import sys
import traceback
from contextvars import ContextVar
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional


DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s%(context)s"

QUIET_LOGGERS = {
    "uvicorn.access": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "sqlalchemy.pool": logging.WARNING,
    "urllib3": logging.WARNING,
    "requests_oauthlib": logging.WARNING,
}

_log_context: ContextVar[Dict[str, Any]] = ContextVar("workflow_log_context", default={})


class WorkflowContextFilter(logging.Filter):
    """Copies the current logging context onto each record.

    Fields passed per call through ``log_with_context`` take precedence over
    the ambient context.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        fields = dict(_log_context.get())
        fields.update(getattr(record, "context_fields", {}))
        record.context_fields = fields
        record.context = "".join(f" {key}={value}" for key, value in fields.items())
        return True


class StructuredFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "time": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }

        context = getattr(record, "context_fields", None)
        if context:
            entry["context"] = context

        error_details = getattr(record, "error_details", None)
        if error_details:
            entry["error_details"] = error_details

        if record.exc_info and record.exc_info[0] is not None:
            entry["error"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": traceback.format_exception(*record.exc_info),
            }

        return json.dumps(entry, default=str)


_context_filter = WorkflowContextFilter()


def _build_handler(handler: logging.Handler, formatter: logging.Formatter) -> logging.Handler:
    handler.setFormatter(formatter)
    handler.addFilter(_context_filter)
    return handler


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    log_format: Optional[str] = None,
    structured: bool = False,
    max_size: int = 10 * 1024 * 1024,
    backup_count: int = 5
) -> logging.Logger:
    """
    Configure root logging for the workflow builder.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path; the file is rotated at ``max_size`` bytes
        log_format: Format string for plain-text output; may use ``%(context)s``
        structured: Emit JSON lines instead of plain text
        max_size: Maximum log file size in bytes before rotation
        backup_count: Number of rotated files to keep

    Returns:
        Root logger instance
    """
    numeric_level = getattr(logging, level.upper())

    if structured:
        formatter: logging.Formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter(fmt=log_format or DEFAULT_LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    handlers = [_build_handler(logging.StreamHandler(sys.stdout), formatter)]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(_build_handler(
            RotatingFileHandler(log_file, maxBytes=max_size, backupCount=backup_count),
            formatter
        ))

    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
    for handler in handlers:
        root_logger.addHandler(handler)
    root_logger.setLevel(numeric_level)

    for name, quiet_level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(max(quiet_level, numeric_level))
    logging.getLogger("workflow_builder").setLevel(numeric_level)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def set_logging_context(**kwargs):
    """Add fields to the logging context of the current run or request."""
    _log_context.set({**_log_context.get(), **kwargs})


def clear_logging_context(*keys: str):
    """Drop the named context fields, or every field when none are named."""
    if not keys:
        _log_context.set({})
        return
    _log_context.set({key: value for key, value in _log_context.get().items() if key not in keys})


def log_with_context(logger: logging.Logger, level: int, message: str, **context):
    """Log one message with extra context fields."""
    logger.log(level, message, extra={"context_fields": context})
