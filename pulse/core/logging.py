"""
Logging setup shared by the library and the HTTP service.

Records are emitted as one JSON object per line. Structured fields go in
``extra={"data": {...}}`` and are merged into the top level of the entry.
"""
import json
import logging
import sys
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pulse.core.config import get_settings

_correlation_id: ContextVar[str] = ContextVar("pulse_correlation_id", default="")

CONSOLE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s [%(correlation_id)s] %(message)s"

# Third-party loggers that are noisy at INFO
QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore")


class StructuredLogFormatter(logging.Formatter):
    """Render a record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }

        corr_id = getattr(record, "correlation_id", "")
        if corr_id:
            entry["correlation_id"] = corr_id

        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc_value, _ = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc_value),
                "traceback": self.formatException(record.exc_info),
            }

        data = getattr(record, "data", None)
        if isinstance(data, dict):
            entry.update(data)

        return json.dumps(entry, default=str)


class CorrelationIdFilter(logging.Filter):
    """Stamp each record with the correlation id of the current context."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = _correlation_id.get()
        return True


def configure_logging(level: Optional[str] = None, structured: Optional[bool] = None) -> logging.Handler:
    """
    Install a single stdout handler on the root logger.

    Args:
        level: Log level name; defaults to ``LOG_LEVEL`` from settings
        structured: JSON output when true, plain console lines otherwise;
            defaults to ``ENABLE_STRUCTURED_LOGGING``

    Returns:
        logging.Handler: The installed handler
    """
    settings = get_settings()
    level = level or settings.LOG_LEVEL
    if structured is None:
        structured = settings.ENABLE_STRUCTURED_LOGGING

    root_logger = logging.getLogger()
    for existing in list(root_logger.handlers):
        root_logger.removeHandler(existing)
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(CorrelationIdFilter())
    if structured:
        handler.setFormatter(StructuredLogFormatter())
    else:
        handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    root_logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return handler


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def set_correlation_id(corr_id: Optional[str] = None) -> str:
    """Bind ``corr_id`` (or a fresh UUID) to the current context and return it."""
    corr_id = corr_id or str(uuid.uuid4())
    _correlation_id.set(corr_id)
    return corr_id


def get_correlation_id() -> str:
    return _correlation_id.get()
