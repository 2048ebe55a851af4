"""
Activity Stream Logging Configuration
Structured logs carrying keyword context (activity ids, user ids, hooks)
"""
import logging
import sys
import json
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from functools import wraps
import time
import os

# ============================================================
# LOG LEVELS
# ============================================================

LOG_LEVEL = os.environ.get("ACTIVITY_STREAM_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = os.environ.get("ACTIVITY_STREAM_LOG_FORMAT", "json")  # json or text


def _handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter() if LOG_FORMAT == "json" else TextFormatter())
    return handler


def _error_context(error: Exception) -> Dict[str, Any]:
    return {
        "error_type": type(error).__name__,
        "error_message": str(error),
        "traceback": traceback.format_exc(),
    }


# ============================================================
# STRUCTURED LOGGING
# ============================================================

class StructuredLogger:
    """
    Wraps a stdlib logger; keyword arguments become fields of the record.

    ``bind`` returns a logger that adds the same fields to every call, e.g.
    ``activity_logger.bind(activity_id=7)`` for the duration of one operation.
    """

    def __init__(self, name: str, context: Optional[Dict[str, Any]] = None):
        self.name = name
        self.context = dict(context or {})
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))

        # Loggers are shared by name; attach the handler once
        if not self.logger.handlers:
            self.logger.addHandler(_handler())

    def bind(self, **context) -> "StructuredLogger":
        return StructuredLogger(self.name, {**self.context, **context})

    def _log(self, level: int, message: str, context: Dict[str, Any]):
        if not self.logger.isEnabledFor(level):
            return
        self.logger.log(
            level,
            message,
            extra={"context": {**self.context, **context}, "logger_name": self.name},
        )

    def debug(self, message: str, **context):
        self._log(logging.DEBUG, message, context)

    def info(self, message: str, **context):
        self._log(logging.INFO, message, context)

    def warning(self, message: str, **context):
        self._log(logging.WARNING, message, context)

    def error(self, message: str, error: Optional[Exception] = None, **context):
        if error is not None:
            context.update(_error_context(error))
        self._log(logging.ERROR, message, context)


class StructuredFormatter(logging.Formatter):
    """One JSON object per line"""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": getattr(record, "logger_name", record.name),
            "message": record.getMessage(),
        }
        entry.update(getattr(record, "context", None) or {})
        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """Coloured single-line output for local development"""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
    }
    GREY = "\033[90m"
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        stamp = datetime.fromtimestamp(record.created, timezone.utc).strftime("%H:%M:%S")
        line = f"{color}[{stamp}] [{record.levelname}]{self.RESET} {record.getMessage()}"

        fields = {
            key: value
            for key, value in (getattr(record, "context", None) or {}).items()
            if key != "traceback"
        }
        if fields:
            line += " " + self.GREY + "(" + " ".join(f"{k}={v}" for k, v in fields.items()) + ")" + self.RESET
        return line


# ============================================================
# FUNCTION TIMING DECORATOR
# ============================================================

def timed(logger: StructuredLogger):
    """Log the duration of each call at debug level, and failures at error level"""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                logger.error(
                    f"{func.__name__} failed",
                    error=e,
                    function=func.__name__,
                    duration_ms=round((time.perf_counter() - start) * 1000, 2),
                )
                raise
            logger.debug(
                f"{func.__name__} finished",
                function=func.__name__,
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
            )
            return result

        return wrapper

    return decorator


# ============================================================
# LOGGER INSTANCES
# ============================================================

api_logger = StructuredLogger("activity_stream.api")
activity_logger = StructuredLogger("activity_stream.activity")
db_logger = StructuredLogger("activity_stream.db")


def get_logger(name: str) -> StructuredLogger:
    """Logger under the ``activity_stream`` namespace"""
    return StructuredLogger(f"activity_stream.{name}")
