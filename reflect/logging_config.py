"""
Reflect Logging Configuration
Structured logging for store, repository, memory and use-case operations.
Level and format come from Settings (REFLECT_LOG_LEVEL, REFLECT_LOG_FORMAT).
"""
import inspect
import json
import logging
import sys
import time
import traceback
from datetime import datetime, timezone
from functools import wraps
from typing import Optional

from .config import Settings, get_settings


def _resolve_level(settings: Settings, level: Optional[str]) -> int:
    if level is None:
        level = "DEBUG" if settings.debug else settings.log_level
    return getattr(logging, level.upper(), logging.INFO)


def _formatter_for(fmt: str) -> logging.Formatter:
    return TextFormatter() if fmt.lower() == "text" else StructuredFormatter()


# ============================================================
# STRUCTURED LOGGING
# ============================================================

class StructuredLogger:
    """Wraps a stdlib logger; keyword arguments become log context."""

    def __init__(
        self,
        name: str,
        level: Optional[str] = None,
        fmt: Optional[str] = None,
        settings: Optional[Settings] = None,
    ):
        self.name = name
        self.logger = logging.getLogger(name)
        self.apply(settings or get_settings(), level=level, fmt=fmt)

    def apply(self, settings: Settings, level: Optional[str] = None, fmt: Optional[str] = None) -> None:
        """(Re)configure level and output format. Explicit arguments win over settings."""
        self.logger.setLevel(_resolve_level(settings, level))

        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(_formatter_for(fmt or settings.log_format))
        self.logger.handlers = [handler]
        self.logger.propagate = False

    def _log(self, level: int, message: str, context: dict) -> None:
        self.logger.log(level, message, extra={"context": context, "logger_name": self.name})

    def debug(self, message: str, **context):
        self._log(logging.DEBUG, message, context)

    def info(self, message: str, **context):
        self._log(logging.INFO, message, context)

    def warning(self, message: str, **context):
        self._log(logging.WARNING, message, context)

    def error(self, message: str, error: Optional[Exception] = None, **context):
        self._log(logging.ERROR, message, _with_error(context, error))

    def critical(self, message: str, error: Optional[Exception] = None, **context):
        self._log(logging.CRITICAL, message, _with_error(context, error))


def _with_error(context: dict, error: Optional[Exception]) -> dict:
    if error is not None:
        context.update(
            error_type=type(error).__name__,
            error_message=str(error),
            traceback="".join(traceback.format_exception(type(error), error, error.__traceback__)),
        )
    return context


class StructuredFormatter(logging.Formatter):
    """One JSON object per line; context keys sit beside the standard fields."""

    def format(self, record: logging.LogRecord) -> str:
        data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": getattr(record, "logger_name", record.name),
            "message": record.getMessage(),
        }
        data.update(getattr(record, "context", None) or {})
        return json.dumps(data, default=str)


class TextFormatter(logging.Formatter):
    """Colored single-line output for terminals. Tracebacks are left out."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    DIM = "\033[90m"
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        stamp = datetime.now().strftime("%H:%M:%S")
        line = f"{color}[{stamp}] [{record.levelname}]{self.RESET} {record.getMessage()}"

        context = getattr(record, "context", None) or {}
        pairs = " ".join(f"{k}={v}" for k, v in context.items() if k != "traceback")
        if pairs:
            line += f" {self.DIM}({pairs}){self.RESET}"
        return line


# ============================================================
# FUNCTION TIMING DECORATOR
# ============================================================

def timed(logger: StructuredLogger):
    """Log how long the wrapped call took; failures are logged and re-raised."""
    def decorator(func):
        def finished(start: float, error: Optional[Exception] = None) -> None:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            if error is None:
                logger.debug(f"{func.__name__} completed", function=func.__name__, duration_ms=duration_ms)
            else:
                logger.error(f"{func.__name__} failed", error=error, function=func.__name__, duration_ms=duration_ms)

        if inspect.iscoroutinefunction(func):
            @wraps(func)
            async def async_wrapper(*args, **kwargs):
                start = time.perf_counter()
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    finished(start, e)
                    raise
                finished(start)
                return result
            return async_wrapper

        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                finished(start, e)
                raise
            finished(start)
            return result
        return sync_wrapper

    return decorator


# ============================================================
# LOGGER INSTANCES
# ============================================================

store_logger = StructuredLogger("reflect.store")
repo_logger = StructuredLogger("reflect.repositories")
memory_logger = StructuredLogger("reflect.memories")
use_case_logger = StructuredLogger("reflect.use_cases")


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Re-apply settings to every module logger, e.g. after loading a different environment."""
    settings = settings or get_settings()
    for logger in (store_logger, repo_logger, memory_logger, use_case_logger):
        logger.apply(settings)
