"""
Centralized logging utilities with scoped loggers and decorators.

Every event is a JSON line carrying its ``scope``. Service calls decorated
with ``log_execution`` also carry the meeting/report identifiers they were
called with, so one meeting's activity can be followed across services.
"""

import functools
import inspect
import time
from typing import Any, Callable, Dict
from enum import Enum

import structlog

from shared_utils.constants import LogScope


# JSON lines on stdout; the API and the Streamlit client share this setup
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

# Call arguments copied onto the start/success/failed events
CONTEXT_FIELDS = ("meeting_id", "report_id", "kind", "speaker_name")


def get_scoped_logger(scope: str) -> structlog.BoundLogger:
    """Get a scoped logger for a specific service/component.

    Args:
        scope: LogScope value (api, meeting_service, adapter, ...)

    Returns:
        Structured logger bound to scope.
    """
    logger = structlog.get_logger()
    return logger.bind(scope=scope)


class LogLevel(str, Enum):
    """Log level enumeration."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


def call_context(func: Callable, args: tuple, kwargs: dict) -> Dict[str, Any]:
    """Pick the identifying arguments (meeting_id, report kind, ...) of a call.

    Positional and keyword arguments are both matched by parameter name.
    Enum values are logged by value.
    """
    try:
        bound = inspect.signature(func).bind_partial(*args, **kwargs)
    except TypeError:
        return {}
    context = {}
    for name in CONTEXT_FIELDS:
        if name in bound.arguments and bound.arguments[name] is not None:
            value = bound.arguments[name]
            context[name] = value.value if isinstance(value, Enum) else value
    return context


def log_execution(scope: str = LogScope.API, level: str = LogLevel.INFO.value):
    """Decorator to log a service call's duration, identifiers and outcome.

    Works on plain and ``async def`` functions.

    Args:
        scope: Log scope identifier
        level: Log level used for the start/success events

    Example:
        @log_execution(scope=LogScope.REPORTS)
        def delete_report(self, kind, report_id):
            ...

        emits ``delete_report_start`` / ``delete_report_success`` with
        ``kind`` and ``report_id`` fields, or ``delete_report_failed``.
    """
    def decorator(func: Callable) -> Callable:
        def _begin(args, kwargs):
            logger = get_scoped_logger(scope).bind(**call_context(func, args, kwargs))
            log = getattr(logger, level.lower(), logger.info)
            log(f"{func.__name__}_start", func_name=func.__name__)
            return logger, log, time.perf_counter()

        def _failed(logger, started, e):
            logger.error(
                f"{func.__name__}_failed",
                func_name=func.__name__,
                elapsed_ms=round((time.perf_counter() - started) * 1000, 2),
                error_type=type(e).__name__,
                error_message=str(e)
            )

        def _succeeded(log, started, result):
            log(
                f"{func.__name__}_success",
                func_name=func.__name__,
                elapsed_ms=round((time.perf_counter() - started) * 1000, 2),
                result_type=type(result).__name__
            )

        if inspect.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs) -> Any:
                logger, log, started = _begin(args, kwargs)
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    _failed(logger, started, e)
                    raise
                _succeeded(log, started, result)
                return result

            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            logger, log, started = _begin(args, kwargs)
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                _failed(logger, started, e)
                raise
            _succeeded(log, started, result)
            return result

        return wrapper
    return decorator


class ContextualLogger:
    """Scope-bound logger; ``bind`` derives one that repeats extra fields."""

    def __init__(self, scope: str, **context: Any):
        self.scope = scope
        self.context = context
        self.logger = get_scoped_logger(scope).bind(**context)

    def bind(self, **context: Any) -> "ContextualLogger":
        """New logger carrying this one's fields plus ``context``.

        Example:
            log = logger.bind(meeting_id=7)
            log.info("csv_exported", rows=3)   # meeting_id=7 on the event
        """
        return ContextualLogger(self.scope, **{**self.context, **context})

    def info(self, event_name: str, **kwargs):
        self.logger.info(event_name, **kwargs)

    def debug(self, event_name: str, **kwargs):
        self.logger.debug(event_name, **kwargs)

    def warning(self, event_name: str, **kwargs):
        self.logger.warning(event_name, **kwargs)

    def error(self, event_name: str, **kwargs):
        self.logger.error(event_name, **kwargs)
