from .context import (
    ContextFilter,
    LogContext,
    log_context,
    log_session_context,
    update_log_context,
)
from .filters import CoordinatePrecisionFilter, DefaultSessionFilter
from .formatters import DevFormatter, JSONFormatter
from .setup import get_logger, setup_logging

__all__ = [
    "ContextFilter",
    "CoordinatePrecisionFilter",
    "DefaultSessionFilter",
    "DevFormatter",
    "JSONFormatter",
    "LogContext",
    "get_logger",
    "log_context",
    "log_session_context",
    "setup_logging",
    "update_log_context",
]
