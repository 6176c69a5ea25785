"""Per-thread session fields attached to every log record.

A navigation session wraps each public call and each processed sample in
``log_session_context``; state transitions inside that block refresh the
``state`` field through ``update_log_context`` so records always carry the
state the session is in when they are written.
"""

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any


class LogContext:
    """Thread-local storage for log context fields."""

    _local = threading.local()

    @classmethod
    def fields(cls) -> dict[str, Any]:
        if not hasattr(cls._local, "fields"):
            cls._local.fields = {}
        result: dict[str, Any] = cls._local.fields
        return result

    @classmethod
    def get(cls) -> dict[str, Any]:
        """Copy of the active fields."""
        return dict(cls.fields())

    @classmethod
    def replace(cls, fields: dict[str, Any]) -> None:
        cls._local.fields = dict(fields)

    @classmethod
    def clear(cls) -> None:
        cls._local.fields = {}


class ContextFilter(logging.Filter):
    """Copies LogContext fields onto records that do not already carry them."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in LogContext.fields().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


@contextmanager
def log_context(**fields: Any) -> Iterator[None]:
    """Add fields for the duration of the block.

    Fields are injected into records by ContextFilter (see setup_logging).
    On exit the fields from before the block come back, including any the
    block overwrote, so session callbacks can nest freely.
    """
    outer = LogContext.get()
    LogContext.replace({**outer, **fields})
    try:
        yield
    finally:
        LogContext.replace(outer)


@contextmanager
def log_session_context(
    session_id: str,
    mode: str | None = None,
    state: str | None = None,
) -> Iterator[None]:
    """Session id plus, when known, the navigation mode and session state."""
    fields: dict[str, Any] = {"session_id": session_id}
    if mode is not None:
        fields["mode"] = mode
    if state is not None:
        fields["state"] = state
    with log_context(**fields):
        yield


def update_log_context(**fields: Any) -> None:
    """Change fields inside the current block; the enclosing block undoes it on exit."""
    LogContext.fields().update(fields)
