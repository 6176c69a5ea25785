"""Live position stream interface and an in-process implementation."""

import logging
import threading
from collections.abc import Callable
from typing import Protocol

from navigation.models import PositionSample

logger = logging.getLogger(__name__)

SampleCallback = Callable[[PositionSample], None]
ErrorCallback = Callable[[Exception], None]
Unsubscribe = Callable[[], None]


class PositionStream(Protocol):
    """Continuous position source (device GPS, a replay file, a socket...).

    Implementations allow at most one active subscription and stop
    delivering samples as soon as the returned unsubscribe function (or
    ``unsubscribe()``) has been called.
    """

    def subscribe(
        self, on_sample: SampleCallback, on_error: ErrorCallback | None = None
    ) -> Unsubscribe: ...

    def unsubscribe(self) -> None: ...


class PushPositionStream:
    """Position stream fed by calling ``emit()``.

    Adapters for real devices push fixes into it from whatever thread their
    driver uses; tests push samples directly.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._on_sample: SampleCallback | None = None
        self._on_error: ErrorCallback | None = None
        self._subscription = 0

    @property
    def is_subscribed(self) -> bool:
        return self._on_sample is not None

    def subscribe(
        self, on_sample: SampleCallback, on_error: ErrorCallback | None = None
    ) -> Unsubscribe:
        with self._lock:
            if self._on_sample is not None:
                raise RuntimeError("Position stream already has an active subscription")
            self._subscription += 1
            token = self._subscription
            self._on_sample = on_sample
            self._on_error = on_error

        def unsubscribe() -> None:
            with self._lock:
                # A stale handle must not cancel a newer subscription
                if self._subscription == token:
                    self._on_sample = None
                    self._on_error = None

        return unsubscribe

    def unsubscribe(self) -> None:
        with self._lock:
            self._on_sample = None
            self._on_error = None

    def emit(self, sample: PositionSample) -> bool:
        """Deliver a sample; returns False when nobody is subscribed."""
        callback = self._on_sample
        if callback is None:
            logger.debug("Dropping position sample: no subscriber")
            return False
        callback(sample)
        return True

    def fail(self, error: Exception) -> bool:
        """Report a source failure; returns False when nobody is listening."""
        callback = self._on_error
        if callback is None:
            return False
        callback(error)
        return True
