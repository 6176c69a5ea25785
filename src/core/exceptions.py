"""Standardized exception hierarchy for the navigation engine."""

from typing import Any


class NavigationError(Exception):
    """Base exception for all navigation errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class TransientError(NavigationError):
    """Errors that may succeed on retry."""

    pass


class NetworkError(TransientError):
    """Network-related transient errors (timeout, connection refused)."""

    pass


class ServiceUnavailableError(TransientError):
    """External service temporarily unavailable (5xx responses)."""

    pass


class PositionUnavailable(TransientError):
    """Live position source could not deliver a fix.

    Recoverable by the caller (e.g. retrying start()); never retried internally.
    """

    pass


class PermanentError(NavigationError):
    """Errors that will not succeed on retry."""

    pass


class ValidationError(PermanentError):
    """Invalid input or data format."""

    pass


class MalformedGeometry(ValidationError):
    """Encoded polyline cannot be decoded into at least two coordinates."""

    pass


class EmptyRoute(ValidationError):
    """Route has zero points or zero instructions."""

    pass


class StateError(PermanentError):
    """Invalid state transition."""

    pass


class InvalidTransition(StateError):
    """Session operation called from a state that disallows it."""

    pass


class ConfigurationError(PermanentError):
    """Missing or invalid configuration."""

    pass
