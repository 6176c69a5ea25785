"""Tests for the navigation error hierarchy."""

import pytest

from core.exceptions import (
    ConfigurationError,
    EmptyRoute,
    InvalidTransition,
    MalformedGeometry,
    NavigationError,
    NetworkError,
    PermanentError,
    PositionUnavailable,
    ServiceUnavailableError,
    StateError,
    TransientError,
    ValidationError,
)


@pytest.mark.unit
class TestHierarchy:
    def test_transient_branch(self):
        assert issubclass(TransientError, NavigationError)
        assert issubclass(NetworkError, TransientError)
        assert issubclass(ServiceUnavailableError, TransientError)
        assert issubclass(PositionUnavailable, TransientError)

    def test_route_errors_are_validation_errors(self):
        assert issubclass(MalformedGeometry, ValidationError)
        assert issubclass(EmptyRoute, ValidationError)
        assert issubclass(ValidationError, PermanentError)

    def test_invalid_transition_is_permanent_state_error(self):
        assert issubclass(InvalidTransition, StateError)
        assert issubclass(StateError, PermanentError)
        assert issubclass(ConfigurationError, PermanentError)
        assert not issubclass(InvalidTransition, TransientError)


@pytest.mark.unit
class TestAttributes:
    def test_message_and_details(self):
        err = MalformedGeometry("bad polyline", details={"offset": 7})
        assert err.message == "bad polyline"
        assert str(err) == "bad polyline"
        assert err.details == {"offset": 7}

    def test_details_default_to_empty_dict(self):
        assert InvalidTransition("nope").details == {}

    def test_catch_route_errors_at_validation_level(self):
        for error in (MalformedGeometry("a"), EmptyRoute("b")):
            with pytest.raises(ValidationError):
                raise error

    def test_position_unavailable_not_caught_as_permanent(self):
        with pytest.raises(TransientError):
            try:
                raise PositionUnavailable("no fix")
            except PermanentError:
                pytest.fail("PositionUnavailable must not be permanent")
