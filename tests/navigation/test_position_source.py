from unittest.mock import Mock

import pytest

from core.exceptions import PositionUnavailable
from navigation.position_source import PositionStream, PushPositionStream
from tests.factories import sample_at, straight_points


@pytest.fixture
def sample():
    return sample_at(straight_points(1)[0])


@pytest.mark.unit
class TestPushPositionStream:
    def test_satisfies_protocol(self, stream):
        assert isinstance(stream, PushPositionStream)
        source: PositionStream = stream
        assert callable(source.subscribe)

    def test_emit_delivers_to_subscriber(self, stream, sample):
        on_sample = Mock()
        stream.subscribe(on_sample)

        assert stream.emit(sample) is True
        on_sample.assert_called_once_with(sample)

    def test_emit_without_subscriber_is_dropped(self, stream, sample):
        assert stream.emit(sample) is False

    def test_single_active_subscription(self, stream):
        stream.subscribe(Mock())
        with pytest.raises(RuntimeError):
            stream.subscribe(Mock())

    def test_unsubscribe_handle_stops_delivery(self, stream, sample):
        on_sample = Mock()
        unsubscribe = stream.subscribe(on_sample)

        unsubscribe()

        assert not stream.is_subscribed
        assert stream.emit(sample) is False
        on_sample.assert_not_called()

    def test_stale_handle_does_not_cancel_newer_subscription(self, stream, sample):
        stale = stream.subscribe(Mock())
        stale()
        current = Mock()
        stream.subscribe(current)

        stale()

        assert stream.emit(sample) is True
        current.assert_called_once_with(sample)

    def test_unsubscribe_method(self, stream):
        stream.subscribe(Mock())
        stream.unsubscribe()
        assert not stream.is_subscribed

    def test_fail_reaches_error_callback(self, stream):
        on_error = Mock()
        stream.subscribe(Mock(), on_error)
        error = PositionUnavailable("permission denied")

        assert stream.fail(error) is True
        on_error.assert_called_once_with(error)

    def test_fail_without_error_callback(self, stream):
        stream.subscribe(Mock())
        assert stream.fail(PositionUnavailable("no fix")) is False
