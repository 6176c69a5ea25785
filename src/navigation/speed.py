from geo.distance import great_circle_distance_m
from navigation.models import PositionSample


class SpeedEstimator:
    """Exponentially smoothed ground speed from consecutive samples.

    Each measurement moves the estimate by ``smoothing_factor`` of the
    difference, and the result is clamped to ``[0, max_speed_kph]`` so a GPS
    jump does not show as a 400 km/h spike.
    """

    def __init__(self, smoothing_factor: float = 0.3, max_speed_kph: float = 120.0):
        self.smoothing_factor = smoothing_factor
        self.max_speed_kph = max_speed_kph
        self._last_sample: PositionSample | None = None
        self._speed_kph = 0.0

    @property
    def speed_kph(self) -> float:
        return self._speed_kph

    def update(self, sample: PositionSample) -> float:
        """Fold one sample into the estimate.

        State changes only after the measurement is computed, so a sample
        that raises leaves the estimator as it was.
        """
        previous = self._last_sample
        if previous is None:
            self._last_sample = sample
            return self._speed_kph

        elapsed = (sample.timestamp - previous.timestamp).total_seconds()
        if elapsed <= 0:
            self._last_sample = sample
            return self._speed_kph

        distance = great_circle_distance_m(previous.coordinate, sample.coordinate)
        measured_kph = distance / elapsed * 3.6
        smoothed = (
            self._speed_kph * (1 - self.smoothing_factor) + measured_kph * self.smoothing_factor
        )
        self._last_sample = sample
        self._speed_kph = min(max(smoothed, 0.0), self.max_speed_kph)
        return self._speed_kph

    def reset(self) -> None:
        """Forget the last sample, e.g. after a pause, keeping the current estimate."""
        self._last_sample = None
