"""Progress tracking shared by live and simulated navigation.

Both position sources feed the same ``ProgressTracker.advance`` so that a
simulated drive and a real one along the same points produce identical
snapshots.
"""

from geo.distance import great_circle_distance_m
from geo.route_geometry import (
    closest_point_index,
    heading_at,
    precompute_headings,
    precompute_suffix_distances,
    remaining_distance_m,
)
from navigation.instructions import active_instruction_index, distance_to_next_maneuver_m
from navigation.models import Coordinate, PositionSample, ProgressSnapshot, Route

DEFAULT_OFF_ROUTE_THRESHOLD_M = 100.0


class ProgressTracker:
    """Computes progress snapshots for one immutable route.

    Path lengths and segment headings are precomputed once, so each sample
    costs one linear nearest-vertex scan.
    """

    def __init__(
        self,
        route: Route,
        off_route_threshold_m: float = DEFAULT_OFF_ROUTE_THRESHOLD_M,
    ):
        self._route = route
        self._off_route_threshold_m = off_route_threshold_m
        self._suffix = precompute_suffix_distances(route.points)
        self._headings = precompute_headings(route.points)

    @property
    def route(self) -> Route:
        return self._route

    def advance(
        self,
        sample: PositionSample | Coordinate,
        previous: ProgressSnapshot | None = None,
    ) -> ProgressSnapshot:
        """Compute a fresh snapshot for one position.

        Args:
            sample: Position sample (or bare coordinate) to evaluate
            previous: Last snapshot of the session; its active instruction is
                the floor for instruction matching

        Returns:
            New ProgressSnapshot
        """
        position = sample.coordinate if isinstance(sample, PositionSample) else sample
        route = self._route
        points = route.points

        closest = closest_point_index(position, points)
        off_route_m = great_circle_distance_m(position, points[closest])
        remaining = remaining_distance_m(position, points, closest, self._suffix)

        progress = progress_fraction(remaining, route.total_distance_meters)
        floor = previous.active_instruction_index if previous is not None else 0
        active = active_instruction_index(closest, route.instructions, floor)

        return ProgressSnapshot(
            closest_point_index=closest,
            remaining_distance_meters=remaining,
            remaining_duration_millis_estimate=route.total_duration_millis * (1.0 - progress),
            active_instruction_index=active,
            distance_to_next_maneuver_meters=distance_to_next_maneuver_m(
                position, points, closest, route.instructions, active, self._suffix
            ),
            progress_fraction=progress,
            distance_from_route_meters=off_route_m,
            is_off_route=off_route_m > self._off_route_threshold_m,
            bearing_degrees=heading_at(self._headings, closest),
        )


def progress_fraction(remaining_m: float, total_m: float) -> float:
    """``1 - remaining / total`` clamped to [0, 1]; a zero-length route is complete."""
    if total_m <= 0:
        return 1.0
    return min(max(1.0 - remaining_m / total_m, 0.0), 1.0)


def advance(
    route: Route,
    position: PositionSample | Coordinate,
    previous: ProgressSnapshot | None = None,
) -> ProgressSnapshot:
    """One-shot progress computation without keeping a tracker around."""
    return ProgressTracker(route).advance(position, previous)


def is_arrived(snapshot: ProgressSnapshot, arrival_threshold_m: float) -> bool:
    """True once the remaining distance drops below the arrival threshold."""
    return snapshot.remaining_distance_meters < arrival_threshold_m
