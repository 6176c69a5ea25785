import pytest

from geo.route_geometry import remaining_distance_m
from navigation.instructions import distance_to_next_maneuver_m
from navigation.models import Coordinate, Instruction
from navigation.route import build_route
from navigation.tracker import ProgressTracker, advance, is_arrived, progress_fraction
from tests.factories import STEP_M, make_route, sample_at, straight_points


@pytest.fixture
def three_point_route():
    """Northbound route (0,0) -> (0,0.001) -> (0,0.002) with one instruction."""
    points = [
        Coordinate(lon=0.0, lat=0.0),
        Coordinate(lon=0.0, lat=0.001),
        Coordinate(lon=0.0, lat=0.002),
    ]
    return build_route(points, [Instruction(text="Head north", interval_start=0, interval_end=2)])


@pytest.mark.unit
class TestAdvance:
    def test_position_past_midpoint_matches_next_vertex(self, three_point_route):
        snapshot = advance(three_point_route, Coordinate(lon=0.0, lat=0.0006))

        assert snapshot.closest_point_index == 1
        assert 0.0 < snapshot.progress_fraction < 1.0
        assert snapshot.active_instruction_index == 0

    def test_exact_midpoint_ties_to_earlier_vertex(self, three_point_route):
        snapshot = advance(three_point_route, Coordinate(lon=0.0, lat=0.0005))

        assert snapshot.closest_point_index == 0
        # Offset to vertex 0 plus the full path exceeds the route length
        assert snapshot.progress_fraction == 0.0

    def test_start_of_route(self, route):
        snapshot = advance(route, route.points[0])

        assert snapshot.closest_point_index == 0
        assert snapshot.remaining_distance_meters == pytest.approx(route.total_distance_meters)
        assert snapshot.progress_fraction == pytest.approx(0.0, abs=1e-9)
        assert snapshot.remaining_duration_millis_estimate == pytest.approx(
            route.total_duration_millis
        )
        assert snapshot.distance_to_next_maneuver_meters == pytest.approx(4 * STEP_M, abs=0.01)

    def test_end_of_route(self, route):
        snapshot = advance(route, route.points[-1])

        assert snapshot.closest_point_index == route.last_index
        assert snapshot.remaining_distance_meters == 0.0
        assert snapshot.progress_fraction == 1.0
        assert snapshot.remaining_duration_millis_estimate == 0.0
        assert snapshot.active_instruction_index == len(route.instructions) - 1

    def test_duration_estimate_is_linear(self, route):
        snapshot = advance(route, route.points[5])

        assert snapshot.progress_fraction == pytest.approx(0.5, abs=1e-6)
        assert snapshot.remaining_duration_millis_estimate == pytest.approx(
            route.total_duration_millis / 2, rel=1e-6
        )

    def test_accepts_position_sample(self, route):
        from_sample = advance(route, sample_at(route.points[3]))
        from_coordinate = advance(route, route.points[3])
        assert from_sample == from_coordinate

    def test_bearing_follows_route(self, route):
        assert advance(route, route.points[2]).bearing_degrees == pytest.approx(90.0)


@pytest.mark.unit
class TestOffRoute:
    def test_near_route_is_on_route(self, route):
        position = Coordinate(lon=0.003, lat=0.0005)  # ~56 m north of vertex 3
        snapshot = advance(route, position)

        assert snapshot.closest_point_index == 3
        assert snapshot.distance_from_route_meters == pytest.approx(0.5 * STEP_M, abs=0.05)
        assert not snapshot.is_off_route

    def test_far_from_route_is_off_route(self, route):
        position = Coordinate(lon=0.003, lat=0.002)  # ~222 m north of vertex 3
        snapshot = advance(route, position)

        assert snapshot.is_off_route
        assert snapshot.remaining_distance_meters == pytest.approx(
            snapshot.distance_from_route_meters + 7 * STEP_M, abs=0.05
        )

    def test_custom_threshold(self, route):
        tracker = ProgressTracker(route, off_route_threshold_m=20.0)
        snapshot = tracker.advance(Coordinate(lon=0.003, lat=0.0005))
        assert snapshot.is_off_route


@pytest.mark.unit
class TestInstructionFloor:
    def test_noisy_sample_behind_keeps_active_instruction(self, route):
        tracker = ProgressTracker(route)
        ahead = tracker.advance(route.points[6])
        assert ahead.active_instruction_index == 1

        behind = tracker.advance(route.points[2], previous=ahead)

        assert behind.closest_point_index == 2
        assert behind.active_instruction_index == 1

    def test_without_previous_snapshot_matches_from_start(self, route):
        assert ProgressTracker(route).advance(route.points[2]).active_instruction_index == 0


@pytest.mark.unit
class TestMonotonicProgress:
    def test_samples_in_route_order(self):
        route = make_route(count=25, bounds=((0, 6), (6, 12), (12, 18), (18, 24)))
        tracker = ProgressTracker(route)

        previous = None
        for point in route.points:
            snapshot = tracker.advance(point, previous)
            if previous is not None:
                assert snapshot.remaining_distance_meters <= previous.remaining_distance_meters
                assert snapshot.active_instruction_index >= previous.active_instruction_index
                assert snapshot.progress_fraction >= previous.progress_fraction
            previous = snapshot

        assert previous.remaining_distance_meters == 0.0

    def test_distance_to_next_maneuver_resets_at_each_turn(self, route):
        tracker = ProgressTracker(route)
        distances = [tracker.advance(p).distance_to_next_maneuver_meters for p in route.points]

        assert distances[0] == pytest.approx(4 * STEP_M, abs=0.01)
        assert distances[4] == pytest.approx(0.0, abs=1e-9)
        assert distances[5] == pytest.approx(3 * STEP_M, abs=0.01)

    def test_distances_agree_with_geometry_helpers(self, route):
        tracker = ProgressTracker(route)
        position = Coordinate(lon=0.0062, lat=0.0003)
        snapshot = tracker.advance(position)

        assert snapshot.remaining_distance_meters == pytest.approx(
            remaining_distance_m(position, route.points, snapshot.closest_point_index), abs=1e-6
        )
        assert snapshot.distance_to_next_maneuver_meters == pytest.approx(
            distance_to_next_maneuver_m(
                position,
                route.points,
                snapshot.closest_point_index,
                route.instructions,
                snapshot.active_instruction_index,
            ),
            abs=1e-6,
        )


@pytest.mark.unit
class TestHelpers:
    def test_progress_fraction_clamped(self):
        assert progress_fraction(150.0, 100.0) == 0.0
        assert progress_fraction(-5.0, 100.0) == 1.0
        assert progress_fraction(25.0, 100.0) == 0.75

    def test_zero_length_route_is_complete(self):
        assert progress_fraction(0.0, 0.0) == 1.0

    def test_is_arrived_uses_strict_threshold(self, route):
        tracker = ProgressTracker(route)
        at_end = tracker.advance(route.points[-1])
        one_step_out = tracker.advance(route.points[-2])

        assert is_arrived(at_end, 50.0)
        assert not is_arrived(one_step_out, 50.0)
        assert is_arrived(one_step_out, STEP_M + 1)

    def test_identical_snapshots_for_identical_input(self):
        route = build_route(
            straight_points(4), [Instruction(text="Go", interval_start=0, interval_end=3)]
        )
        first = ProgressTracker(route).advance(route.points[1])
        second = ProgressTracker(route).advance(route.points[1])
        assert first == second
