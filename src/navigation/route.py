"""Route construction and invariant checks."""

from collections.abc import Sequence

from core.exceptions import EmptyRoute, MalformedGeometry, ValidationError
from geo.polyline_codec import DEFAULT_PRECISION, decode_route_geometry
from geo.route_geometry import precompute_suffix_distances
from navigation.models import Coordinate, Instruction, Route


def validate_route(route: Route) -> Route:
    """Check the invariants a session relies on.

    Raises:
        EmptyRoute: No points or no instructions
        MalformedGeometry: Fewer than two points
        ValidationError: An instruction interval is out of range, reversed,
            or overlaps the next one by more than a shared boundary point
    """
    if not route.points or not route.instructions:
        raise EmptyRoute(
            "Route must have at least one point and one instruction",
            details={"points": len(route.points), "instructions": len(route.instructions)},
        )
    if len(route.points) < 2:
        raise MalformedGeometry(
            f"Route geometry needs at least 2 coordinates, got {len(route.points)}",
            details={"points": len(route.points)},
        )

    last_index = route.last_index
    previous_end = 0
    for i, instruction in enumerate(route.instructions):
        start, end = instruction.interval_start, instruction.interval_end
        if start > end or end > last_index:
            raise ValidationError(
                f"Instruction {i} interval [{start}, {end}] is not within [0, {last_index}]",
                details={"instruction": i, "interval": [start, end]},
            )
        if i > 0 and start < previous_end:
            raise ValidationError(
                f"Instruction {i} starts at {start} before previous interval ends at "
                f"{previous_end}",
                details={"instruction": i, "interval": [start, end]},
            )
        previous_end = end

    return route


def build_route(
    points: Sequence[Coordinate],
    instructions: Sequence[Instruction],
    total_distance_meters: float | None = None,
    total_duration_millis: float | None = None,
) -> Route:
    """Assemble and validate a route.

    Missing totals are derived: distance from the polyline, duration from the
    instructions.
    """
    if total_distance_meters is None:
        suffix = precompute_suffix_distances(points)
        total_distance_meters = suffix[0] if suffix else 0.0
    if total_duration_millis is None:
        total_duration_millis = sum(i.duration_millis for i in instructions)

    route = Route(
        points=tuple(points),
        instructions=tuple(instructions),
        total_distance_meters=total_distance_meters,
        total_duration_millis=total_duration_millis,
    )
    return validate_route(route)


def route_from_encoded(
    encoded: str,
    instructions: Sequence[Instruction],
    total_distance_meters: float | None = None,
    total_duration_millis: float | None = None,
    precision: int = DEFAULT_PRECISION,
) -> Route:
    """Decode provider geometry and build a validated route from it."""
    points = decode_route_geometry(encoded, precision)
    return build_route(points, instructions, total_distance_meters, total_duration_millis)
