"""Position-versus-polyline geometry.

Matching is nearest *vertex*, not nearest point on a segment. Provider
polylines are densely sampled, so the vertex is a close stand-in for the
projection and keeps every helper a plain linear scan.
"""

from collections.abc import Sequence

from geo.distance import bearing_degrees, great_circle_distance_m
from navigation.models import Coordinate


def closest_point_index(position: Coordinate, points: Sequence[Coordinate]) -> int:
    """Index of the route vertex nearest to ``position``.

    Ties resolve to the lowest index. Raises ValueError for an empty sequence.
    """
    if not points:
        raise ValueError("Cannot match a position against an empty polyline")

    best_index = 0
    best_distance = great_circle_distance_m(position, points[0])
    for i in range(1, len(points)):
        d = great_circle_distance_m(position, points[i])
        if d < best_distance:
            best_distance = d
            best_index = i
    return best_index


def precompute_segment_distances(points: Sequence[Coordinate]) -> list[float]:
    """Distance of each segment; entry i is points[i] -> points[i+1]."""
    return [
        great_circle_distance_m(points[i], points[i + 1]) for i in range(len(points) - 1)
    ]


def precompute_suffix_distances(points: Sequence[Coordinate]) -> list[float]:
    """Path length from each vertex to the last one.

    Returns a list of length len(points); the last entry is 0.0.
    """
    if not points:
        return []

    suffix = [0.0] * len(points)
    segments = precompute_segment_distances(points)
    for i in range(len(points) - 2, -1, -1):
        suffix[i] = suffix[i + 1] + segments[i]
    return suffix


def path_distance_m(
    points: Sequence[Coordinate],
    start: int,
    end: int,
    suffix: Sequence[float] | None = None,
) -> float:
    """Sum of consecutive-point distances from ``start`` to ``end`` (0.0 if end <= start).

    With ``suffix`` (from precompute_suffix_distances) this is a subtraction
    instead of a walk over the segments.
    """
    start = max(start, 0)
    end = min(end, len(points) - 1)
    if end <= start:
        return 0.0
    if suffix is not None:
        return suffix[start] - suffix[end]

    total = 0.0
    for i in range(start, end):
        total += great_circle_distance_m(points[i], points[i + 1])
    return total


def remaining_distance_m(
    position: Coordinate,
    points: Sequence[Coordinate],
    closest_index: int,
    suffix: Sequence[float] | None = None,
) -> float:
    """Distance to the closest vertex plus the path from it to the route end."""
    return great_circle_distance_m(position, points[closest_index]) + path_distance_m(
        points, closest_index, len(points) - 1, suffix
    )


def precompute_headings(points: Sequence[Coordinate]) -> list[float]:
    """Bearing of each segment; entry i is the heading from points[i] to points[i+1]."""
    return [bearing_degrees(points[i], points[i + 1]) for i in range(len(points) - 1)]


def heading_at(headings: Sequence[float], index: int) -> float | None:
    """Heading of the segment leaving ``index``; the last vertex reuses the final segment."""
    if not headings:
        return None
    return headings[min(index, len(headings) - 1)]
