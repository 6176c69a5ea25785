"""Instruction matching: which maneuver is active, and how far the next one is."""

from collections.abc import Sequence

from geo.distance import great_circle_distance_m
from geo.route_geometry import path_distance_m, remaining_distance_m
from navigation.models import Coordinate, Instruction


def active_instruction_index(
    closest_index: int,
    instructions: Sequence[Instruction],
    floor: int = 0,
) -> int:
    """Index of the instruction whose interval contains ``closest_index``.

    The search starts at ``floor`` (the previously active instruction), so a
    noisy sample that projects behind the vehicle never re-matches an earlier
    maneuver. On a shared boundary point the earlier instruction wins. Past
    every interval, the last instruction is active; in a gap between
    intervals, the last instruction that has started.

    Args:
        closest_index: Route point index nearest to the current position
        instructions: Route instructions in route order
        floor: Lowest index that may be returned

    Returns:
        Active instruction index
    """
    if not instructions:
        raise ValueError("Route has no instructions to match")

    floor = min(max(floor, 0), len(instructions) - 1)
    started = floor
    for i in range(floor, len(instructions)):
        instruction = instructions[i]
        if instruction.contains(closest_index):
            return i
        if instruction.interval_start > closest_index:
            break
        started = i

    if closest_index > instructions[-1].interval_end:
        return len(instructions) - 1
    return started


def distance_to_next_maneuver_m(
    position: Coordinate,
    points: Sequence[Coordinate],
    closest_index: int,
    instructions: Sequence[Instruction],
    active_index: int,
    suffix: Sequence[float] | None = None,
) -> float:
    """Distance from ``position`` to the start of the instruction after ``active_index``.

    On the final instruction this is the remaining distance to the route end.
    Pass ``suffix`` (from precompute_suffix_distances) to skip the segment walk.
    """
    if active_index >= len(instructions) - 1:
        return remaining_distance_m(position, points, closest_index, suffix)

    next_start = instructions[active_index + 1].interval_start
    return great_circle_distance_m(position, points[closest_index]) + path_distance_m(
        points, closest_index, next_start, suffix
    )
