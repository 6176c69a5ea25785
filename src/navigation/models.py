"""Route, sample, snapshot and summary models.

Coordinates are (longitude, latitude) everywhere in this package. The
polyline codec is the only place that deals with the provider's
latitude-first wire order.
"""

from datetime import datetime
from enum import Enum, IntEnum

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field


class Coordinate(BaseModel):
    """Immutable geographic coordinate in decimal degrees."""

    model_config = ConfigDict(frozen=True)

    lon: float = Field(ge=-180.0, le=180.0)
    lat: float = Field(ge=-90.0, le=90.0)

    @classmethod
    def of(cls, lon: float, lat: float) -> "Coordinate":
        return cls(lon=lon, lat=lat)

    def as_tuple(self) -> tuple[float, float]:
        """(lon, lat) pair, GeoJSON order."""
        return (self.lon, self.lat)


class ManeuverSign(IntEnum):
    """Maneuver codes used by the routing provider's instructions."""

    U_TURN_UNKNOWN = -98
    U_TURN_LEFT = -8
    KEEP_LEFT = -7
    LEAVE_ROUNDABOUT = -6
    TURN_SHARP_LEFT = -3
    TURN_LEFT = -2
    TURN_SLIGHT_LEFT = -1
    CONTINUE_ON_STREET = 0
    TURN_SLIGHT_RIGHT = 1
    TURN_RIGHT = 2
    TURN_SHARP_RIGHT = 3
    FINISH = 4
    REACHED_VIA = 5
    USE_ROUNDABOUT = 6
    KEEP_RIGHT = 7
    U_TURN_RIGHT = 8


class Instruction(BaseModel):
    """A maneuver tied to the route points ``[interval_start, interval_end]``."""

    model_config = ConfigDict(frozen=True)

    text: str
    street_name: str = ""
    interval_start: int = Field(ge=0)
    interval_end: int = Field(ge=0)
    distance_meters: float = Field(default=0.0, ge=0.0)
    duration_millis: float = Field(default=0.0, ge=0.0)
    # Kept as a plain int: providers add codes faster than we name them.
    sign: int = ManeuverSign.CONTINUE_ON_STREET

    def contains(self, index: int) -> bool:
        return self.interval_start <= index <= self.interval_end


class Route(BaseModel):
    """Immutable route returned by the routing provider.

    Structural invariants (point count, instruction intervals) are checked by
    ``navigation.route.validate_route`` so that callers get the navigation
    error types rather than pydantic's.
    """

    model_config = ConfigDict(frozen=True)

    points: tuple[Coordinate, ...]
    instructions: tuple[Instruction, ...]
    total_distance_meters: float = Field(ge=0.0)
    total_duration_millis: float = Field(ge=0.0)

    @property
    def last_index(self) -> int:
        return len(self.points) - 1


class PositionSample(BaseModel):
    """One position fix from a live or simulated source."""

    model_config = ConfigDict(frozen=True)

    coordinate: Coordinate
    accuracy_meters: float | None = Field(default=None, ge=0.0)
    timestamp: AwareDatetime


class ProgressSnapshot(BaseModel):
    """Derived progress for a single sample. Replaced wholesale, never patched."""

    model_config = ConfigDict(frozen=True)

    closest_point_index: int
    remaining_distance_meters: float
    remaining_duration_millis_estimate: float
    active_instruction_index: int
    distance_to_next_maneuver_meters: float
    progress_fraction: float = Field(ge=0.0, le=1.0)
    distance_from_route_meters: float = 0.0
    is_off_route: bool = False
    bearing_degrees: float | None = None


class NavigationMode(str, Enum):
    """Where position samples come from."""

    LIVE = "live"
    SIMULATED = "simulated"


class TripSummary(BaseModel):
    """Read-only summary produced when a session completes."""

    model_config = ConfigDict(frozen=True)

    started_at: datetime
    ended_at: datetime
    total_distance_meters: float
    planned_duration_millis: float
    average_speed_kph: float
    distance_travelled_meters: float = 0.0
    mode: NavigationMode = NavigationMode.LIVE

    @property
    def elapsed_seconds(self) -> float:
        return (self.ended_at - self.started_at).total_seconds()
