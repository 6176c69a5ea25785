"""Encoded polyline codec.

Wraps the ``polyline`` package and normalizes its output to
(longitude, latitude) ``Coordinate`` values. The wire format carries
latitude first; that order never leaks past this module.

Decoding is strict: a string whose last coordinate is incomplete raises
``MalformedGeometry`` instead of silently dropping the partial pair.
"""

import polyline
from pydantic import ValidationError as PydanticValidationError

from core.exceptions import MalformedGeometry
from navigation.models import Coordinate

DEFAULT_PRECISION = 5

# Every encoded character is a 5-bit chunk offset by 63 ('?'), optionally
# OR'ed with the 0x20 continuation bit, so the alphabet is '?'..'~'.
_MIN_CHAR = 63
_MAX_CHAR = 63 + 0x3F
_CONTINUATION_BIT = 0x20


def _count_complete_values(encoded: str) -> int:
    """Number of varints in ``encoded``; raises if the last one is unterminated."""
    values = 0
    pending = False
    for position, char in enumerate(encoded):
        code = ord(char)
        if code < _MIN_CHAR or code > _MAX_CHAR:
            raise MalformedGeometry(
                f"Invalid polyline character {char!r} at offset {position}",
                details={"offset": position},
            )
        if (code - _MIN_CHAR) & _CONTINUATION_BIT:
            pending = True
        else:
            values += 1
            pending = False
    if pending:
        raise MalformedGeometry(
            "Polyline ends inside an incomplete value group",
            details={"length": len(encoded)},
        )
    return values


def decode(encoded: str, precision: int = DEFAULT_PRECISION) -> list[Coordinate]:
    """Decode an encoded polyline into (lon, lat) coordinates.

    Args:
        encoded: Encoded polyline string
        precision: Decimal precision of the encoding (5 for the standard format)

    Returns:
        Coordinates in encoding order

    Raises:
        MalformedGeometry: On invalid characters, an incomplete trailing group,
            or a latitude without its longitude
    """
    values = _count_complete_values(encoded)
    if values % 2:
        raise MalformedGeometry(
            "Polyline has a trailing latitude without longitude",
            details={"values": values},
        )

    try:
        pairs = polyline.decode(encoded, precision, geojson=True)
        return [Coordinate(lon=lon, lat=lat) for lon, lat in pairs]
    except (IndexError, PydanticValidationError) as e:
        raise MalformedGeometry(f"Polyline could not be decoded: {e}") from e


def encode(coordinates: list[Coordinate], precision: int = DEFAULT_PRECISION) -> str:
    """Encode (lon, lat) coordinates into a polyline string."""
    return polyline.encode([c.as_tuple() for c in coordinates], precision, geojson=True)


def decode_route_geometry(encoded: str, precision: int = DEFAULT_PRECISION) -> list[Coordinate]:
    """Decode geometry that must describe a drivable path (at least two points)."""
    coordinates = decode(encoded, precision)
    if len(coordinates) < 2:
        raise MalformedGeometry(
            f"Route geometry needs at least 2 coordinates, got {len(coordinates)}",
            details={"points": len(coordinates)},
        )
    return coordinates
