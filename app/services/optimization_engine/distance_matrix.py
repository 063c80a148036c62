"""
Distance matrix types shared by the routing providers and the optimizer.

Point 0 of every matrix is the origin; point i + 1 is destination i.
Unreachable pairs are stored as ``None``.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple
from app.core.errors import InvalidInput

# Providers that cannot express "unreachable" return a huge sentinel instead
UNREACHABLE_SENTINEL = 2147483647


@dataclass(frozen=True, slots=True)
class Coordinate:
    lat: float
    lng: float

    def as_lon_lat(self) -> Tuple[float, float]:
        return (self.lng, self.lat)


def validate_coordinate(coordinate: Coordinate, label: str) -> None:
    """Raise InvalidInput if the coordinate is missing or out of range."""
    if coordinate is None:
        raise InvalidInput(f"{label} is required")
    if not -90 <= coordinate.lat <= 90:
        raise InvalidInput(f"{label} has an invalid latitude: {coordinate.lat}")
    if not -180 <= coordinate.lng <= 180:
        raise InvalidInput(f"{label} has an invalid longitude: {coordinate.lng}")


@dataclass(frozen=True, slots=True)
class Leg:
    distance_meters: float
    duration_seconds: float


class DistanceMatrix:
    """Square matrix of legs between a set of points."""

    def __init__(self, legs: List[List[Optional[Leg]]]):
        size = len(legs)
        for i, row in enumerate(legs):
            if len(row) != size:
                raise InvalidInput(f"Distance matrix row {i} has {len(row)} entries, expected {size}")
        self._legs = legs

    @classmethod
    def from_arrays(
        cls,
        distances: Sequence[Sequence[Optional[float]]],
        durations: Sequence[Sequence[Optional[float]]]
    ) -> "DistanceMatrix":
        """
        Build a matrix from parallel distance (meters) and duration (seconds) arrays.

        A pair is unreachable when either value is missing, negative or the
        provider sentinel. The diagonal is always a zero leg.
        """
        if len(distances) != len(durations):
            raise InvalidInput("Distance and duration matrices differ in size")

        legs: List[List[Optional[Leg]]] = []
        for i, (dist_row, dur_row) in enumerate(zip(distances, durations)):
            if len(dist_row) != len(dur_row):
                raise InvalidInput(f"Distance and duration rows {i} differ in size")
            row: List[Optional[Leg]] = []
            for j, (dist, dur) in enumerate(zip(dist_row, dur_row)):
                if i == j:
                    row.append(Leg(0.0, 0.0))
                elif _is_unreachable(dist) or _is_unreachable(dur):
                    row.append(None)
                else:
                    row.append(Leg(float(dist), float(dur)))
            legs.append(row)
        return cls(legs)

    @property
    def size(self) -> int:
        return len(self._legs)

    def leg(self, from_index: int, to_index: int) -> Optional[Leg]:
        return self._legs[from_index][to_index]

    def unreachable_pairs(self) -> int:
        return sum(1 for row in self._legs for leg in row if leg is None)


def _is_unreachable(value: Optional[float]) -> bool:
    return value is None or value < 0 or value >= UNREACHABLE_SENTINEL
