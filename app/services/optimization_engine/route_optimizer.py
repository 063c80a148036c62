"""
Greedy nearest-neighbour tour construction over a provider distance matrix.

Stop counts per delivery are small (tens), so the O(N^2) construction is
cheap and fully deterministic.
"""

import enum
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple
from app.core.errors import InvalidInput, ProviderUnavailable
from app.core.logging_config import logger
from app.services.optimization_engine.distance_matrix import (
    Coordinate,
    DistanceMatrix,
    Leg,
    validate_coordinate,
)

ORIGIN_INDEX = 0


class OptimizationGoal(str, enum.Enum):
    """Which leg attribute the greedy step minimises."""
    MINIMUM_TIME = "minimum_time"
    MINIMUM_DISTANCE = "minimum_distance"


@dataclass
class OptimizationResult:
    """
    Visiting order and totals for a single tour.

    ``order`` holds destination input indices (0-based). ``degraded`` is set
    when the tour had to fall back to input order because every remaining
    stop was unreachable, or when a leg on the tour had no matrix entry.
    """
    order: List[int]
    total_distance_meters: float
    total_duration_seconds: float
    degraded: bool = False
    legs: List[Optional[Leg]] = field(default_factory=list)


def leg_cost(leg: Optional[Leg], goal: OptimizationGoal) -> Optional[float]:
    if leg is None:
        return None
    if goal == OptimizationGoal.MINIMUM_TIME:
        return leg.duration_seconds
    return leg.distance_meters


def nearest_step(
    matrix: DistanceMatrix,
    current: int,
    remaining: Tuple[int, ...],
    goal: OptimizationGoal = OptimizationGoal.MINIMUM_DISTANCE
) -> Tuple[Optional[int], Tuple[int, ...]]:
    """
    Pick the cheapest reachable point from ``current``.

    Args:
        matrix: Distance matrix (point indices)
        current: Point index of the current position
        remaining: Unvisited point indices in ascending order
        goal: Cost attribute to minimise

    Returns:
        (next point, remaining without it), or (None, remaining) when every
        remaining point is unreachable from ``current``
    """
    best: Optional[int] = None
    best_cost: Optional[float] = None

    # Strict comparison keeps the lowest index on ties
    for candidate in remaining:
        cost = leg_cost(matrix.leg(current, candidate), goal)
        if cost is None:
            continue
        if best_cost is None or cost < best_cost:
            best, best_cost = candidate, cost

    if best is None:
        return None, remaining
    return best, tuple(point for point in remaining if point != best)


def tour_legs(
    matrix: DistanceMatrix,
    order: Sequence[int],
    return_to_origin: bool = False
) -> List[Optional[Leg]]:
    """Legs taken from the origin along ``order`` (destination indices)."""
    path = [ORIGIN_INDEX] + [index + 1 for index in order]
    if return_to_origin:
        path.append(ORIGIN_INDEX)
    return [matrix.leg(a, b) for a, b in zip(path, path[1:])]


def tour_totals(
    matrix: DistanceMatrix,
    order: Sequence[int],
    return_to_origin: bool = False
) -> Tuple[float, float, int]:
    """
    Sum the legs of a tour.

    Returns:
        (distance meters, duration seconds, number of unreachable legs)
    """
    distance = 0.0
    duration = 0.0
    missing = 0
    for leg in tour_legs(matrix, order, return_to_origin):
        if leg is None:
            missing += 1
            continue
        distance += leg.distance_meters
        duration += leg.duration_seconds
    return distance, duration, missing


class RouteOptimizer:
    """Nearest-neighbour visiting order for one origin and its destinations."""

    def __init__(self, goal: OptimizationGoal = OptimizationGoal.MINIMUM_DISTANCE):
        self.goal = goal

    @staticmethod
    def validate_inputs(origin: Coordinate, destinations: Sequence[Coordinate]) -> None:
        validate_coordinate(origin, "Origin")
        if not destinations:
            raise InvalidInput("At least one destination is required")
        for i, destination in enumerate(destinations):
            validate_coordinate(destination, f"Destination {i}")

    def optimize(
        self,
        origin: Coordinate,
        destinations: Sequence[Coordinate],
        distance_matrix: Optional[DistanceMatrix],
        return_to_origin: bool = False
    ) -> OptimizationResult:
        """
        Build a visiting order with the greedy nearest-neighbour heuristic.

        Args:
            origin: Start coordinate (matrix point 0)
            destinations: Stops to visit (matrix points 1..N)
            distance_matrix: Provider matrix covering origin + destinations
            return_to_origin: Include the leg back to the origin in the totals

        Returns:
            OptimizationResult with a permutation of destination indices

        Raises:
            InvalidInput: Empty/malformed destinations or undersized matrix
            ProviderUnavailable: No matrix could be obtained
        """
        self.validate_inputs(origin, destinations)
        if distance_matrix is None:
            raise ProviderUnavailable("Distance matrix is not available")

        count = len(destinations)
        if distance_matrix.size < count + 1:
            raise InvalidInput(
                f"Distance matrix covers {distance_matrix.size} points, "
                f"expected {count + 1} (origin + destinations)"
            )

        current = ORIGIN_INDEX
        remaining = tuple(range(1, count + 1))
        path: List[int] = []
        degraded = False

        while remaining:
            next_point, remaining_after = nearest_step(distance_matrix, current, remaining, self.goal)
            if next_point is None:
                logger.warning(
                    f"All {len(remaining)} remaining stops unreachable from point {current}, "
                    f"appending them in input order"
                )
                path.extend(remaining)
                degraded = True
                break
            path.append(next_point)
            current, remaining = next_point, remaining_after

        order = [point - 1 for point in path]
        legs = tour_legs(distance_matrix, order, return_to_origin)
        distance, duration, missing = tour_totals(distance_matrix, order, return_to_origin)
        if missing:
            degraded = True

        logger.info(
            f"Optimized {count} stops: distance={distance:.0f}m, duration={duration:.0f}s, "
            f"goal={self.goal.value}, degraded={degraded}"
        )

        return OptimizationResult(
            order=order,
            total_distance_meters=distance,
            total_duration_seconds=duration,
            degraded=degraded,
            legs=legs,
        )
