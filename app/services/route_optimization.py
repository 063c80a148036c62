from dataclasses import dataclass
from typing import Callable, List, Optional
from app.core.logging_config import logger
from app.services.optimization_engine.distance_matrix import Coordinate
from app.services.optimization_engine.route_optimizer import (
    OptimizationGoal,
    OptimizationResult,
    RouteOptimizer,
)
from app.services.optimization_engine.routing_client import DistanceProvider, get_distance_provider
from app.services.optimization_engine.savings import SavingsEstimate, SavingsEstimator, SavingsPolicy


@dataclass
class RoutePlan:
    result: OptimizationResult
    savings: SavingsEstimate
    optimized_route: List[Coordinate]


class RouteOptimizationService:
    """
    Service layer for the optimize-route operation.

    Fetches the distance matrix, builds the visiting order and estimates
    savings. Nothing is persisted here; creating a delivery is a separate step.
    """

    def __init__(
        self,
        provider_factory: Callable[[], DistanceProvider] = get_distance_provider,
        estimator: Optional[SavingsEstimator] = None
    ):
        self.provider_factory = provider_factory
        self.estimator = estimator or SavingsEstimator()

    def optimize_route(
        self,
        origin: Coordinate,
        destinations: List[Coordinate],
        goal: OptimizationGoal = OptimizationGoal.MINIMUM_DISTANCE,
        return_to_origin: bool = False,
        fuel_price_per_liter: Optional[float] = None,
        timeout_seconds: Optional[float] = None
    ) -> RoutePlan:
        """
        Compute a visiting order and savings for an origin and its destinations.

        Args:
            origin: Start coordinate
            destinations: Stops to visit
            goal: Minimise distance or time on each greedy step
            return_to_origin: Count the leg back to the origin
            fuel_price_per_liter: Optional price for the cost estimate
            timeout_seconds: Caller deadline for the provider call

        Returns:
            RoutePlan with the optimization result and savings

        Raises:
            InvalidInput: Malformed origin or destinations
            ProviderUnavailable: Provider unreachable, failing or timed out
        """
        optimizer = RouteOptimizer(goal=goal)
        optimizer.validate_inputs(origin, destinations)

        logger.info(f"Optimizing route: {len(destinations)} destinations, goal={goal.value}")
        provider = self.provider_factory()
        matrix = provider.get_matrix([origin] + list(destinations), timeout=timeout_seconds)

        result = optimizer.optimize(origin, destinations, matrix, return_to_origin=return_to_origin)
        return self._plan(result, destinations, fuel_price_per_liter)

    def plan_from_route(
        self,
        destinations: List[Coordinate],
        result: OptimizationResult,
        fuel_price_per_liter: Optional[float] = None
    ) -> RoutePlan:
        """Estimate savings for a route that was optimized earlier."""
        return self._plan(result, destinations, fuel_price_per_liter)

    def _plan(
        self,
        result: OptimizationResult,
        destinations: List[Coordinate],
        fuel_price_per_liter: Optional[float]
    ) -> RoutePlan:
        savings = self.estimator.estimate(
            result.total_distance_meters,
            SavingsPolicy.from_settings(fuel_price_per_liter)
        )
        optimized_route = [destinations[index] for index in result.order if 0 <= index < len(destinations)]
        return RoutePlan(result=result, savings=savings, optimized_route=optimized_route)


# Create a singleton instance
route_optimization_service = RouteOptimizationService()
