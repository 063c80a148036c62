"""
Fuel and cost savings estimation.

The baseline (non-optimized) distance is not measured. It is an explicit
estimation heuristic: the optimized distance inflated by a fixed factor that
stands for the detour an unplanned route would take. Replacing it with a
second routing call is a product decision, not an implementation detail.
"""

from dataclasses import dataclass
from typing import Optional
from app.core.config import settings
from app.core.errors import InvalidInput


@dataclass(frozen=True)
class SavingsPolicy:
    inflation_factor: float = 1.2
    fuel_efficiency_km_per_liter: float = 10.0
    fuel_price_per_liter: Optional[float] = None

    @classmethod
    def from_settings(cls, fuel_price_per_liter: Optional[float] = None) -> "SavingsPolicy":
        """Policy from configuration; an explicit price overrides the configured one."""
        price = fuel_price_per_liter if fuel_price_per_liter is not None else settings.FUEL_PRICE_PER_LITER
        return cls(
            inflation_factor=settings.BASELINE_INFLATION_FACTOR,
            fuel_efficiency_km_per_liter=settings.FUEL_EFFICIENCY_KM_PER_LITER,
            fuel_price_per_liter=price,
        )


@dataclass(frozen=True)
class SavingsEstimate:
    baseline_distance_meters: float
    fuel_saved_liters: float
    cost_saved: Optional[float] = None
    fuel_price_per_liter: Optional[float] = None


def fuel_saved_liters(
    optimized_distance_meters: float,
    baseline_distance_meters: float,
    fuel_efficiency_km_per_liter: float
) -> float:
    """Liters saved by driving the optimized distance instead of the baseline. Never negative."""
    if fuel_efficiency_km_per_liter <= 0:
        raise InvalidInput("Fuel efficiency must be positive")
    saved_km = (baseline_distance_meters - optimized_distance_meters) / 1000
    return max(0.0, saved_km / fuel_efficiency_km_per_liter)


def cost_saved(fuel_saved: float, fuel_price_per_liter: Optional[float]) -> Optional[float]:
    if fuel_price_per_liter is None:
        return None
    if fuel_price_per_liter < 0:
        raise InvalidInput("Fuel price cannot be negative")
    return fuel_saved * fuel_price_per_liter


class SavingsEstimator:
    """Derives baseline distance and savings from an optimized distance."""

    def estimate(
        self,
        optimized_distance_meters: float,
        policy: Optional[SavingsPolicy] = None
    ) -> SavingsEstimate:
        """
        Estimate savings for one optimized tour.

        Args:
            optimized_distance_meters: Total distance of the optimized tour
            policy: Estimation policy (defaults to configured policy)

        Returns:
            SavingsEstimate; cost_saved is None when no fuel price is known

        Raises:
            InvalidInput: Negative distance or an invalid policy
        """
        policy = policy or SavingsPolicy.from_settings()

        if optimized_distance_meters is None or optimized_distance_meters < 0:
            raise InvalidInput("Optimized distance must be a non-negative number")
        if policy.inflation_factor < 1.0:
            raise InvalidInput("Baseline inflation factor must be at least 1.0")

        baseline = optimized_distance_meters * policy.inflation_factor
        fuel = fuel_saved_liters(
            optimized_distance_meters,
            baseline,
            policy.fuel_efficiency_km_per_liter
        )

        return SavingsEstimate(
            baseline_distance_meters=baseline,
            fuel_saved_liters=fuel,
            cost_saved=cost_saved(fuel, policy.fuel_price_per_liter),
            fuel_price_per_liter=policy.fuel_price_per_liter,
        )
