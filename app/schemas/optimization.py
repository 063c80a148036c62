from pydantic import BaseModel, Field
from typing import Optional, List
from app.schemas.common import Location
from app.services.optimization_engine.route_optimizer import OptimizationGoal


class OptimizeRouteRequest(BaseModel):
    """Schema for an optimize-route request."""
    origin: Location = Field(..., description="Start location of the driver")
    destinations: List[Location] = Field(..., min_length=1, description="Stops to visit")
    optimization_goal: OptimizationGoal = Field(
        default=OptimizationGoal.MINIMUM_DISTANCE,
        description="Optimization objective: minimize time or distance"
    )
    return_to_origin: bool = Field(default=False, description="Include the leg back to the origin in the totals")
    fuel_price_per_liter: Optional[float] = Field(None, gt=0, description="Fuel price used to estimate money saved")


class OptimizeRouteResponse(BaseModel):
    """Schema for an optimize-route response."""
    order: List[int] = Field(..., description="Destination input indices in visiting order")
    optimized_route: List[Location]
    total_distance_meters: float
    total_duration_seconds: float
    baseline_distance_meters: float
    fuel_saved_liters: float
    cost_saved: Optional[float] = None
    degraded: bool = Field(False, description="True when part of the tour fell back to input order")
