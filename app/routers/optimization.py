from fastapi import APIRouter, Depends
from app.dependencies import get_current_owner_id
from app.schemas.common import Envelope, Location
from app.schemas.optimization import OptimizeRouteRequest, OptimizeRouteResponse
from app.services.route_optimization import route_optimization_service
from app.core.logging_config import logger

router = APIRouter()


@router.post("/route", response_model=Envelope[OptimizeRouteResponse])
def optimize_route(
    request_data: OptimizeRouteRequest,
    owner_id: int = Depends(get_current_owner_id)
):
    """
    Compute an efficient visiting order for a set of destinations.

    The distance matrix is fetched from the configured routing provider and
    the order is built greedily from the origin (nearest stop first). Nothing
    is stored; pass the returned order as ``route_info`` when creating the
    delivery to reuse it.

    Args:
        request_data: Origin, destinations and optimization options
        owner_id: Caller id (from JWT)

    Returns:
        Visiting order, totals and estimated fuel savings

    Example:
        ```json
        {
            "origin": {"lat": 4.60, "lng": -74.08},
            "destinations": [{"lat": 4.65, "lng": -74.05}, {"lat": 4.62, "lng": -74.10}],
            "optimization_goal": "minimum_distance"
        }
        ```
    """
    logger.info(f"Optimize route requested: owner_id={owner_id}, destinations={len(request_data.destinations)}")
    plan = route_optimization_service.optimize_route(
        origin=request_data.origin.to_coordinate(),
        destinations=[location.to_coordinate() for location in request_data.destinations],
        goal=request_data.optimization_goal,
        return_to_origin=request_data.return_to_origin,
        fuel_price_per_liter=request_data.fuel_price_per_liter
    )

    return Envelope(data=OptimizeRouteResponse(
        order=plan.result.order,
        optimized_route=[Location.from_coordinate(c) for c in plan.optimized_route],
        total_distance_meters=plan.result.total_distance_meters,
        total_duration_seconds=plan.result.total_duration_seconds,
        baseline_distance_meters=plan.savings.baseline_distance_meters,
        fuel_saved_liters=plan.savings.fuel_saved_liters,
        cost_saved=plan.savings.cost_saved,
        degraded=plan.result.degraded,
    ))
