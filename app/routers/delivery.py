from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List, Optional

from app.core.field_codec import address_codec
from app.core.logging_config import logger
from app.database import get_db
from app.dependencies import get_current_owner_id
from app.models.delivery import DeliveryStatus
from app.schemas.common import Envelope
from app.schemas.delivery import (
    CompleteStopRequest,
    CompleteStopResponse,
    DeliveryCreate,
    DeliveryResponse,
    DestinationResponse,
    SavingsRecordResponse,
    SavingsUpdate,
)
from app.services.delivery_lifecycle import DestinationInput, delivery_lifecycle
from app.services.optimization_engine.route_optimizer import OptimizationResult
from app.services.route_optimization import route_optimization_service

router = APIRouter()

RECENT_DELIVERIES_LIMIT = 5


def _delivery_view(delivery) -> DeliveryResponse:
    return DeliveryResponse.from_model(delivery, address_codec)


@router.post("", response_model=Envelope[DeliveryResponse], status_code=status.HTTP_201_CREATED)
def create_delivery(
    delivery_data: DeliveryCreate,
    db: Session = Depends(get_db),
    owner_id: int = Depends(get_current_owner_id)
):
    """
    Create a new pending delivery.

    When ``route_info`` is supplied (from a previous optimize-route call) it is
    stored as-is; otherwise the route is optimized first. The delivery, its
    destinations and its savings record are written in one transaction.

    Args:
        delivery_data: Origin, destinations and optional precomputed route
        db: Database session
        owner_id: Caller id (from JWT)

    Returns:
        Created delivery with destinations in visiting order
    """
    origin = delivery_data.origin.to_coordinate()
    locations = [d.location.to_coordinate() for d in delivery_data.destinations]

    if delivery_data.route_info:
        route_info = delivery_data.route_info
        plan = route_optimization_service.plan_from_route(
            destinations=locations,
            result=OptimizationResult(
                order=route_info.order,
                total_distance_meters=route_info.total_distance_meters,
                total_duration_seconds=route_info.total_duration_seconds,
                degraded=route_info.degraded,
            ),
            fuel_price_per_liter=delivery_data.fuel_price_per_liter
        )
    else:
        plan = route_optimization_service.optimize_route(
            origin=origin,
            destinations=locations,
            goal=delivery_data.optimization_goal,
            fuel_price_per_liter=delivery_data.fuel_price_per_liter
        )

    delivery = delivery_lifecycle.create(
        db,
        owner_id=owner_id,
        origin=origin,
        destinations=[
            DestinationInput(address=d.address, location=location)
            for d, location in zip(delivery_data.destinations, locations)
        ],
        optimization_result=plan.result,
        savings=plan.savings
    )
    return Envelope(data=_delivery_view(delivery))


@router.get("", response_model=Envelope[List[DeliveryResponse]])
def get_deliveries(
    status: Optional[DeliveryStatus] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    owner_id: int = Depends(get_current_owner_id)
):
    """
    Retrieve the caller's deliveries, newest first.

    Optional Query Params:
    - status: Filter by delivery status (pending, in_progress, completed, cancelled)
    """
    deliveries = delivery_lifecycle.list_deliveries(db, owner_id=owner_id, status=status, skip=skip, limit=limit)
    return Envelope(data=[_delivery_view(d) for d in deliveries])


@router.get("/recent", response_model=Envelope[List[DeliveryResponse]])
def get_recent_deliveries(
    db: Session = Depends(get_db),
    owner_id: int = Depends(get_current_owner_id)
):
    """Latest deliveries for the dashboard."""
    deliveries = delivery_lifecycle.list_deliveries(db, owner_id=owner_id, limit=RECENT_DELIVERIES_LIMIT)
    return Envelope(data=[_delivery_view(d) for d in deliveries])


@router.get("/{delivery_id}", response_model=Envelope[DeliveryResponse])
def get_delivery(
    delivery_id: int,
    db: Session = Depends(get_db),
    owner_id: int = Depends(get_current_owner_id)
):
    """
    Retrieve a specific delivery by ID.

    Raises:
        NotFound: If the delivery does not exist or belongs to another driver
    """
    delivery = delivery_lifecycle.get_delivery(db, owner_id=owner_id, delivery_id=delivery_id)
    return Envelope(data=_delivery_view(delivery))


@router.post("/{delivery_id}/start", response_model=Envelope[DeliveryResponse])
def start_delivery(
    delivery_id: int,
    db: Session = Depends(get_db),
    owner_id: int = Depends(get_current_owner_id)
):
    """Start a pending delivery."""
    delivery = delivery_lifecycle.start(db, owner_id=owner_id, delivery_id=delivery_id)
    return Envelope(data=_delivery_view(delivery))


@router.post("/{delivery_id}/complete-stop", response_model=Envelope[CompleteStopResponse])
def complete_delivery_stop(
    delivery_id: int,
    stop_data: CompleteStopRequest,
    db: Session = Depends(get_db),
    owner_id: int = Depends(get_current_owner_id)
):
    """
    Mark a stop of an in-progress delivery as completed.

    Safe to retry: completing the same stop again returns success. The
    delivery completes automatically with its last stop.
    """
    completion = delivery_lifecycle.complete_stop(
        db,
        owner_id=owner_id,
        delivery_id=delivery_id,
        destination_id=stop_data.destination_id
    )
    return Envelope(data=CompleteStopResponse(
        delivery=_delivery_view(completion.delivery),
        destination=DestinationResponse.from_model(completion.destination, address_codec),
        all_completed=completion.all_completed,
    ))


@router.post("/{delivery_id}/cancel", response_model=Envelope[DeliveryResponse])
def cancel_delivery(
    delivery_id: int,
    db: Session = Depends(get_db),
    owner_id: int = Depends(get_current_owner_id)
):
    """Cancel a pending delivery, removing its stops."""
    logger.info(f"Cancel requested: delivery_id={delivery_id}, owner_id={owner_id}")
    delivery = delivery_lifecycle.cancel(db, owner_id=owner_id, delivery_id=delivery_id)
    return Envelope(data=_delivery_view(delivery))


@router.patch("/{delivery_id}/savings", response_model=Envelope[SavingsRecordResponse])
def update_delivery_savings(
    delivery_id: int,
    savings_data: SavingsUpdate,
    db: Session = Depends(get_db),
    owner_id: int = Depends(get_current_owner_id)
):
    """Supply the fuel price for a delivery so the money saved can be computed."""
    record = delivery_lifecycle.record_fuel_price(
        db,
        owner_id=owner_id,
        delivery_id=delivery_id,
        fuel_price_per_liter=savings_data.fuel_price_per_liter
    )
    return Envelope(data=SavingsRecordResponse.model_validate(record))
