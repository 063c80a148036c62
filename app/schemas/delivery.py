from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from app.core.field_codec import FieldCodec
from app.models.delivery import Delivery, DeliveryStatus, Destination
from app.schemas.common import Location
from app.services.optimization_engine.route_optimizer import OptimizationGoal


# Request Schemas
class DestinationCreate(BaseModel):
    address: str = Field(..., min_length=1, max_length=1024)
    location: Location

class RouteInfo(BaseModel):
    """Route previously returned by the optimize-route endpoint."""
    order: List[int] = Field(..., min_length=1)
    total_distance_meters: float = Field(..., ge=0)
    total_duration_seconds: float = Field(..., ge=0)
    degraded: bool = False

class DeliveryCreate(BaseModel):
    origin: Location
    destinations: List[DestinationCreate] = Field(..., min_length=1)
    route_info: Optional[RouteInfo] = Field(None, description="Skip optimization and use this route")
    optimization_goal: OptimizationGoal = OptimizationGoal.MINIMUM_DISTANCE
    fuel_price_per_liter: Optional[float] = Field(None, gt=0)

class CompleteStopRequest(BaseModel):
    destination_id: int

class SavingsUpdate(BaseModel):
    fuel_price_per_liter: float = Field(..., gt=0)


# Response Schemas
class DestinationResponse(BaseModel):
    id: int
    address: str
    location: Location
    visit_order: int
    completed: bool
    completed_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, destination: Destination, codec: FieldCodec) -> "DestinationResponse":
        return cls(
            id=destination.id,
            address=codec.decode(destination.address),
            location=Location(lat=destination.lat, lng=destination.lng),
            visit_order=destination.visit_order,
            completed=destination.completed,
            completed_at=destination.completed_at,
        )

class SavingsRecordResponse(BaseModel):
    optimized_distance_meters: float
    baseline_distance_meters: float
    fuel_saved_liters: float
    fuel_price_per_liter: Optional[float] = None
    cost_saved: Optional[float] = None

    class Config:
        from_attributes = True

class DeliveryResponse(BaseModel):
    id: int
    status: DeliveryStatus
    origin: Location
    created_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    total_distance_meters: float
    total_duration_seconds: float
    baseline_distance_meters: float
    degraded: bool
    destinations: List[DestinationResponse] = []
    savings: Optional[SavingsRecordResponse] = None

    @classmethod
    def from_model(cls, delivery: Delivery, codec: FieldCodec) -> "DeliveryResponse":
        savings = delivery.savings_record
        return cls(
            id=delivery.id,
            status=delivery.status,
            origin=Location(lat=delivery.origin_lat, lng=delivery.origin_lng),
            created_at=delivery.created_at,
            started_at=delivery.started_at,
            completed_at=delivery.completed_at,
            total_distance_meters=delivery.total_distance_meters,
            total_duration_seconds=delivery.total_duration_seconds,
            baseline_distance_meters=delivery.baseline_distance_meters,
            degraded=delivery.degraded,
            destinations=[DestinationResponse.from_model(d, codec) for d in delivery.destinations],
            savings=SavingsRecordResponse.model_validate(savings) if savings else None,
        )

class CompleteStopResponse(BaseModel):
    delivery: DeliveryResponse
    destination: DestinationResponse
    all_completed: bool
