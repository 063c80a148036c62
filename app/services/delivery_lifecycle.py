"""
Delivery lifecycle state machine.

    pending -> in_progress -> completed
    pending -> cancelled

Every operation runs as a single transaction. Operations that read a status
and then write lock the Delivery row first, so concurrent requests for the
same delivery are serialised by the database.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional, TypeVar
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from app.core.errors import InvalidInput, InvalidState, NotFound, PersistenceFailure
from app.core.logging_config import logger
from app.crud.delivery import delivery as delivery_crud
from app.crud.destination import destination as destination_crud
from app.crud.savings_record import savings_record as savings_crud
from app.database import run_transaction
from app.models.delivery import Delivery, DeliveryStatus, Destination
from app.models.savings_record import SavingsRecord
from app.services.optimization_engine.distance_matrix import Coordinate, validate_coordinate
from app.services.optimization_engine.route_optimizer import OptimizationResult
from app.services.optimization_engine.savings import SavingsEstimate, cost_saved

T = TypeVar("T")

ALLOWED_TRANSITIONS = {
    DeliveryStatus.pending: {DeliveryStatus.in_progress, DeliveryStatus.cancelled},
    DeliveryStatus.in_progress: {DeliveryStatus.completed},
    DeliveryStatus.completed: set(),
    DeliveryStatus.cancelled: set(),
}


@dataclass
class DestinationInput:
    address: str
    location: Coordinate


@dataclass
class StopCompletion:
    delivery: Delivery
    destination: Destination
    all_completed: bool


def _now() -> datetime:
    return datetime.now(timezone.utc)


class DeliveryLifecycle:
    """
    Service layer for the Delivery aggregate (Delivery + Destinations + SavingsRecord).
    """

    def __init__(self):
        self.delivery_crud = delivery_crud
        self.destination_crud = destination_crud
        self.savings_crud = savings_crud

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create(
        self,
        db: Session,
        *,
        owner_id: int,
        origin: Coordinate,
        destinations: List[DestinationInput],
        optimization_result: OptimizationResult,
        savings: SavingsEstimate
    ) -> Delivery:
        """
        Persist a new pending delivery with its destinations and savings record.

        Destination ``visit_order`` is its position in ``optimization_result.order``.
        All rows are written in one transaction; any failure leaves no rows behind.

        Raises:
            InvalidInput: Empty destinations, or an order that is not a permutation
            PersistenceFailure: The transactional write failed
        """
        validate_coordinate(origin, "Origin")
        if not destinations:
            raise InvalidInput("At least one destination is required")
        for i, destination in enumerate(destinations):
            validate_coordinate(destination.location, f"Destination {i}")
            if not destination.address or not destination.address.strip():
                raise InvalidInput(f"Destination {i} has no address")

        order = list(optimization_result.order)
        if sorted(order) != list(range(len(destinations))):
            raise InvalidInput("Route order must be a permutation of the destination indices")
        if savings.baseline_distance_meters < optimization_result.total_distance_meters:
            raise InvalidInput("Baseline distance cannot be shorter than the optimized distance")

        def perform(db: Session) -> Delivery:
            delivery = self.delivery_crud.create(db=db, obj_in={
                "owner_id": owner_id,
                "status": DeliveryStatus.pending,
                "origin_lat": origin.lat,
                "origin_lng": origin.lng,
                "total_distance_meters": optimization_result.total_distance_meters,
                "total_duration_seconds": optimization_result.total_duration_seconds,
                "baseline_distance_meters": savings.baseline_distance_meters,
                "degraded": optimization_result.degraded,
            })

            for visit_order, input_index in enumerate(order):
                destination = destinations[input_index]
                self.destination_crud.create(db=db, obj_in={
                    "delivery_id": delivery.id,
                    "address": destination.address,
                    "lat": destination.location.lat,
                    "lng": destination.location.lng,
                    "visit_order": visit_order,
                    "completed": False,
                })

            self.savings_crud.create(db=db, obj_in={
                "delivery_id": delivery.id,
                "owner_id": owner_id,
                "optimized_distance_meters": optimization_result.total_distance_meters,
                "baseline_distance_meters": savings.baseline_distance_meters,
                "fuel_saved_liters": savings.fuel_saved_liters,
                "fuel_price_per_liter": savings.fuel_price_per_liter,
                "cost_saved": savings.cost_saved,
            })
            return delivery

        delivery = self._execute(db, "create", perform)
        logger.info(
            f"Delivery created: id={delivery.id}, owner_id={owner_id}, "
            f"stops={len(destinations)}, distance={optimization_result.total_distance_meters:.0f}m"
        )
        return delivery

    def start(self, db: Session, *, owner_id: int, delivery_id: int) -> Delivery:
        """
        Move a pending delivery to in_progress and stamp started_at.

        Raises:
            NotFound: Unknown delivery or not owned by the caller
            InvalidState: Delivery is not pending
        """
        def perform(db: Session) -> Delivery:
            delivery = self._get_locked(db, owner_id=owner_id, delivery_id=delivery_id)
            self._transition(delivery, DeliveryStatus.in_progress)
            return self.delivery_crud.update(db=db, db_obj=delivery, obj_in={
                "status": DeliveryStatus.in_progress,
                "started_at": _now(),
            })

        delivery = self._execute(db, "start", perform)
        logger.info(f"Delivery {delivery_id} started")
        return delivery

    def complete_stop(
        self,
        db: Session,
        *,
        owner_id: int,
        delivery_id: int,
        destination_id: int
    ) -> StopCompletion:
        """
        Mark a stop completed; complete the delivery when it was the last one.

        Idempotent: completing an already-completed stop succeeds without
        changes, including after the delivery itself auto-completed. The stop
        update, the all-done check and the status transition share one
        transaction under the delivery row lock.

        Raises:
            NotFound: Unknown delivery, or destination not part of it
            InvalidState: Delivery is not in progress
        """
        def perform(db: Session) -> StopCompletion:
            delivery = self._get_locked(db, owner_id=owner_id, delivery_id=delivery_id)
            destination = self.destination_crud.get_in_delivery(
                db=db,
                delivery_id=delivery_id,
                destination_id=destination_id
            )

            if delivery.status != DeliveryStatus.in_progress:
                # Retried request for the stop that completed the delivery
                if delivery.status == DeliveryStatus.completed and destination is not None and destination.completed:
                    return StopCompletion(delivery=delivery, destination=destination, all_completed=True)
                raise InvalidState(
                    f"Delivery {delivery_id} is {delivery.status.value}, expected in_progress"
                )

            if destination is None:
                raise NotFound(f"Destination {destination_id} not found in delivery {delivery_id}")

            if destination.completed:
                logger.info(f"Stop {destination_id} of delivery {delivery_id} already completed")
            else:
                self.destination_crud.mark_completed(db=db, db_obj=destination, completed_at=_now())

            remaining = self.destination_crud.count_incomplete(db=db, delivery_id=delivery_id)
            if remaining == 0:
                self._transition(delivery, DeliveryStatus.completed)
                self.delivery_crud.update(db=db, db_obj=delivery, obj_in={
                    "status": DeliveryStatus.completed,
                    "completed_at": _now(),
                })
                logger.info(f"Delivery {delivery_id} completed: last stop {destination_id} done")

            return StopCompletion(delivery=delivery, destination=destination, all_completed=remaining == 0)

        return self._execute(db, "complete_stop", perform)

    def cancel(self, db: Session, *, owner_id: int, delivery_id: int) -> Delivery:
        """
        Cancel a pending delivery and remove its destinations and savings record.
        started_at is stamped with the cancellation time.

        Raises:
            NotFound: Unknown delivery or not owned by the caller
            InvalidState: Delivery is not pending
        """
        def perform(db: Session) -> Delivery:
            delivery = self._get_locked(db, owner_id=owner_id, delivery_id=delivery_id)
            self._transition(delivery, DeliveryStatus.cancelled)
            removed = self.destination_crud.delete_for_delivery(db=db, delivery_id=delivery_id)
            self.savings_crud.delete_for_delivery(db=db, delivery_id=delivery_id)
            db.expire(delivery, ["destinations", "savings_record"])
            logger.info(f"Delivery {delivery_id}: removed {removed} destinations")
            return self.delivery_crud.update(db=db, db_obj=delivery, obj_in={
                "status": DeliveryStatus.cancelled,
                "started_at": delivery.started_at or _now(),
            })

        delivery = self._execute(db, "cancel", perform)
        logger.info(f"Delivery {delivery_id} cancelled")
        return delivery

    def record_fuel_price(
        self,
        db: Session,
        *,
        owner_id: int,
        delivery_id: int,
        fuel_price_per_liter: float
    ) -> SavingsRecord:
        """
        Backfill the fuel price of a delivery's savings record and compute money saved.

        Raises:
            NotFound: Unknown delivery, or no savings record for it
            InvalidInput: Negative fuel price
        """
        if fuel_price_per_liter is None or fuel_price_per_liter < 0:
            raise InvalidInput("Fuel price must be a non-negative number")

        def perform(db: Session) -> SavingsRecord:
            self._get_locked(db, owner_id=owner_id, delivery_id=delivery_id)
            record = self.savings_crud.get_for_delivery(db=db, delivery_id=delivery_id, owner_id=owner_id)
            if record is None:
                raise NotFound(f"Savings record for delivery {delivery_id} not found")
            return self.savings_crud.update(db=db, db_obj=record, obj_in={
                "fuel_price_per_liter": fuel_price_per_liter,
                "cost_saved": cost_saved(record.fuel_saved_liters, fuel_price_per_liter),
            })

        return self._execute(db, "record_fuel_price", perform)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_delivery(self, db: Session, *, owner_id: int, delivery_id: int) -> Delivery:
        delivery = self.delivery_crud.get_with_details(db=db, id=delivery_id, owner_id=owner_id)
        if not delivery:
            raise NotFound(f"Delivery {delivery_id} not found")
        return delivery

    def list_deliveries(
        self,
        db: Session,
        *,
        owner_id: int,
        status: Optional[DeliveryStatus] = None,
        skip: int = 0,
        limit: int = 100
    ) -> List[Delivery]:
        return self.delivery_crud.get_multi(db=db, owner_id=owner_id, status=status, skip=skip, limit=limit)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_locked(self, db: Session, *, owner_id: int, delivery_id: int) -> Delivery:
        delivery = self.delivery_crud.get_for_update(db=db, id=delivery_id, owner_id=owner_id)
        if not delivery:
            raise NotFound(f"Delivery {delivery_id} not found")
        return delivery

    @staticmethod
    def _transition(delivery: Delivery, target: DeliveryStatus) -> None:
        if target not in ALLOWED_TRANSITIONS[delivery.status]:
            raise InvalidState(
                f"Delivery {delivery.id} cannot move from {delivery.status.value} to {target.value}"
            )

    @staticmethod
    def _execute(db: Session, operation: str, fn: Callable[[Session], T]) -> T:
        """Run ``fn`` in one transaction, mapping database errors to PersistenceFailure."""
        try:
            return run_transaction(db, fn)
        except SQLAlchemyError as e:
            logger.error(f"Delivery {operation} failed and was rolled back: {type(e).__name__}: {str(e)}")
            raise PersistenceFailure(f"Failed to persist delivery {operation}")


# Create a singleton instance
delivery_lifecycle = DeliveryLifecycle()
