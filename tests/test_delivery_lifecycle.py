import pytest
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from app.core.errors import InvalidInput, InvalidState, NotFound, PersistenceFailure
from app.core.field_codec import FernetCodec, PlainCodec, address_codec
from app.crud.destination import destination as destination_crud
from app.database import SessionLocal
from app.models.delivery import Delivery, DeliveryStatus, Destination
from app.models.savings_record import SavingsRecord
from app.services.delivery_lifecycle import DestinationInput, delivery_lifecycle
from app.services.optimization_engine.distance_matrix import Coordinate
from app.services.optimization_engine.route_optimizer import OptimizationResult
from app.services.optimization_engine.savings import SavingsEstimator, SavingsPolicy
from tests.conftest import count_rows

ORIGIN = Coordinate(lat=4.60, lng=-74.08)
ADDRESSES = ["Calle 10 #5-21", "Carrera 7 #32-16", "Avenida 68 #24-50"]


def _create(db, owner_id: int = 1, count: int = 3, order=None, fuel_price=None) -> Delivery:
    destinations = [
        DestinationInput(address=ADDRESSES[i], location=Coordinate(lat=4.61 + 0.01 * i, lng=-74.07))
        for i in range(count)
    ]
    result = OptimizationResult(
        order=order if order is not None else list(reversed(range(count))),
        total_distance_meters=3000.0,
        total_duration_seconds=600.0,
    )
    savings = SavingsEstimator().estimate(3000.0, SavingsPolicy(fuel_price_per_liter=fuel_price))
    return delivery_lifecycle.create(
        db,
        owner_id=owner_id,
        origin=ORIGIN,
        destinations=destinations,
        optimization_result=result,
        savings=savings,
    )


def _stop_ids(delivery: Delivery):
    return [d.id for d in delivery.destinations]


def test_create_persists_the_whole_aggregate(db):
    delivery = _create(db)

    assert delivery.status == DeliveryStatus.pending
    assert delivery.started_at is None
    assert delivery.total_distance_meters == 3000.0
    assert delivery.baseline_distance_meters == pytest.approx(3600.0)

    # visit_order follows the optimized order [2, 1, 0]
    stops = delivery.destinations
    assert [s.visit_order for s in stops] == [0, 1, 2]
    assert [address_codec.decode(s.address) for s in stops] == list(reversed(ADDRESSES))
    assert all(not s.completed for s in stops)

    record = delivery.savings_record
    assert record.optimized_distance_meters == 3000.0
    assert record.fuel_saved_liters == pytest.approx(0.06)
    assert record.fuel_price_per_liter is None
    assert record.cost_saved is None


def test_addresses_are_encrypted_at_rest(db):
    delivery = _create(db)

    stored = db.execute(
        select(Destination.address).where(Destination.delivery_id == delivery.id)
    ).scalars().all()

    assert isinstance(address_codec, FernetCodec)
    assert len(stored) == 3
    assert not set(stored) & set(ADDRESSES)
    assert sorted(address_codec.decode(value) for value in stored) == sorted(ADDRESSES)


def test_plain_codec_keeps_values():
    codec = PlainCodec()
    assert codec.encode("Calle 1") == "Calle 1"
    assert codec.decode("Calle 1") == "Calle 1"


def test_fernet_codec_rejects_foreign_ciphertext():
    codec = FernetCodec("MDAwMDAwMDAwMDAwMDAwMDAwMDAwMDAwMDAwMDAwMDA=")
    other = FernetCodec("MTExMTExMTExMTExMTExMTExMTExMTExMTExMTExMTE=")
    with pytest.raises(ValueError):
        codec.decode(other.encode("Calle 1"))


def test_create_rejects_inconsistent_routes(db):
    with pytest.raises(InvalidInput):
        _create(db, order=[0, 0, 1])
    with pytest.raises(InvalidInput):
        _create(db, order=[0, 1])
    with pytest.raises(InvalidInput):
        _create(db, count=0, order=[])
    assert count_rows(db) == {"delivery": 0, "destination": 0, "savings_record": 0}


def test_create_rolls_back_when_a_destination_write_fails(db, monkeypatch):
    calls = {"count": 0, "delivery_id": None}
    original_create = destination_crud.create

    def failing_create(db, *, obj_in):
        calls["count"] += 1
        calls["delivery_id"] = obj_in["delivery_id"]
        if calls["count"] == 2:
            raise SQLAlchemyError("simulated write failure")
        return original_create(db=db, obj_in=obj_in)

    monkeypatch.setattr(destination_crud, "create", failing_create)

    with pytest.raises(PersistenceFailure):
        _create(db)

    check = SessionLocal()
    try:
        assert calls["delivery_id"] is not None
        assert check.get(Delivery, calls["delivery_id"]) is None
        assert count_rows(check) == {"delivery": 0, "destination": 0, "savings_record": 0}
    finally:
        check.close()


def test_start_moves_pending_to_in_progress(db):
    delivery = _create(db)

    started = delivery_lifecycle.start(db, owner_id=1, delivery_id=delivery.id)

    assert started.status == DeliveryStatus.in_progress
    assert started.started_at is not None


def test_start_rejects_non_pending_deliveries(db):
    delivery = _create(db)
    delivery_lifecycle.start(db, owner_id=1, delivery_id=delivery.id)

    with pytest.raises(InvalidState):
        delivery_lifecycle.start(db, owner_id=1, delivery_id=delivery.id)


def test_unknown_or_foreign_delivery_is_not_found(db):
    delivery = _create(db, owner_id=1)

    with pytest.raises(NotFound):
        delivery_lifecycle.start(db, owner_id=1, delivery_id=delivery.id + 100)
    with pytest.raises(NotFound):
        delivery_lifecycle.start(db, owner_id=2, delivery_id=delivery.id)
    with pytest.raises(NotFound):
        delivery_lifecycle.get_delivery(db, owner_id=2, delivery_id=delivery.id)

    db.refresh(delivery)
    assert delivery.status == DeliveryStatus.pending


def test_complete_stop_requires_in_progress(db):
    delivery = _create(db)
    first_stop = _stop_ids(delivery)[0]

    with pytest.raises(InvalidState):
        delivery_lifecycle.complete_stop(db, owner_id=1, delivery_id=delivery.id, destination_id=first_stop)


def test_complete_stop_is_idempotent(db):
    delivery = _create(db)
    delivery_lifecycle.start(db, owner_id=1, delivery_id=delivery.id)
    stop_id = _stop_ids(delivery)[0]

    first = delivery_lifecycle.complete_stop(db, owner_id=1, delivery_id=delivery.id, destination_id=stop_id)
    snapshot = [(d.id, d.completed, d.completed_at) for d in first.delivery.destinations]

    second = delivery_lifecycle.complete_stop(db, owner_id=1, delivery_id=delivery.id, destination_id=stop_id)

    assert first.all_completed is False
    assert second.all_completed is False
    assert second.destination.completed is True
    assert second.delivery.status == DeliveryStatus.in_progress
    assert [(d.id, d.completed, d.completed_at) for d in second.delivery.destinations] == snapshot


def test_last_stop_completes_the_delivery(db):
    delivery = _create(db)
    delivery_lifecycle.start(db, owner_id=1, delivery_id=delivery.id)
    stop_ids = _stop_ids(delivery)

    results = [
        delivery_lifecycle.complete_stop(db, owner_id=1, delivery_id=delivery.id, destination_id=stop_id)
        for stop_id in stop_ids
    ]

    assert [r.all_completed for r in results] == [False, False, True]
    completed = results[-1].delivery
    assert completed.status == DeliveryStatus.completed
    assert completed.completed_at is not None
    assert all(d.completed for d in completed.destinations)


def test_retry_after_auto_completion_succeeds(db):
    delivery = _create(db, count=1, order=[0])
    delivery_lifecycle.start(db, owner_id=1, delivery_id=delivery.id)
    stop_id = _stop_ids(delivery)[0]

    delivery_lifecycle.complete_stop(db, owner_id=1, delivery_id=delivery.id, destination_id=stop_id)
    retry = delivery_lifecycle.complete_stop(db, owner_id=1, delivery_id=delivery.id, destination_id=stop_id)

    assert retry.all_completed is True
    assert retry.delivery.status == DeliveryStatus.completed


def test_completed_delivery_is_terminal(db):
    delivery = _create(db, count=1, order=[0])
    delivery_lifecycle.start(db, owner_id=1, delivery_id=delivery.id)
    delivery_lifecycle.complete_stop(db, owner_id=1, delivery_id=delivery.id, destination_id=_stop_ids(delivery)[0])

    with pytest.raises(InvalidState):
        delivery_lifecycle.start(db, owner_id=1, delivery_id=delivery.id)
    with pytest.raises(InvalidState):
        delivery_lifecycle.cancel(db, owner_id=1, delivery_id=delivery.id)
    with pytest.raises(InvalidState):
        delivery_lifecycle.complete_stop(db, owner_id=1, delivery_id=delivery.id, destination_id=999)


def test_complete_stop_of_another_delivery_is_not_found(db):
    first = _create(db)
    second = _create(db)
    delivery_lifecycle.start(db, owner_id=1, delivery_id=first.id)
    foreign_stop = _stop_ids(second)[0]

    with pytest.raises(NotFound):
        delivery_lifecycle.complete_stop(db, owner_id=1, delivery_id=first.id, destination_id=foreign_stop)

    db.expire_all()
    assert not db.get(Destination, foreign_stop).completed


def test_cancel_removes_destinations_and_savings(db):
    delivery = _create(db)
    other = _create(db)

    cancelled = delivery_lifecycle.cancel(db, owner_id=1, delivery_id=delivery.id)

    assert cancelled.status == DeliveryStatus.cancelled
    assert cancelled.started_at is not None
    assert cancelled.completed_at is None
    assert cancelled.destinations == []
    assert cancelled.savings_record is None
    assert count_rows(db) == {"delivery": 2, "destination": 3, "savings_record": 1}
    assert db.execute(
        select(SavingsRecord).where(SavingsRecord.delivery_id == other.id)
    ).scalar_one_or_none() is not None


def test_cancel_only_from_pending(db):
    delivery = _create(db)
    delivery_lifecycle.start(db, owner_id=1, delivery_id=delivery.id)

    with pytest.raises(InvalidState):
        delivery_lifecycle.cancel(db, owner_id=1, delivery_id=delivery.id)

    pending = _create(db)
    delivery_lifecycle.cancel(db, owner_id=1, delivery_id=pending.id)
    with pytest.raises(InvalidState):
        delivery_lifecycle.cancel(db, owner_id=1, delivery_id=pending.id)
    with pytest.raises(InvalidState):
        delivery_lifecycle.start(db, owner_id=1, delivery_id=pending.id)


def test_record_fuel_price_backfills_cost(db):
    delivery = _create(db)

    record = delivery_lifecycle.record_fuel_price(db, owner_id=1, delivery_id=delivery.id, fuel_price_per_liter=2.5)

    assert record.fuel_price_per_liter == 2.5
    assert record.cost_saved == pytest.approx(0.06 * 2.5)

    with pytest.raises(NotFound):
        delivery_lifecycle.record_fuel_price(db, owner_id=2, delivery_id=delivery.id, fuel_price_per_liter=2.5)
    with pytest.raises(InvalidInput):
        delivery_lifecycle.record_fuel_price(db, owner_id=1, delivery_id=delivery.id, fuel_price_per_liter=-1)


def test_list_deliveries_is_scoped_and_filtered(db):
    first = _create(db, owner_id=1)
    second = _create(db, owner_id=1)
    _create(db, owner_id=2)
    delivery_lifecycle.start(db, owner_id=1, delivery_id=first.id)

    all_mine = delivery_lifecycle.list_deliveries(db, owner_id=1)
    pending = delivery_lifecycle.list_deliveries(db, owner_id=1, status=DeliveryStatus.pending)

    assert {d.id for d in all_mine} == {first.id, second.id}
    assert [d.id for d in pending] == [second.id]
