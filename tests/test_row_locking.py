import os
import threading

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import sessionmaker

from app.crud.delivery import delivery as delivery_crud
from app.database import Base
from app.models.delivery import DeliveryStatus
from app.services.delivery_lifecycle import DestinationInput, delivery_lifecycle
from app.services.optimization_engine.distance_matrix import Coordinate
from app.services.optimization_engine.route_optimizer import OptimizationResult
from app.services.optimization_engine.savings import SavingsEstimator, SavingsPolicy

POSTGRES_TEST_URL = os.getenv("POSTGRES_TEST_URL")


def _create(db, count: int = 2):
    destinations = [
        DestinationInput(address=f"Calle {i + 1}", location=Coordinate(lat=4.61 + 0.01 * i, lng=-74.07))
        for i in range(count)
    ]
    result = OptimizationResult(
        order=list(range(count)),
        total_distance_meters=2000.0,
        total_duration_seconds=400.0,
    )
    return delivery_lifecycle.create(
        db,
        owner_id=1,
        origin=Coordinate(lat=4.60, lng=-74.08),
        destinations=destinations,
        optimization_result=result,
        savings=SavingsEstimator().estimate(2000.0, SavingsPolicy()),
    )


def _postgres_sql(statement) -> str:
    return str(statement.compile(dialect=postgresql.dialect()))


def test_locking_select_renders_for_update_on_postgres():
    sql = _postgres_sql(delivery_crud.locking_select(id=7, owner_id=3))

    assert sql.rstrip().endswith("FOR UPDATE")
    assert "delivery.owner_id" in sql


@pytest.mark.parametrize("operation", ["start", "cancel", "complete_stop", "record_fuel_price"])
def test_lifecycle_operations_lock_the_delivery_row(db, operation):
    delivery = _create(db)
    stop_id = delivery.destinations[0].id
    if operation == "complete_stop":
        delivery_lifecycle.start(db, owner_id=1, delivery_id=delivery.id)

    executed = []

    def capture(orm_execute_state):
        if orm_execute_state.is_select and not orm_execute_state.is_relationship_load:
            executed.append(_postgres_sql(orm_execute_state.statement))

    event.listen(db, "do_orm_execute", capture)
    try:
        if operation == "start":
            delivery_lifecycle.start(db, owner_id=1, delivery_id=delivery.id)
        elif operation == "cancel":
            delivery_lifecycle.cancel(db, owner_id=1, delivery_id=delivery.id)
        elif operation == "complete_stop":
            delivery_lifecycle.complete_stop(db, owner_id=1, delivery_id=delivery.id, destination_id=stop_id)
        else:
            delivery_lifecycle.record_fuel_price(db, owner_id=1, delivery_id=delivery.id, fuel_price_per_liter=2.0)
    finally:
        event.remove(db, "do_orm_execute", capture)

    locking = [sql for sql in executed if "FOR UPDATE" in sql]
    assert locking, executed
    assert "FROM delivery" in locking[0]


@pytest.fixture
def postgres_sessions():
    if not POSTGRES_TEST_URL:
        pytest.skip("POSTGRES_TEST_URL is not set")
    pg_engine = create_engine(POSTGRES_TEST_URL, future=True)
    Base.metadata.drop_all(bind=pg_engine)
    Base.metadata.create_all(bind=pg_engine)
    try:
        yield sessionmaker(bind=pg_engine, autocommit=False, autoflush=False, future=True)
    finally:
        Base.metadata.drop_all(bind=pg_engine)
        pg_engine.dispose()


def test_concurrent_last_stops_complete_the_delivery_once(postgres_sessions):
    setup = postgres_sessions()
    try:
        delivery = _create(setup)
        delivery_lifecycle.start(setup, owner_id=1, delivery_id=delivery.id)
        delivery_id = delivery.id
        stop_ids = [d.id for d in delivery.destinations]
    finally:
        setup.close()

    barrier = threading.Barrier(len(stop_ids))
    outcomes = {}
    errors = []

    def complete(stop_id):
        session = postgres_sessions()
        try:
            barrier.wait()
            outcome = delivery_lifecycle.complete_stop(
                session, owner_id=1, delivery_id=delivery_id, destination_id=stop_id
            )
            outcomes[stop_id] = outcome.all_completed
        except Exception as exc:
            errors.append(exc)
        finally:
            session.close()

    threads = [threading.Thread(target=complete, args=(stop_id,)) for stop_id in stop_ids]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    assert errors == []
    # Exactly one of the racing calls observes the other's commit
    assert sorted(outcomes.values()) == [False, True]

    check = postgres_sessions()
    try:
        stored = delivery_crud.get_with_details(check, id=delivery_id, owner_id=1)
        assert stored.status == DeliveryStatus.completed
        assert stored.completed_at is not None
        assert all(d.completed for d in stored.destinations)
    finally:
        check.close()
