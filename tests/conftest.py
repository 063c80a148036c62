import os

# Configure the app for an isolated in-memory database before it is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["DEBUG"] = "false"
os.environ["ENVIRONMENT"] = "test"
os.environ["GRAPHHOPPER_API_KEY"] = ""
os.environ["GEOAPIFY_API_KEY"] = ""
os.environ["ADDRESS_ENCRYPTION_KEY"] = "MDAwMDAwMDAwMDAwMDAwMDAwMDAwMDAwMDAwMDAwMDA="

import pytest
from fastapi.testclient import TestClient

from app.core.security import create_access_token
from app.database import Base, SessionLocal, engine
from app.models.delivery import Delivery, Destination
from app.models.savings_record import SavingsRecord
from app.services.optimization_engine.distance_matrix import DistanceMatrix
from app.services.route_optimization import route_optimization_service


class StaticProvider:
    """Distance provider returning a fixed matrix."""

    def __init__(self, matrix: DistanceMatrix):
        self.matrix = matrix
        self.calls = []

    def get_matrix(self, points, vehicle_type="car", timeout=None):
        self.calls.append(list(points))
        return self.matrix


def matrix_from_distances(distances):
    """Matrix where every leg takes one second per 10 meters."""
    durations = [[None if d is None else d / 10 for d in row] for row in distances]
    return DistanceMatrix.from_arrays(distances, durations)


@pytest.fixture(autouse=True)
def reset_schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def scenario_matrix() -> DistanceMatrix:
    # Origin O, then D1, D2, D3
    return matrix_from_distances([
        [0, 3, 1, 2],
        [3, 0, 2, 1],
        [1, 2, 0, 1],
        [2, 1, 1, 0],
    ])


@pytest.fixture
def static_provider(monkeypatch, scenario_matrix) -> StaticProvider:
    provider = StaticProvider(scenario_matrix)
    monkeypatch.setattr(route_optimization_service, "provider_factory", lambda: provider)
    return provider


@pytest.fixture
def client():
    from main import app

    with TestClient(app) as test_client:
        yield test_client


def auth_headers(owner_id: int = 1) -> dict:
    token = create_access_token({"id": owner_id, "email": f"driver{owner_id}@example.com"})
    return {"Authorization": f"Bearer {token}"}


def count_rows(session) -> dict:
    return {
        "delivery": session.query(Delivery).count(),
        "destination": session.query(Destination).count(),
        "savings_record": session.query(SavingsRecord).count(),
    }
