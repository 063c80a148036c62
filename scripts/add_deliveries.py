"""
python -m scripts.add_deliveries
"""

import sys

sys.path.insert(0, ".")

from dotenv import load_dotenv
load_dotenv()

from app.core.security import create_access_token
from app.database import SessionLocal
from app.services.delivery_lifecycle import DestinationInput, delivery_lifecycle
from app.services.optimization_engine.distance_matrix import Coordinate
from app.services.optimization_engine.route_optimizer import OptimizationResult
from app.services.optimization_engine.savings import SavingsEstimator


def add_deliveries():
    """Add a sample pending delivery and print a token for its owner."""
    owner_id = 1
    origin = Coordinate(lat=23.0225, lng=72.5714)

    stops_data = [
        ("Ambawadi, Ahmedabad, Gujarat, India", 23.0223701, 72.54304379999999),
        ("old campus, I I M, Vastrapur, Ahmedabad, Gujarat 380015, India", 23.0325484, 72.5372217),
        ("Naranpura, Ahmedabad, Gujarat, India", 23.0521705, 72.54970689999999),
        ("Sector 4/A, Sector 4, Gandhinagar, Gujarat 382006, India", 23.2069137, 72.6239764),
    ]
    destinations = [
        DestinationInput(address=address, location=Coordinate(lat=lat, lng=lng))
        for address, lat, lng in stops_data
    ]

    # Precomputed route so the script works without a routing API key
    result = OptimizationResult(
        order=[0, 1, 2, 3],
        total_distance_meters=31500.0,
        total_duration_seconds=3600.0,
    )
    savings = SavingsEstimator().estimate(result.total_distance_meters)

    db = SessionLocal()

    try:
        delivery = delivery_lifecycle.create(
            db,
            owner_id=owner_id,
            origin=origin,
            destinations=destinations,
            optimization_result=result,
            savings=savings
        )
        for stop in delivery.destinations:
            print(f"Added stop {stop.visit_order}: destination_id={stop.id}")
        print(f"\nSuccessfully added delivery {delivery.id} for owner {owner_id}")
        print(f"Token: {create_access_token({'id': owner_id})}")

    except Exception as e:
        print(f"Error: {e}")
        raise
    finally:
        db.close()

if __name__ == "__main__":
    add_deliveries()
