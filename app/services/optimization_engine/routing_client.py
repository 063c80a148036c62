"""
Routing client abstraction.

Provides a unified interface for different distance matrix providers (Geoapify, GraphHopper).
"""

from typing import Optional, Protocol, Sequence
from app.core.config import settings
from app.core.logging_config import logger
from app.services.optimization_engine.distance_matrix import Coordinate, DistanceMatrix
from app.services.optimization_engine.geoapify_client import GeoapifyClient
from app.services.optimization_engine.graphhopper_client import GraphHopperClient


class DistanceProvider(Protocol):
    """Protocol for distance matrix providers."""

    def get_matrix(
        self,
        points: Sequence[Coordinate],
        vehicle_type: str = "car",
        timeout: Optional[float] = None
    ) -> DistanceMatrix:
        """Get pairwise distance/duration matrix; points[0] is the origin."""
        ...


def get_distance_provider() -> DistanceProvider:
    """
    Factory function to get the configured distance provider.

    Returns:
        Instance of DistanceProvider implementation
    """
    provider = settings.ROUTING_PROVIDER.lower()

    if provider == "geoapify":
        return GeoapifyClient()
    elif provider == "graphhopper":
        return GraphHopperClient()
    else:
        logger.warning(f"Unknown routing provider '{provider}', defaulting to GraphHopper")
        return GraphHopperClient()
