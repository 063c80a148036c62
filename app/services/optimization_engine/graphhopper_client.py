"""
GraphHopper API client for distance and duration matrix calculation.

Handles communication with GraphHopper Matrix API.
"""

import httpx
from typing import List, Optional, Sequence
from app.core.config import settings
from app.core.errors import ProviderUnavailable
from app.core.logging_config import logger
from app.services.optimization_engine.distance_matrix import Coordinate, DistanceMatrix


class GraphHopperClient:
    """Client for GraphHopper API."""

    BASE_URL = "https://graphhopper.com/api/1"

    # Map internal vehicle types to GraphHopper profiles
    PROFILE_MAP = {
        "car": "car",
        "van": "car",  # GraphHopper free tier has limited profiles
        "truck": "truck",
        "bike": "bike",
        "scooter": "scooter",
        "foot": "foot"
    }

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None
    ):
        """
        Initialize GraphHopper client.

        Args:
            api_key: GraphHopper API key (defaults to env var)
            timeout: Request timeout in seconds (defaults to ROUTING_TIMEOUT_SECONDS)
            transport: Optional httpx transport, used to stub the API in tests
        """
        self.api_key = api_key or settings.GRAPHHOPPER_API_KEY
        self.timeout = timeout if timeout is not None else settings.ROUTING_TIMEOUT_SECONDS
        self.transport = transport
        if not self.api_key:
            logger.warning("GRAPHHOPPER_API_KEY not set. Optimization will fail.")

    def get_matrix(
        self,
        points: Sequence[Coordinate],
        vehicle_type: str = "car",
        timeout: Optional[float] = None
    ) -> DistanceMatrix:
        """
        Get distance and duration matrix for a set of points.

        Args:
            points: Origin first, then destinations
            vehicle_type: Internal vehicle type
            timeout: Per-call timeout in seconds, overrides the client default when not None.
                httpx applies it to each phase (connect, read, write, pool) separately,
                so it bounds every phase rather than the whole exchange. 0 is passed
                through and fails any phase that would block.

        Returns:
            DistanceMatrix with None for unreachable pairs

        Raises:
            ProviderUnavailable: API key missing, network failure, timeout or non-OK response
        """
        if not self.api_key:
            raise ProviderUnavailable("GraphHopper API key is not configured")

        profile = self.PROFILE_MAP.get(vehicle_type, "car")

        logger.info(
            f"Requesting matrix from GraphHopper: {len(points)} locations, "
            f"profile={profile}"
        )

        # GraphHopper expects [lon, lat] arrays
        payload = {
            "points": [list(point.as_lon_lat()) for point in points],
            "profile": profile,
            "out_arrays": ["distances", "times"],
            "fail_fast": False
        }

        if timeout is None:
            timeout = self.timeout

        try:
            with httpx.Client(transport=self.transport, timeout=timeout) as client:
                response = client.post(
                    f"{self.BASE_URL}/matrix",
                    params={"key": self.api_key},
                    json=payload
                )
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException:
            logger.error("GraphHopper matrix request timed out")
            raise ProviderUnavailable("Distance provider timed out")
        except httpx.HTTPStatusError as e:
            logger.error(f"GraphHopper API error {e.response.status_code}: {e.response.text}")
            raise ProviderUnavailable(f"GraphHopper API failed: {e.response.status_code}")
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Failed to get matrix from GraphHopper: {str(e)}")
            raise ProviderUnavailable("Distance provider is unreachable")

        # 'distances' in meters and 'times' in seconds, null when unreachable
        distances: List[List[Optional[float]]] = data.get("distances") or []
        durations: List[List[Optional[float]]] = data.get("times") or []

        if len(distances) != len(points) or len(durations) != len(points):
            logger.error(f"GraphHopper returned an incomplete matrix: {data.get('message')}")
            raise ProviderUnavailable("Distance provider returned an incomplete matrix")

        matrix = DistanceMatrix.from_arrays(distances, durations)
        logger.info(f"Matrix computed: {matrix.size}x{matrix.size}, unreachable={matrix.unreachable_pairs()}")
        return matrix
