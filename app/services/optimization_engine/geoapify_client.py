"""
Geoapify API client for distance/duration matrix calculation.
"""

import httpx
from typing import List, Optional, Sequence
from app.core.config import settings
from app.core.errors import ProviderUnavailable
from app.core.logging_config import logger
from app.services.optimization_engine.distance_matrix import Coordinate, DistanceMatrix


class GeoapifyClient:
    """Client for Geoapify API."""

    BASE_URL = "https://api.geoapify.com/v1"

    # Map internal vehicle types to Geoapify profiles
    PROFILE_MAP = {
        "car": "drive",
        "van": "drive",
        "truck": "truck",
        "bike": "bicycle",
        "scooter": "bicycle",
        "foot": "walk"
    }

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None
    ):
        """
        Initialize Geoapify client.

        Args:
            api_key: Geoapify API key (defaults to env var)
            timeout: Request timeout in seconds (defaults to ROUTING_TIMEOUT_SECONDS)
            transport: Optional httpx transport, used to stub the API in tests
        """
        self.api_key = api_key or settings.GEOAPIFY_API_KEY
        self.timeout = timeout if timeout is not None else settings.ROUTING_TIMEOUT_SECONDS
        self.transport = transport
        if not self.api_key:
            logger.warning("GEOAPIFY_API_KEY not set. Optimization will fail.")

    def get_matrix(
        self,
        points: Sequence[Coordinate],
        vehicle_type: str = "car",
        timeout: Optional[float] = None
    ) -> DistanceMatrix:
        """
        Get distance and duration matrix using Geoapify Route Matrix API.

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
            raise ProviderUnavailable("Geoapify API key is not configured")

        profile = self.PROFILE_MAP.get(vehicle_type, "drive")

        logger.info(
            f"Requesting matrix from Geoapify: {len(points)} locations, "
            f"profile={profile}"
        )

        # Geoapify expects dicts with 'location' key [lon, lat]
        formatted_locations = [{"location": list(point.as_lon_lat())} for point in points]
        payload = {
            "mode": profile,
            "sources": formatted_locations,
            "targets": formatted_locations
        }

        if timeout is None:
            timeout = self.timeout

        try:
            with httpx.Client(transport=self.transport, timeout=timeout) as client:
                response = client.post(
                    f"{self.BASE_URL}/routematrix",
                    params={"apiKey": self.api_key},
                    json=payload
                )
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException:
            logger.error("Geoapify matrix request timed out")
            raise ProviderUnavailable("Distance provider timed out")
        except httpx.HTTPStatusError as e:
            logger.error(f"Geoapify API error {e.response.status_code}: {e.response.text}")
            raise ProviderUnavailable(f"Geoapify API failed: {e.response.status_code}")
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Failed to get matrix from Geoapify: {str(e)}")
            raise ProviderUnavailable("Distance provider is unreachable")

        sources_to_targets = data.get("sources_to_targets") or []
        if len(sources_to_targets) != len(points):
            raise ProviderUnavailable("Distance provider returned an incomplete matrix")

        # Pairs missing from the response stay unreachable
        n = len(points)
        distances: List[List[Optional[float]]] = [[None] * n for _ in range(n)]
        durations: List[List[Optional[float]]] = [[None] * n for _ in range(n)]

        # sources_to_targets[source_index] is a list of entries with target_index
        for source_idx, targets in enumerate(sources_to_targets):
            for target_data in targets:
                target_idx = target_data.get("target_index")
                if target_idx is None or not 0 <= target_idx < n:
                    continue
                distances[source_idx][target_idx] = target_data.get("distance")
                durations[source_idx][target_idx] = target_data.get("time")

        matrix = DistanceMatrix.from_arrays(distances, durations)
        logger.info(f"Matrix computed: {matrix.size}x{matrix.size}, unreachable={matrix.unreachable_pairs()}")
        return matrix
