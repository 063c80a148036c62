"""
Route optimization package.

This package provides modular components for:
- Distance/duration matrix retrieval via GraphHopper or Geoapify
- Greedy nearest-neighbour visiting order construction
- Fuel and cost savings estimation against a baseline distance
"""

from .distance_matrix import Coordinate, DistanceMatrix, Leg
from .graphhopper_client import GraphHopperClient
from .geoapify_client import GeoapifyClient
from .route_optimizer import OptimizationGoal, OptimizationResult, RouteOptimizer
from .savings import SavingsEstimate, SavingsEstimator, SavingsPolicy

__all__ = [
    "Coordinate",
    "DistanceMatrix",
    "Leg",
    "GraphHopperClient",
    "GeoapifyClient",
    "OptimizationGoal",
    "OptimizationResult",
    "RouteOptimizer",
    "SavingsEstimate",
    "SavingsEstimator",
    "SavingsPolicy",
]
