"""Genetic route optimizer."""

from .genetic import RouteOptimizer
from .models import (
    CancellationToken,
    InsufficientWaypointsError,
    InvalidConfigurationError,
    InvalidWaypointError,
    OptimizationResult,
    OptimizerOptions,
)

__all__ = [
    "RouteOptimizer",
    "CancellationToken",
    "OptimizerOptions",
    "OptimizationResult",
    "InsufficientWaypointsError",
    "InvalidConfigurationError",
    "InvalidWaypointError",
]
