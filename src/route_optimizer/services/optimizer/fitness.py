"""Distance and fitness evaluation for candidate routes.

Tours are scored as closed circuits: the leg from the last stop back to the
first counts toward the length, even though results are presented as an open
path.
"""

from __future__ import annotations

from typing import Sequence

from ...models.domain import Waypoint
from ..geospatial import haversine_km

DistanceMatrix = list[list[float]]


def distance(a: Waypoint, b: Waypoint) -> float:
    """Great-circle distance between two waypoints in kilometers."""
    return haversine_km(a.latitude, a.longitude, b.latitude, b.longitude)


def tour_length(route: Sequence[Waypoint]) -> float:
    """Closed-circuit length of a sequence of waypoints in kilometers."""
    if len(route) < 2:
        return 0.0
    total = 0.0
    for current, following in zip(route, route[1:]):
        total += distance(current, following)
    total += distance(route[-1], route[0])
    return total


def fitness(length_km: float) -> float:
    return 1.0 / (1.0 + length_km)


def build_distance_matrix(waypoints: Sequence[Waypoint]) -> DistanceMatrix:
    n = len(waypoints)
    matrix: DistanceMatrix = [[0.0] * n for _ in range(n)]
    for i in range(n):
        for j in range(i + 1, n):
            value = distance(waypoints[i], waypoints[j])
            matrix[i][j] = value
            matrix[j][i] = value
    return matrix


def order_length(order: Sequence[int], matrix: DistanceMatrix) -> float:
    """Closed-circuit length of a route given as indices into ``matrix``."""
    if len(order) < 2:
        return 0.0
    total = 0.0
    for current, following in zip(order, order[1:]):
        total += matrix[current][following]
    total += matrix[order[-1]][order[0]]
    return total
