"""Serializers for optimization outputs."""

from __future__ import annotations

import csv
import io

from ..optimizer.fitness import distance
from ..optimizer.models import OptimizationResult


def route_legs(result: OptimizationResult) -> tuple[list[float], float]:
    """Distance into each stop (0 for the first) and the closing leg back to the start."""
    route = result.route
    legs = [0.0] + [distance(previous, current) for previous, current in zip(route, route[1:])]
    return_leg = distance(route[-1], route[0]) if len(route) > 1 else 0.0
    return legs, return_leg


def result_to_json(result: OptimizationResult, metadata: dict | None = None) -> dict:
    legs, return_leg = route_legs(result)
    return {
        "metadata": metadata or {},
        "total_distance_km": result.total_distance_km,
        "return_leg_km": return_leg,
        "generation": result.generation,
        "fitness": result.fitness,
        "cancelled": result.cancelled,
        "elapsed_seconds": result.elapsed_seconds,
        "best_fitness_history": list(result.best_fitness_history),
        "stops": [
            {
                "sequence": sequence,
                "waypoint_id": point.waypoint_id,
                "name": point.name,
                "latitude": point.latitude,
                "longitude": point.longitude,
                "is_priority": point.is_priority,
                "priority": point.priority,
                "distance_from_prev_km": leg,
            }
            for sequence, (point, leg) in enumerate(zip(result.route, legs), start=1)
        ],
    }


def result_to_route_export(result: OptimizationResult) -> dict:
    """Compact download format: total distance plus the ordered stops."""
    return {
        "total_distance_km": result.total_distance_km,
        "route": [
            {
                "order": order,
                "name": point.name,
                "latitude": point.latitude,
                "longitude": point.longitude,
                "priority": point.priority,
                "is_priority": point.is_priority,
            }
            for order, point in enumerate(result.route, start=1)
        ],
    }


def result_to_csv(result: OptimizationResult) -> str:
    buffer = io.StringIO()
    fieldnames = [
        "sequence",
        "waypoint_id",
        "name",
        "latitude",
        "longitude",
        "is_priority",
        "priority",
        "distance_from_prev_km",
        "total_distance_km",
    ]
    writer = csv.DictWriter(buffer, fieldnames=fieldnames)
    writer.writeheader()
    legs, _ = route_legs(result)
    for sequence, (point, leg) in enumerate(zip(result.route, legs), start=1):
        writer.writerow(
            {
                "sequence": sequence,
                "waypoint_id": point.waypoint_id,
                "name": point.name,
                "latitude": point.latitude,
                "longitude": point.longitude,
                "is_priority": point.is_priority,
                "priority": point.priority,
                "distance_from_prev_km": leg,
                "total_distance_km": result.total_distance_km,
            }
        )
    return buffer.getvalue()


def result_to_text(result: OptimizationResult) -> str:
    return "\n".join(
        f"{index}. {point.name} ({point.latitude:.4f}, {point.longitude:.4f})"
        for index, point in enumerate(result.route, start=1)
    )
