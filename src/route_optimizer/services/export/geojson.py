"""GeoJSON/WKT export utilities."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

from shapely.geometry import LineString, Point, mapping

from ..optimizer.models import OptimizationResult

ROUTE_COLOR = "#e0003e"
PRIORITY_COLOR = "#0000c1"
REGULAR_COLOR = "#38e000"


def linestring_to_wkt(coordinates: List[List[float]]) -> str:
    """Convert linestring coordinates to WKT format.

    Args:
        coordinates: List of [lat, lon] pairs

    Returns:
        WKT LINESTRING string
    """
    if not coordinates or len(coordinates) < 2:
        raise ValueError("LineString must have at least 2 coordinates")

    # WKT uses lon,lat order (x,y)
    coord_pairs = [f"{lon} {lat}" for lat, lon in coordinates]
    return f"LINESTRING({','.join(coord_pairs)})"


def route_to_geojson(result: OptimizationResult, *, close_circuit: bool = True) -> Dict[str, Any]:
    """Convert an optimization result to a GeoJSON FeatureCollection.

    The first feature is the route line (closed back to the start when
    ``close_circuit`` is set, matching how the tour is scored); one point
    feature per stop follows in visiting order.
    """
    coordinates = [(point.longitude, point.latitude) for point in result.route]
    if close_circuit and len(coordinates) > 1:
        coordinates.append(coordinates[0])

    features: List[Dict[str, Any]] = [
        {
            "type": "Feature",
            "geometry": mapping(LineString(coordinates)),
            "properties": {
                "kind": "route",
                "total_distance_km": result.total_distance_km,
                "generation": result.generation,
                "fitness": result.fitness,
                "wkt": linestring_to_wkt([[lat, lon] for lon, lat in coordinates]),
                "stroke": ROUTE_COLOR,
            },
        }
    ]
    for sequence, point in enumerate(result.route, start=1):
        features.append(
            {
                "type": "Feature",
                "geometry": mapping(Point(point.longitude, point.latitude)),
                "properties": {
                    "kind": "stop",
                    "sequence": sequence,
                    "waypoint_id": point.waypoint_id,
                    "name": point.name,
                    "is_priority": point.is_priority,
                    "priority": point.priority,
                    "marker-color": PRIORITY_COLOR if point.is_priority else REGULAR_COLOR,
                },
            }
        )
    return {"type": "FeatureCollection", "features": features}


def save_geojson(collection: Dict[str, Any], output_path: Path) -> None:
    """Save a FeatureCollection to disk.

    Args:
        collection: GeoJSON FeatureCollection
        output_path: Path to save JSON file
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("w", encoding="utf-8") as f:
        json.dump(collection, f, indent=2, ensure_ascii=False)
