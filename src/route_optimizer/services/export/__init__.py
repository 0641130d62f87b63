"""Export services."""

from .geojson import linestring_to_wkt, route_to_geojson, save_geojson

__all__ = [
    "linestring_to_wkt",
    "route_to_geojson",
    "save_geojson",
]
