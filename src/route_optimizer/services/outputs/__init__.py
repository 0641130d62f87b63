"""Result serializers."""

from .route_formatter import (
    result_to_csv,
    result_to_json,
    result_to_route_export,
    result_to_text,
    route_legs,
)

__all__ = [
    "route_legs",
    "result_to_json",
    "result_to_route_export",
    "result_to_csv",
    "result_to_text",
]
