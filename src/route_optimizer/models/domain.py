"""Domain models for waypoint records."""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Waypoint:
    """A geographic stop, optionally pinned to the front of the route by rank."""

    waypoint_id: str
    latitude: float
    longitude: float
    name: str
    is_priority: bool = False
    priority: int = 0
