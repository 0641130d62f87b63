"""Domain models."""

from .domain import Waypoint

__all__ = ["Waypoint"]
