"""Candidate route value types.

A route is stored as indices into the optimizer's waypoint snapshot. The
``RouteLayout`` fixes which indices form the priority zone and in which
order; every ``CandidateRoute`` is checked against it on construction, so
operators cannot produce a route that drops, duplicates or reorders a
priority waypoint.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Sequence

from ...models.domain import Waypoint


@dataclass(frozen=True, slots=True)
class RouteLayout:
    priority: tuple[int, ...]
    regular: tuple[int, ...]

    @classmethod
    def from_waypoints(cls, waypoints: Sequence[Waypoint]) -> "RouteLayout":
        # sorted() is stable, so equal ranks keep their input order
        priority = sorted(
            (index for index, point in enumerate(waypoints) if point.is_priority),
            key=lambda index: waypoints[index].priority,
        )
        regular = [index for index, point in enumerate(waypoints) if not point.is_priority]
        return cls(priority=tuple(priority), regular=tuple(regular))

    @property
    def priority_count(self) -> int:
        return len(self.priority)

    @property
    def regular_count(self) -> int:
        return len(self.regular)

    @property
    def size(self) -> int:
        return len(self.priority) + len(self.regular)

    def make(self, regular_order: Sequence[int]) -> "CandidateRoute":
        """Build a route from a permutation of the regular indices."""
        return CandidateRoute(layout=self, order=self.priority + tuple(regular_order))


@dataclass(frozen=True, slots=True)
class CandidateRoute:
    layout: RouteLayout
    order: tuple[int, ...]

    def __post_init__(self) -> None:
        layout = self.layout
        if len(self.order) != layout.size:
            raise ValueError(f"Route has {len(self.order)} stops, expected {layout.size}.")
        if self.order[: layout.priority_count] != layout.priority:
            raise ValueError("Priority zone must hold the priority waypoints in ascending rank order.")
        regular_zone = self.order[layout.priority_count :]
        if len(set(regular_zone)) != len(regular_zone) or set(regular_zone) != set(layout.regular):
            raise ValueError("Regular zone must be a permutation of the regular waypoints.")

    def __len__(self) -> int:
        return len(self.order)

    def __iter__(self) -> Iterator[int]:
        return iter(self.order)

    def __getitem__(self, position: int) -> int:
        return self.order[position]

    @property
    def priority_count(self) -> int:
        return self.layout.priority_count

    @property
    def regular_zone(self) -> tuple[int, ...]:
        return self.order[self.layout.priority_count :]

    def _check_regular_position(self, position: int) -> None:
        if not self.layout.priority_count <= position < len(self.order):
            raise ValueError(
                f"Position {position} is outside the regular zone "
                f"[{self.layout.priority_count}, {len(self.order) - 1}]."
            )

    def swap(self, first: int, second: int) -> "CandidateRoute":
        """Return a copy with the stops at two regular-zone positions exchanged."""
        self._check_regular_position(first)
        self._check_regular_position(second)
        order = list(self.order)
        order[first], order[second] = order[second], order[first]
        return CandidateRoute(layout=self.layout, order=tuple(order))

    def reverse(self, start: int, end: int) -> "CandidateRoute":
        """Return a copy with the inclusive segment ``[start, end]`` reversed."""
        self._check_regular_position(start)
        self._check_regular_position(end)
        if start > end:
            raise ValueError(f"Segment start {start} is after end {end}.")
        order = self.order[:start] + self.order[start : end + 1][::-1] + self.order[end + 1 :]
        return CandidateRoute(layout=self.layout, order=order)

    def waypoints(self, snapshot: Sequence[Waypoint]) -> tuple[Waypoint, ...]:
        return tuple(snapshot[index] for index in self.order)
