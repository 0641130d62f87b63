"""Optimizer domain models."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from ...config import settings
from ...models.domain import Waypoint
from .route import CandidateRoute

ProgressCallback = Callable[[float], None]


class InsufficientWaypointsError(ValueError):
    """Raised when fewer than two waypoints are supplied."""


class InvalidConfigurationError(ValueError):
    """Raised when optimizer options fall outside their accepted ranges."""


class InvalidWaypointError(ValueError):
    """Raised for duplicate identifiers or non-positive priority ranks."""


def _check_rate(name: str, value: float, *, upper_inclusive: bool = True) -> None:
    upper_ok = value <= 1.0 if upper_inclusive else value < 1.0
    if not (0.0 <= value and upper_ok):
        bracket = "]" if upper_inclusive else ")"
        raise InvalidConfigurationError(f"{name} must be within [0, 1{bracket}, got {value}.")


@dataclass(slots=True)
class OptimizerOptions:
    population_size: int = settings.default_population_size
    generations: int = settings.default_generations
    mutation_rate: float = settings.default_mutation_rate
    elitism_rate: float = settings.default_elitism_rate
    crossover_rate: float = settings.default_crossover_rate
    tournament_size: int = settings.tournament_size
    local_search_rate: float = settings.local_search_rate
    progress_interval: int = settings.progress_interval
    seed: Optional[int] = None

    def __post_init__(self) -> None:
        for name in ("population_size", "generations", "tournament_size", "progress_interval"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise InvalidConfigurationError(f"{name} must be a positive integer, got {value!r}.")
        _check_rate("mutation_rate", self.mutation_rate)
        _check_rate("crossover_rate", self.crossover_rate)
        _check_rate("local_search_rate", self.local_search_rate)
        _check_rate("elitism_rate", self.elitism_rate, upper_inclusive=False)

    @property
    def elite_count(self) -> int:
        return int(self.population_size * self.elitism_rate)


@dataclass(frozen=True, slots=True)
class Individual:
    route: CandidateRoute
    fitness: float


@dataclass(frozen=True, slots=True)
class GenerationState:
    """Snapshot handed out after each completed generation."""

    generation: int
    population: tuple[Individual, ...]
    best: Individual


@dataclass(slots=True)
class OptimizationResult:
    route: tuple[Waypoint, ...]
    total_distance_km: float
    generation: int
    fitness: float
    cancelled: bool = False
    best_fitness_history: List[float] = field(default_factory=list)
    elapsed_seconds: float = 0.0


class CancellationToken:
    """Thread-safe flag used to stop a running optimization early."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()
