"""Genetic algorithm for priority-constrained route ordering."""

from __future__ import annotations

import asyncio
import logging
import random
import time
from operator import attrgetter
from typing import Iterator, Optional, Sequence

from ...models.domain import Waypoint
from .fitness import build_distance_matrix, fitness, order_length, tour_length
from .models import (
    CancellationToken,
    GenerationState,
    Individual,
    InsufficientWaypointsError,
    InvalidWaypointError,
    OptimizationResult,
    OptimizerOptions,
    ProgressCallback,
)
from .operators import create_valid_route, order_crossover, swap_mutation, tournament_select, two_opt
from .route import CandidateRoute, RouteLayout

logger = logging.getLogger(__name__)

MIN_WAYPOINTS = 2


def _validate_waypoints(waypoints: Sequence[Waypoint]) -> None:
    seen: set[str] = set()
    for point in waypoints:
        if point.waypoint_id in seen:
            raise InvalidWaypointError(f"Duplicate waypoint id '{point.waypoint_id}'.")
        seen.add(point.waypoint_id)
        if point.is_priority and point.priority < 1:
            raise InvalidWaypointError(
                f"Priority waypoint '{point.waypoint_id}' needs a rank of at least 1, got {point.priority}."
            )


class RouteOptimizer:
    """Evolves visiting orders whose priority waypoints always come first.

    The waypoint sequence is snapshotted on construction. Each call to
    :meth:`optimize`, :meth:`optimize_async` or :meth:`evolve` is an
    independent run: population and best-so-far live inside the run, never on
    the instance.

    Args:
        waypoints: At least two waypoints with unique ids.
        options: GA parameters; defaults come from settings.
        rng: Random source shared by successive runs. When omitted each run
            gets ``random.Random(options.seed)``.
    """

    def __init__(
        self,
        waypoints: Sequence[Waypoint],
        options: OptimizerOptions | None = None,
        *,
        rng: random.Random | None = None,
    ) -> None:
        snapshot = tuple(waypoints)
        if len(snapshot) < MIN_WAYPOINTS:
            raise InsufficientWaypointsError(
                f"At least {MIN_WAYPOINTS} waypoints are required to optimize a route, got {len(snapshot)}."
            )
        _validate_waypoints(snapshot)

        self.waypoints = snapshot
        self.options = options or OptimizerOptions()
        self.layout = RouteLayout.from_waypoints(snapshot)
        self.matrix = build_distance_matrix(snapshot)
        self._rng = rng

    def _run_rng(self) -> random.Random:
        if self._rng is not None:
            return self._rng
        return random.Random(self.options.seed)

    def evaluate(self, route: CandidateRoute) -> Individual:
        return Individual(route=route, fitness=fitness(order_length(route.order, self.matrix)))

    def create_initial_population(self, rng: random.Random) -> list[Individual]:
        return [
            self.evaluate(create_valid_route(self.layout, rng))
            for _ in range(self.options.population_size)
        ]

    def _breed(self, population: Sequence[Individual], rng: random.Random) -> Individual:
        options = self.options
        parent1 = tournament_select(population, rng, options.tournament_size)
        parent2 = tournament_select(population, rng, options.tournament_size)
        child = order_crossover(parent1, parent2, rng, options.crossover_rate, self.evaluate)
        child = swap_mutation(child, rng, options.mutation_rate, self.evaluate)
        if rng.random() < options.local_search_rate:
            child = two_opt(child, self.matrix)
        return child

    def _next_generation(self, population: Sequence[Individual], rng: random.Random) -> list[Individual]:
        ranked = sorted(population, key=attrgetter("fitness"), reverse=True)
        next_population = ranked[: self.options.elite_count]
        while len(next_population) < self.options.population_size:
            next_population.append(self._breed(ranked, rng))
        return next_population

    def evolve(self, cancel_token: CancellationToken | None = None) -> Iterator[GenerationState]:
        """Yield the initial population (generation 0), then each completed generation.

        Cancellation is checked before every generation; a cancelled run
        simply stops yielding.
        """
        rng = self._run_rng()
        population = self.create_initial_population(rng)
        best = max(population, key=attrgetter("fitness"))
        yield GenerationState(generation=0, population=tuple(population), best=best)

        for generation in range(1, self.options.generations + 1):
            if cancel_token is not None and cancel_token.cancelled:
                logger.info(f"Optimization cancelled after {generation - 1} generation(s)")
                return
            population = self._next_generation(population, rng)
            current_best = max(population, key=attrgetter("fitness"))
            if current_best.fitness > best.fitness:
                best = current_best
            logger.debug(f"Generation {generation}: best fitness {best.fitness:.8f}")
            yield GenerationState(generation=generation, population=tuple(population), best=best)

    def _report(self, progress: Optional[ProgressCallback], generation: int) -> None:
        if progress is None:
            return
        value = generation / self.options.generations * 100.0
        try:
            progress(value)
        except Exception:
            logger.warning(f"Progress callback failed at generation {generation}; continuing", exc_info=True)

    def _log_start(self) -> None:
        logger.info(
            f"Optimizing {len(self.waypoints)} waypoints ({self.layout.priority_count} priority) "
            f"for {self.options.generations} generations, population {self.options.population_size}"
        )

    def _build_result(self, state: GenerationState, history: list[float], started: float) -> OptimizationResult:
        route = state.best.route.waypoints(self.waypoints)
        result = OptimizationResult(
            route=route,
            total_distance_km=tour_length(route),
            generation=state.generation,
            fitness=state.best.fitness,
            cancelled=state.generation < self.options.generations,
            best_fitness_history=history,
            elapsed_seconds=time.perf_counter() - started,
        )
        logger.info(
            f"Optimization {'cancelled' if result.cancelled else 'finished'} at generation {result.generation}: "
            f"{result.total_distance_km:.2f} km in {result.elapsed_seconds:.2f}s"
        )
        return result

    def optimize(
        self,
        progress: Optional[ProgressCallback] = None,
        cancel_token: CancellationToken | None = None,
    ) -> OptimizationResult:
        """Run the full optimization on the calling thread."""
        started = time.perf_counter()
        self._log_start()
        history: list[float] = []
        run = self.evolve(cancel_token)
        state = next(run)
        for state in run:
            history.append(state.best.fitness)
            self._report(progress, state.generation)
        return self._build_result(state, history, started)

    async def optimize_async(
        self,
        progress: Optional[ProgressCallback] = None,
        cancel_token: CancellationToken | None = None,
    ) -> OptimizationResult:
        """Run the optimization, yielding to the event loop every ``progress_interval`` generations."""
        started = time.perf_counter()
        self._log_start()
        history: list[float] = []
        run = self.evolve(cancel_token)
        state = next(run)
        for state in run:
            history.append(state.best.fitness)
            self._report(progress, state.generation)
            if state.generation % self.options.progress_interval == 0:
                await asyncio.sleep(0)
        return self._build_result(state, history, started)
