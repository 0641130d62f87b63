"""Constrained genetic operators.

Every operator works on the regular zone only; the priority zone is rebuilt
from the layout each time a route is constructed.
"""

from __future__ import annotations

import random
from operator import attrgetter
from typing import Callable, Optional, Sequence

from .fitness import DistanceMatrix, fitness, order_length
from .models import Individual
from .route import CandidateRoute, RouteLayout

Evaluator = Callable[[CandidateRoute], Individual]

# Minimum tour shortening (km) for a 2-opt move to count as an improvement.
# Keeps float noise on equal-length reversals from cycling forever.
IMPROVEMENT_EPSILON_KM = 1e-9


def create_valid_route(layout: RouteLayout, rng: random.Random) -> CandidateRoute:
    """Priority zone in rank order followed by a random shuffle of the regular waypoints."""
    regular = list(layout.regular)
    rng.shuffle(regular)
    return layout.make(regular)


def tournament_select(
    population: Sequence[Individual],
    rng: random.Random,
    tournament_size: int = 5,
) -> Individual:
    contenders = [population[rng.randrange(len(population))] for _ in range(tournament_size)]
    # max() keeps the first of equally fit contenders
    return max(contenders, key=attrgetter("fitness"))


def order_crossover(
    parent1: Individual,
    parent2: Individual,
    rng: random.Random,
    crossover_rate: float,
    evaluate: Evaluator,
) -> Individual:
    """Order crossover (OX) restricted to the parents' regular zones."""
    if rng.random() >= crossover_rate:
        return parent1 if rng.random() < 0.5 else parent2

    layout = parent1.route.layout
    regular1 = parent1.route.regular_zone
    regular2 = parent2.route.regular_zone
    if not regular1:
        return evaluate(layout.make(()))

    size = len(regular1)
    start, end = sorted((rng.randrange(size), rng.randrange(size)))

    child: list[Optional[int]] = [None] * size
    child[start : end + 1] = regular1[start : end + 1]
    placed = set(regular1[start : end + 1])

    position = 0
    for index in regular2:
        if index in placed:
            continue
        while child[position] is not None:
            position += 1
        child[position] = index

    return evaluate(layout.make(child))


def swap_mutation(
    individual: Individual,
    rng: random.Random,
    mutation_rate: float,
    evaluate: Evaluator,
) -> Individual:
    if rng.random() >= mutation_rate:
        return individual

    route = individual.route
    regular_count = route.layout.regular_count
    if regular_count == 0:
        return individual

    first = route.priority_count + rng.randrange(regular_count)
    second = route.priority_count + rng.randrange(regular_count)
    if first == second:
        return individual
    return evaluate(route.swap(first, second))


def two_opt(individual: Individual, matrix: DistanceMatrix) -> Individual:
    """Reverse regular-zone segments until no reversal shortens the closed tour.

    Candidate lengths are derived from the two edges a reversal replaces, so
    each check is constant time; the full length is recomputed after every
    accepted move.
    """
    route = individual.route
    order = list(route.order)
    n = len(order)
    best_length = order_length(order, matrix)
    best_fitness = individual.fitness
    changed = False

    improved = True
    while improved:
        improved = False
        for i in range(route.priority_count, n - 1):
            for j in range(i + 2, n):
                if i == 0 and j == n - 1:
                    # reversing the whole circuit yields the same tour
                    continue
                before, first = order[i - 1], order[i]
                last, after = order[j], order[(j + 1) % n]
                delta = (
                    matrix[before][last]
                    + matrix[first][after]
                    - matrix[before][first]
                    - matrix[last][after]
                )
                if delta > -IMPROVEMENT_EPSILON_KM:
                    continue
                if fitness(best_length + delta) > best_fitness:
                    order[i : j + 1] = order[i : j + 1][::-1]
                    best_length = order_length(order, matrix)
                    best_fitness = fitness(best_length)
                    changed = True
                    improved = True

    if not changed:
        return individual
    return Individual(route=CandidateRoute(layout=route.layout, order=tuple(order)), fitness=best_fitness)
