import asyncio
import random

import pytest

from route_optimizer.models.domain import Waypoint
from route_optimizer.services.optimizer import (
    CancellationToken,
    InsufficientWaypointsError,
    InvalidConfigurationError,
    InvalidWaypointError,
    OptimizerOptions,
    RouteOptimizer,
)
from route_optimizer.services.optimizer.fitness import distance


def _waypoint(wid: str, lat: float, lon: float, rank: int | None = None) -> Waypoint:
    return Waypoint(
        waypoint_id=wid,
        latitude=lat,
        longitude=lon,
        name=wid,
        is_priority=rank is not None,
        priority=rank or 0,
    )


DHAKA = _waypoint("dhaka", 23.6850, 90.3563)
CHITTAGONG = _waypoint("chittagong", 22.3569, 91.7832)
SYLHET = _waypoint("sylhet", 24.8949, 91.8687)
RAJSHAHI = _waypoint("rajshahi", 24.3745, 88.6042)
KHULNA = _waypoint("khulna", 22.8456, 89.5403)
BARISAL = _waypoint("barisal", 22.7010, 90.3535)


def _mixed_points() -> list[Waypoint]:
    return [
        DHAKA,
        _waypoint("cox", 21.4272, 92.0058, rank=2),
        CHITTAGONG,
        SYLHET,
        _waypoint("mymensingh", 24.7471, 90.4203, rank=1),
        RAJSHAHI,
        KHULNA,
        BARISAL,
        _waypoint("rangpur", 25.7439, 89.2752),
    ]


def test_three_city_scenario():
    options = OptimizerOptions(generations=50, population_size=20, seed=7)
    result = RouteOptimizer([DHAKA, CHITTAGONG, SYLHET], options).optimize()

    assert sorted(p.waypoint_id for p in result.route) == ["chittagong", "dhaka", "sylhet"]
    assert result.total_distance_km > 0
    assert result.fitness == pytest.approx(1 / (1 + result.total_distance_km))
    assert result.generation == 50
    assert not result.cancelled


def test_two_waypoints_measure_closed_circuit():
    result = RouteOptimizer([DHAKA, SYLHET], OptimizerOptions(generations=5, population_size=4)).optimize()

    assert set(result.route) == {DHAKA, SYLHET}
    assert result.total_distance_km == pytest.approx(2 * distance(DHAKA, SYLHET))


def test_result_reuses_input_waypoint_objects():
    points = _mixed_points()
    result = RouteOptimizer(points, OptimizerOptions(generations=3, population_size=6, seed=1)).optimize()
    assert {id(p) for p in result.route} == {id(p) for p in points}


def test_priority_point_leads_every_route():
    priority = _waypoint("hub", 23.8103, 90.4125, rank=1)
    optimizer = RouteOptimizer(
        [CHITTAGONG, priority, SYLHET],
        OptimizerOptions(generations=30, population_size=10, mutation_rate=0.5, seed=3),
    )
    hub_index = 1
    for state in optimizer.evolve():
        assert all(individual.route.order[0] == hub_index for individual in state.population)
    assert optimizer.optimize().route[0] is priority


def test_invariants_hold_in_every_generation():
    points = _mixed_points()
    options = OptimizerOptions(
        generations=40,
        population_size=16,
        mutation_rate=0.6,
        local_search_rate=0.5,
        seed=21,
    )
    optimizer = RouteOptimizer(points, options)
    expected_prefix = (4, 1)  # mymensingh (rank 1), cox (rank 2)

    generations_seen = []
    for state in optimizer.evolve():
        generations_seen.append(state.generation)
        assert len(state.population) == options.population_size
        for individual in state.population:
            assert individual.route.order[:2] == expected_prefix
            assert sorted(individual.route.order) == list(range(len(points)))
    assert generations_seen == list(range(0, 41))


def test_elitism_never_loses_best_fitness():
    optimizer = RouteOptimizer(
        _mixed_points(),
        OptimizerOptions(generations=60, population_size=20, elitism_rate=0.1, mutation_rate=0.3, seed=4),
    )
    population_best = [max(ind.fitness for ind in state.population) for state in optimizer.evolve()]
    assert population_best == sorted(population_best)

    result = optimizer.optimize()
    assert len(result.best_fitness_history) == 60
    assert result.best_fitness_history == sorted(result.best_fitness_history)
    assert result.fitness == result.best_fitness_history[-1]


def test_single_generation():
    result = RouteOptimizer(
        [DHAKA, CHITTAGONG, SYLHET], OptimizerOptions(generations=1, population_size=5)
    ).optimize()
    assert result.generation == 1


def test_all_priority_points_yield_rank_order():
    points = [
        _waypoint("c", 22.0, 90.0, rank=3),
        _waypoint("a", 23.0, 91.0, rank=1),
        _waypoint("b", 24.0, 92.0, rank=2),
    ]
    result = RouteOptimizer(points, OptimizerOptions(generations=5, population_size=4)).optimize()
    assert [p.waypoint_id for p in result.route] == ["a", "b", "c"]


def test_coincident_points_are_valid():
    twin = _waypoint("dhaka-2", DHAKA.latitude, DHAKA.longitude)
    result = RouteOptimizer([DHAKA, twin], OptimizerOptions(generations=3, population_size=3)).optimize()
    assert result.total_distance_km == 0.0
    assert result.fitness == 1.0


@pytest.mark.parametrize("count", [0, 1])
def test_insufficient_waypoints_rejected(count):
    with pytest.raises(InsufficientWaypointsError):
        RouteOptimizer([DHAKA, SYLHET][:count])


@pytest.mark.parametrize(
    "overrides",
    [
        {"population_size": 0},
        {"generations": 0},
        {"generations": 2.5},
        {"mutation_rate": -0.1},
        {"mutation_rate": 1.5},
        {"elitism_rate": 1.0},
        {"crossover_rate": 1.01},
        {"tournament_size": 0},
        {"local_search_rate": 2.0},
        {"progress_interval": 0},
    ],
)
def test_invalid_options_rejected(overrides):
    with pytest.raises(InvalidConfigurationError):
        OptimizerOptions(**overrides)


def test_option_defaults():
    options = OptimizerOptions()
    assert options.population_size == 100
    assert options.generations == 500
    assert options.mutation_rate == 0.02
    assert options.elitism_rate == 0.1
    assert options.crossover_rate == 0.8
    assert options.elite_count == 10


def test_invalid_waypoints_rejected():
    with pytest.raises(InvalidWaypointError):
        RouteOptimizer([DHAKA, _waypoint("dhaka", 1.0, 1.0)])
    with pytest.raises(InvalidWaypointError):
        RouteOptimizer([DHAKA, Waypoint("p", 1.0, 1.0, "p", is_priority=True, priority=0)])


def test_progress_is_monotonic_and_ends_at_100():
    seen: list[float] = []
    RouteOptimizer(
        [DHAKA, CHITTAGONG, SYLHET, KHULNA], OptimizerOptions(generations=37, population_size=6)
    ).optimize(progress=seen.append)

    assert len(seen) == 37
    assert seen == sorted(seen)
    assert all(0 < value <= 100 for value in seen)
    assert seen[-1] == 100.0


def test_failing_progress_sink_does_not_change_result():
    points = _mixed_points()
    options = OptimizerOptions(generations=25, population_size=10, seed=99)

    def broken(_value: float) -> None:
        raise RuntimeError("sink unavailable")

    quiet = RouteOptimizer(points, options).optimize()
    noisy = RouteOptimizer(points, options).optimize(progress=broken)

    assert [p.waypoint_id for p in noisy.route] == [p.waypoint_id for p in quiet.route]
    assert noisy.fitness == quiet.fitness
    assert noisy.generation == 25


def test_seeded_runs_are_independent_and_reproducible():
    optimizer = RouteOptimizer(_mixed_points(), OptimizerOptions(generations=20, population_size=10, seed=5))
    first = optimizer.optimize()
    second = optimizer.optimize()
    assert [p.waypoint_id for p in first.route] == [p.waypoint_id for p in second.route]
    assert first.best_fitness_history == second.best_fitness_history


def test_injected_rng_drives_the_run():
    points = _mixed_points()
    options = OptimizerOptions(generations=15, population_size=8)
    first = RouteOptimizer(points, options, rng=random.Random(42)).optimize()
    second = RouteOptimizer(points, options, rng=random.Random(42)).optimize()
    assert first.best_fitness_history == second.best_fitness_history


def test_cancellation_returns_best_so_far():
    token = CancellationToken()

    def cancel_at_three(value: float) -> None:
        if value >= 3:
            token.cancel()

    optimizer = RouteOptimizer(_mixed_points(), OptimizerOptions(generations=100, population_size=10, seed=2))
    result = optimizer.optimize(progress=cancel_at_three, cancel_token=token)

    assert result.cancelled
    assert result.generation == 3
    assert len(result.route) == len(optimizer.waypoints)
    assert result.route[0].waypoint_id == "mymensingh"
    assert result.fitness == pytest.approx(1 / (1 + result.total_distance_km))

    # a later run on the same optimizer is unaffected
    assert optimizer.optimize().generation == 100


def test_cancelled_before_start_returns_initial_best():
    token = CancellationToken()
    token.cancel()
    result = RouteOptimizer(
        [DHAKA, CHITTAGONG, SYLHET], OptimizerOptions(generations=10, population_size=5)
    ).optimize(cancel_token=token)
    assert result.cancelled
    assert result.generation == 0
    assert len(result.route) == 3


def test_optimize_async_reports_progress():
    seen: list[float] = []
    optimizer = RouteOptimizer(
        _mixed_points(), OptimizerOptions(generations=30, population_size=8, progress_interval=5, seed=12)
    )

    result = asyncio.run(optimizer.optimize_async(progress=seen.append))

    assert result.generation == 30
    assert seen[-1] == 100.0
    assert seen == sorted(seen)
    sync_result = optimizer.optimize()
    assert [p.waypoint_id for p in result.route] == [p.waypoint_id for p in sync_result.route]


def test_optimize_async_can_be_cancelled_from_event_loop():
    token = CancellationToken()
    optimizer = RouteOptimizer(
        _mixed_points(), OptimizerOptions(generations=10_000, population_size=8, progress_interval=1)
    )

    async def scenario():
        task = asyncio.create_task(optimizer.optimize_async(cancel_token=token))
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        token.cancel()
        return await task

    result = asyncio.run(scenario())
    assert result.cancelled
    assert result.generation < 10_000
