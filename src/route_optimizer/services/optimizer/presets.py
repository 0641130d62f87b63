"""Named optimization presets trading run time for route quality."""

from __future__ import annotations

from dataclasses import dataclass

from ...config import settings


@dataclass(frozen=True, slots=True)
class OptimizationPreset:
    name: str
    description: str
    population_size: int
    generations: int


PRESETS: dict[str, OptimizationPreset] = {
    "fast": OptimizationPreset(
        name="fast",
        description="Quick optimization for previews and small point sets.",
        population_size=50,
        generations=200,
    ),
    "balanced": OptimizationPreset(
        name="balanced",
        description="Good balance of speed and accuracy.",
        population_size=settings.default_population_size,
        generations=settings.default_generations,
    ),
    "precise": OptimizationPreset(
        name="precise",
        description="Larger population and more generations for the best route.",
        population_size=200,
        generations=1000,
    ),
}


def get_preset(name: str) -> OptimizationPreset:
    try:
        return PRESETS[name.strip().lower()]
    except KeyError:
        raise ValueError(f"Unknown optimization preset '{name}'. Choose one of: {', '.join(PRESETS)}.") from None
