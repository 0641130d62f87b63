"""Application configuration and settings management."""

from pathlib import Path
from typing import Any, Literal, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="ROUTE_OPT_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Priority Route Optimizer API"
    api_prefix: str = "/api"
    data_root: Path = Field(default=Path("data"), description="Root directory for persisted run outputs.")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    default_population_size: int = Field(default=100, ge=1)
    default_generations: int = Field(default=500, ge=1)
    default_mutation_rate: float = Field(default=0.02, ge=0.0, le=1.0)
    default_elitism_rate: float = Field(default=0.1, ge=0.0, lt=1.0)
    default_crossover_rate: float = Field(default=0.8, ge=0.0, le=1.0)
    tournament_size: int = Field(default=5, ge=1)
    local_search_rate: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Fraction of offspring refined with 2-opt each generation.",
    )
    progress_interval: int = Field(
        default=10,
        ge=1,
        description="Generations between cooperative yields in async runs.",
    )

    max_waypoints: int = Field(default=500, ge=2)
    max_concurrent_jobs: int = Field(default=2, ge=1)
    job_history_limit: int = Field(default=100, ge=0, description="Finished jobs kept for status polling.")
    service_area: Optional[tuple[tuple[float, float], ...]] = Field(
        default=None,
        description="Optional polygon of (lat, lon) pairs; waypoints outside it are rejected.",
    )
    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:3000",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    @field_validator("data_root", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator("frontend_allowed_origins", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            if value.strip():
                return (value.strip(),)
        return tuple()

    @field_validator("service_area", mode="before")
    @classmethod
    def _parse_polygon(cls, value: Any) -> Optional[tuple[tuple[float, float], ...]]:
        """Accept a JSON array of [lat, lon] pairs or a sequence of pairs."""
        if value is None or value == "":
            return None
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except json.JSONDecodeError as exc:
                raise ValueError("service_area must be a JSON array of [lat, lon] pairs.") from exc
        pairs = tuple((float(lat), float(lon)) for lat, lon in value)
        if len(pairs) < 3:
            raise ValueError("service_area polygon needs at least 3 vertices.")
        return pairs


settings = Settings()
