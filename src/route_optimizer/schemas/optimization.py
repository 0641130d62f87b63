"""Optimization request/response schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator


class WaypointModel(BaseModel):
    waypoint_id: str = Field(..., min_length=1)
    name: str = ""
    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)
    is_priority: bool = False
    priority: int = Field(default=0, description="Visit rank among priority waypoints (1 = first).")

    @field_validator("waypoint_id", mode="before")
    @classmethod
    def strip_waypoint_id(cls, value):
        return value.strip() if isinstance(value, str) else value


class OptimizationOptionsModel(BaseModel):
    """Optional overrides; anything left unset falls back to the preset or settings."""

    population_size: Optional[int] = None
    generations: Optional[int] = None
    mutation_rate: Optional[float] = None
    elitism_rate: Optional[float] = None
    crossover_rate: Optional[float] = None
    tournament_size: Optional[int] = None
    local_search_rate: Optional[float] = None
    progress_interval: Optional[int] = None
    seed: Optional[int] = Field(default=None, description="Seed for a reproducible run.")


class OptimizationRequest(BaseModel):
    waypoints: List[WaypointModel]
    preset: Optional[str] = Field(default=None, description="One of 'fast', 'balanced', 'precise'.")
    options: Optional[OptimizationOptionsModel] = None
    persist: bool = False
    run_label: Optional[str] = Field(default=None, description="Friendly name for persisted outputs.")


class RouteStopModel(BaseModel):
    sequence: int
    waypoint_id: str
    name: str
    latitude: float
    longitude: float
    is_priority: bool
    priority: int
    distance_from_prev_km: float


class OptimizationResponse(BaseModel):
    total_distance_km: float
    return_leg_km: float
    generation: int
    fitness: float
    cancelled: bool = False
    elapsed_seconds: float
    stops: List[RouteStopModel]
    metadata: dict


class PresetModel(BaseModel):
    name: str
    description: str
    population_size: int
    generations: int


JobStatus = Literal["pending", "running", "completed", "cancelled", "failed"]


class JobStatusResponse(BaseModel):
    job_id: str
    status: JobStatus
    progress: float
    submitted_at: datetime
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    error: Optional[str] = None
    result: Optional[OptimizationResponse] = None
