"""Optimization orchestration service."""

from __future__ import annotations

import logging
import random
from dataclasses import asdict
from pathlib import Path
from typing import Optional, Sequence

from ...config import settings
from ...models.domain import Waypoint
from ...persistence.filesystem import FileStorage
from ...schemas.optimization import (
    OptimizationRequest,
    OptimizationResponse,
    RouteStopModel,
    WaypointModel,
)
from ..export.geojson import route_to_geojson, save_geojson
from ..geospatial import point_in_polygon
from ..outputs.route_formatter import (
    result_to_csv,
    result_to_json,
    result_to_route_export,
    result_to_text,
    route_legs,
)
from .genetic import RouteOptimizer
from .models import CancellationToken, OptimizationResult, OptimizerOptions, ProgressCallback
from .presets import get_preset

logger = logging.getLogger(__name__)


def _to_waypoints(models: Sequence[WaypointModel]) -> list[Waypoint]:
    return [
        Waypoint(
            waypoint_id=model.waypoint_id,
            latitude=model.latitude,
            longitude=model.longitude,
            name=model.name or model.waypoint_id,
            is_priority=model.is_priority,
            priority=model.priority,
        )
        for model in models
    ]


def _check_service_area(waypoints: Sequence[Waypoint]) -> None:
    polygon = settings.service_area
    if not polygon:
        return
    outside = [
        point.waypoint_id
        for point in waypoints
        if not point_in_polygon(point.latitude, point.longitude, polygon)
    ]
    if outside:
        raise ValueError(f"Waypoints outside the service area: {', '.join(outside)}.")


def build_options(payload: OptimizationRequest) -> OptimizerOptions:
    values: dict = {}
    if payload.preset:
        preset = get_preset(payload.preset)
        values.update(population_size=preset.population_size, generations=preset.generations)
    if payload.options:
        values.update(payload.options.model_dump(exclude_none=True))
    return OptimizerOptions(**values)


def prepare_optimizer(payload: OptimizationRequest, *, rng: random.Random | None = None) -> RouteOptimizer:
    """Validate a request and build the optimizer for it. Raises ``ValueError`` subclasses on bad input."""
    if len(payload.waypoints) > settings.max_waypoints:
        raise ValueError(
            f"Too many waypoints: {len(payload.waypoints)} (maximum {settings.max_waypoints})."
        )
    waypoints = _to_waypoints(payload.waypoints)
    _check_service_area(waypoints)
    options = build_options(payload)
    return RouteOptimizer(waypoints, options, rng=rng)


def _build_metadata(payload: OptimizationRequest, optimizer: RouteOptimizer, result: OptimizationResult) -> dict:
    metadata = {
        "status": "cancelled" if result.cancelled else "complete",
        "waypoint_count": len(optimizer.waypoints),
        "priority_count": optimizer.layout.priority_count,
        "options": asdict(optimizer.options),
    }
    if payload.preset:
        metadata["preset"] = payload.preset
    if payload.run_label:
        metadata["run_label"] = payload.run_label
    return metadata


def _persist(payload: OptimizationRequest, result: OptimizationResult, metadata: dict) -> Optional[Path]:
    try:
        storage = FileStorage()
        run_dir = storage.make_run_directory(prefix=payload.run_label or "optimization")
        storage.write_json(run_dir / "summary.json", result_to_json(result, metadata))
        storage.write_json(run_dir / "route_export.json", result_to_route_export(result))
        storage.write_text(run_dir / "route.csv", result_to_csv(result))
        storage.write_text(run_dir / "route.txt", result_to_text(result))
        save_geojson(route_to_geojson(result), run_dir / "route.geojson")
    except OSError as exc:
        # Log error but don't fail the entire request
        logger.error(f"Failed to persist optimization outputs: {exc}")
        return None
    logger.info(f"Persisted optimization outputs to {run_dir}")
    return run_dir


def build_response(
    payload: OptimizationRequest,
    optimizer: RouteOptimizer,
    result: OptimizationResult,
) -> OptimizationResponse:
    metadata = _build_metadata(payload, optimizer, result)
    if payload.persist:
        run_dir = _persist(payload, result, metadata)
        if run_dir is not None:
            metadata["output_dir"] = str(run_dir)

    legs, return_leg = route_legs(result)
    return OptimizationResponse(
        total_distance_km=result.total_distance_km,
        return_leg_km=return_leg,
        generation=result.generation,
        fitness=result.fitness,
        cancelled=result.cancelled,
        elapsed_seconds=result.elapsed_seconds,
        metadata=metadata,
        stops=[
            RouteStopModel(
                sequence=sequence,
                waypoint_id=point.waypoint_id,
                name=point.name,
                latitude=point.latitude,
                longitude=point.longitude,
                is_priority=point.is_priority,
                priority=point.priority,
                distance_from_prev_km=leg,
            )
            for sequence, (point, leg) in enumerate(zip(result.route, legs), start=1)
        ],
    )


def optimize_route(
    payload: OptimizationRequest,
    progress: Optional[ProgressCallback] = None,
    cancel_token: CancellationToken | None = None,
) -> OptimizationResponse:
    optimizer = prepare_optimizer(payload)
    result = optimizer.optimize(progress=progress, cancel_token=cancel_token)
    return build_response(payload, optimizer, result)


async def optimize_route_async(
    payload: OptimizationRequest,
    progress: Optional[ProgressCallback] = None,
    cancel_token: CancellationToken | None = None,
) -> OptimizationResponse:
    optimizer = prepare_optimizer(payload)
    result = await optimizer.optimize_async(progress=progress, cancel_token=cancel_token)
    return build_response(payload, optimizer, result)
