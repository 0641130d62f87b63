"""Optimization endpoints."""

from __future__ import annotations

import asyncio
import json
import logging

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import StreamingResponse

from ...schemas.optimization import OptimizationRequest, OptimizationResponse, PresetModel
from ...services.optimizer.models import CancellationToken
from ...services.optimizer.presets import PRESETS
from ...services.optimizer.service import build_response, optimize_route, prepare_optimizer

logger = logging.getLogger(__name__)

router = APIRouter(tags=["optimization"])


@router.get("/presets", response_model=list[PresetModel])
def list_presets() -> list[PresetModel]:
    return [
        PresetModel(
            name=preset.name,
            description=preset.description,
            population_size=preset.population_size,
            generations=preset.generations,
        )
        for preset in PRESETS.values()
    ]


@router.post("/optimize", response_model=OptimizationResponse, status_code=status.HTTP_200_OK)
def optimize(payload: OptimizationRequest) -> OptimizationResponse:
    try:
        return optimize_route(payload)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception(f"Error optimizing route: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to optimize route: {str(exc)}",
        ) from exc


def _line(payload: dict) -> str:
    return json.dumps(payload) + "\n"


@router.post("/optimize/stream")
async def optimize_stream(payload: OptimizationRequest) -> StreamingResponse:
    """Stream progress as NDJSON lines, then a final line carrying the result.

    The optimizer runs on a worker thread so the event loop keeps serving
    other requests and notices client disconnects while the run is going.
    """
    try:
        optimizer = prepare_optimizer(payload)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    cancel_token = CancellationToken()
    updates: asyncio.Queue[float] = asyncio.Queue()
    loop = asyncio.get_running_loop()

    def report(value: float) -> None:
        loop.call_soon_threadsafe(updates.put_nowait, value)

    def run() -> OptimizationResponse:
        result = optimizer.optimize(progress=report, cancel_token=cancel_token)
        return build_response(payload, optimizer, result)

    async def events():
        task = asyncio.ensure_future(asyncio.to_thread(run))
        try:
            while True:
                getter = asyncio.ensure_future(updates.get())
                done, _ = await asyncio.wait({task, getter}, return_when=asyncio.FIRST_COMPLETED)
                if getter in done:
                    yield _line({"type": "progress", "progress": getter.result()})
                    continue
                getter.cancel()
                break
            while not updates.empty():
                yield _line({"type": "progress", "progress": updates.get_nowait()})
            response = task.result()
            yield _line({"type": "result", "result": response.model_dump(mode="json")})
        finally:
            # client went away or the run finished; either way stop the optimizer
            cancel_token.cancel()
            if not task.done():
                await task

    return StreamingResponse(events(), media_type="application/x-ndjson")
