"""Background optimization job endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request, status

from ...schemas.optimization import JobStatusResponse, OptimizationRequest
from ...services.optimizer.jobs import JobManager, JobNotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/jobs", tags=["jobs"])


def _manager(request: Request) -> JobManager:
    return request.app.state.job_manager


@router.post("", response_model=JobStatusResponse, status_code=status.HTTP_202_ACCEPTED)
def submit_job(payload: OptimizationRequest, request: Request) -> JobStatusResponse:
    manager = _manager(request)
    try:
        job = manager.submit(payload)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return manager.status(job.job_id)


@router.get("/{job_id}", response_model=JobStatusResponse)
def get_job(job_id: str, request: Request) -> JobStatusResponse:
    try:
        return _manager(request).status(job_id)
    except JobNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Job '{job_id}' not found") from exc


@router.post("/{job_id}/cancel", response_model=JobStatusResponse)
def cancel_job(job_id: str, request: Request) -> JobStatusResponse:
    try:
        return _manager(request).cancel(job_id)
    except JobNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Job '{job_id}' not found") from exc
