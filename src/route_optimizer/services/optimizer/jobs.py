"""Background optimization jobs.

Jobs run on a thread pool. The optimizer reports progress from the worker
thread; readers poll a snapshot taken under the manager's lock.
"""

from __future__ import annotations

import logging
import threading
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from ...config import settings
from ...schemas.optimization import JobStatus, JobStatusResponse, OptimizationRequest, OptimizationResponse
from .genetic import RouteOptimizer
from .models import CancellationToken
from .service import build_response, prepare_optimizer

logger = logging.getLogger(__name__)

FINISHED_STATUSES = frozenset({"completed", "cancelled", "failed"})


class JobNotFoundError(KeyError):
    """Raised when a job id is unknown to the manager."""


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class OptimizationJob:
    job_id: str
    request: OptimizationRequest
    submitted_at: datetime = field(default_factory=_now)
    status: JobStatus = "pending"
    progress: float = 0.0
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    error: Optional[str] = None
    response: Optional[OptimizationResponse] = None
    cancel_token: CancellationToken = field(default_factory=CancellationToken)
    future: Optional[Future] = None


class JobManager:
    def __init__(self, max_workers: int | None = None, history_limit: int | None = None) -> None:
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers or settings.max_concurrent_jobs,
            thread_name_prefix="route-optimizer",
        )
        self._history_limit = history_limit if history_limit is not None else settings.job_history_limit
        self._jobs: dict[str, OptimizationJob] = {}
        self._lock = threading.Lock()

    def submit(self, payload: OptimizationRequest) -> OptimizationJob:
        """Validate the request and queue it. Bad input raises before a job is created."""
        optimizer = prepare_optimizer(payload)
        job = OptimizationJob(job_id=uuid.uuid4().hex, request=payload)
        with self._lock:
            self._prune_finished()
            self._jobs[job.job_id] = job
        job.future = self._executor.submit(self._run, job, optimizer)
        logger.info(f"Queued optimization job {job.job_id} ({len(optimizer.waypoints)} waypoints)")
        return job

    def _prune_finished(self) -> None:
        finished = [job for job in self._jobs.values() if job.status in FINISHED_STATUSES]
        excess = len(finished) - self._history_limit
        if excess <= 0:
            return
        finished.sort(key=lambda job: job.finished_at or job.submitted_at)
        for job in finished[:excess]:
            del self._jobs[job.job_id]

    def _run(self, job: OptimizationJob, optimizer: RouteOptimizer) -> None:
        with self._lock:
            job.status = "running"
            job.started_at = _now()

        def on_progress(value: float) -> None:
            with self._lock:
                if value > job.progress:
                    job.progress = value

        try:
            result = optimizer.optimize(progress=on_progress, cancel_token=job.cancel_token)
            response = build_response(job.request, optimizer, result)
        except Exception as exc:
            logger.exception(f"Optimization job {job.job_id} failed: {exc}")
            with self._lock:
                job.status = "failed"
                job.error = str(exc)
                job.finished_at = _now()
            return

        with self._lock:
            job.response = response
            job.status = "cancelled" if result.cancelled else "completed"
            job.finished_at = _now()
        logger.info(f"Optimization job {job.job_id} {job.status}")

    def get(self, job_id: str) -> OptimizationJob:
        with self._lock:
            try:
                return self._jobs[job_id]
            except KeyError:
                raise JobNotFoundError(job_id) from None

    def status(self, job_id: str) -> JobStatusResponse:
        job = self.get(job_id)
        with self._lock:
            return JobStatusResponse(
                job_id=job.job_id,
                status=job.status,
                progress=job.progress,
                submitted_at=job.submitted_at,
                started_at=job.started_at,
                finished_at=job.finished_at,
                error=job.error,
                result=job.response,
            )

    def cancel(self, job_id: str) -> JobStatusResponse:
        job = self.get(job_id)
        job.cancel_token.cancel()
        logger.info(f"Cancellation requested for optimization job {job_id}")
        return self.status(job_id)

    def shutdown(self, wait: bool = True) -> None:
        with self._lock:
            jobs = list(self._jobs.values())
        for job in jobs:
            job.cancel_token.cancel()
        self._executor.shutdown(wait=wait)
