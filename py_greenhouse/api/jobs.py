"""
Background job endpoints.

Expansion requests can be queued instead of answered inline. Jobs are
stored in the database, executed through FastAPI background tasks and
polled with ``GET /jobs/{job_id}``.
"""

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, HTTPException
from fastapi.encoders import jsonable_encoder
from pydantic import ValidationError
import structlog

from ..config import settings
from ..core.expansion import ExpansionError, check_expansion_inputs
from ..core.metrics import UnknownMetric
from ..db.connection import db
from ..db.models import ExpansionJob, utcnow
from .expansion import build_metric, compute_expansion
from .schemas import (ExpansionRequest, JobProgress, JobStatusResponse,
                      JobSubmitRequest, JobSubmitResponse)

logger = structlog.get_logger()

router = APIRouter(prefix="/jobs", tags=["jobs"])

SUPPORTED_JOB_TYPES = ("greenhouse_expansion",)


def _epoch(value: Optional[datetime]) -> Optional[float]:
    if value is None:
        return None
    return value.replace(tzinfo=timezone.utc).timestamp()


def _queue_position(session, job: ExpansionJob) -> Optional[int]:
    if job.status != "queued":
        return None
    ahead = (
        session.query(ExpansionJob)
        .filter(ExpansionJob.status == "queued", ExpansionJob.created_at < job.created_at)
        .count()
    )
    return ahead + 1


def _progress(job: ExpansionJob) -> Optional[JobProgress]:
    if job.status == "queued":
        return None
    end = job.completed_at or utcnow()
    elapsed = (end - job.started_at).total_seconds() if job.started_at else 0.0
    return JobProgress(
        phase=job.status,
        percentage=job.progress_percent,
        current_activity="Optimizing expansion order" if job.status == "running" else "",
        elapsed_seconds=elapsed,
    )


def job_status(session, job: ExpansionJob) -> JobStatusResponse:
    return JobStatusResponse(
        id=job.id,
        status=job.status,
        created_at=_epoch(job.created_at),
        started_at=_epoch(job.started_at),
        completed_at=_epoch(job.completed_at),
        progress=_progress(job),
        queue_position=_queue_position(session, job),
        result=job.result,
        error=job.error_message,
    )


def _get_job_or_404(session, job_id: str) -> ExpansionJob:
    job = session.get(ExpansionJob, job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return job


@router.post("", response_model=JobSubmitResponse)
async def submit_job(request: JobSubmitRequest, background_tasks: BackgroundTasks):
    """
    Queue a job.

    Returns immediately with the job id. Use /jobs/{job_id} to check status.
    """
    if request.type not in SUPPORTED_JOB_TYPES:
        raise HTTPException(status_code=400, detail=f"Unsupported job type: {request.type}")

    try:
        params = ExpansionRequest(**request.params)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=jsonable_encoder(e.errors(include_url=False)))

    # Same 400s as POST /greenhouse/expansion
    try:
        build_metric(params.metric or settings.default_metric)
        check_expansion_inputs(params.unlocked_cells, params.locked_cells)
    except (ExpansionError, UnknownMetric) as e:
        raise HTTPException(status_code=400, detail=str(e))

    with db.get_session() as session:
        job = ExpansionJob(
            job_type=request.type,
            status="queued",
            metric=params.metric,
            request_json=params.model_dump_json(),
        )
        session.add(job)
        session.flush()
        job_id = job.id

    logger.info("Expansion job queued", job_id=job_id)
    background_tasks.add_task(run_expansion_job, job_id)

    return JobSubmitResponse(job_id=job_id, status="queued", message="Expansion job queued")


@router.get("/{job_id}", response_model=JobStatusResponse)
async def get_job_status(job_id: str):
    """Get status of a job."""
    with db.get_session() as session:
        job = _get_job_or_404(session, job_id)
        return job_status(session, job)


@router.post("/{job_id}/cancel", response_model=JobStatusResponse)
async def cancel_job(job_id: str):
    """Cancel a job that has not started yet."""
    with db.get_session() as session:
        job = _get_job_or_404(session, job_id)
        if job.status != "queued":
            raise HTTPException(status_code=409, detail=f"Job cannot be cancelled while {job.status}")
        job.status = "cancelled"
        job.completed_at = utcnow()
        session.flush()
        logger.info("Expansion job cancelled", job_id=job_id)
        return job_status(session, job)


def run_expansion_job(job_id: str):
    """
    Background task to run a queued expansion job.
    """
    with db.get_session() as session:
        job = session.get(ExpansionJob, job_id)
        if job is None or job.status != "queued":
            logger.info("Skipping expansion job", job_id=job_id,
                        status=job.status if job else None)
            return
        job.status = "running"
        job.started_at = utcnow()
        request = ExpansionRequest.model_validate_json(job.request_json)

    logger.info("Starting expansion job", job_id=job_id)

    try:
        response = compute_expansion(request)

        with db.get_session() as session:
            job = session.get(ExpansionJob, job_id)
            job.result_json = response.model_dump_json()
            job.status = "completed"
            job.progress_percent = 100
            job.completed_at = utcnow()

        logger.info("Expansion job completed", job_id=job_id, total_steps=response.total_steps)

    except Exception as e:
        logger.error("Expansion job failed", job_id=job_id, error=str(e))
        with db.get_session() as session:
            job = session.get(ExpansionJob, job_id)
            job.status = "failed"
            job.error_message = str(e)
            job.completed_at = utcnow()
