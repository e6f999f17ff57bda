"""Durable job store backed by the ``scrape_jobs`` table.

All state transitions are compare-and-set updates on ``status`` so that two
workers can never both claim a job, and a terminal job is never rewritten.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from pydantic import ValidationError
from sqlalchemy import select, update

from menuscout.common.db import get_session
from menuscout.common.errors import InvalidJobPayload, JobNotFoundError
from menuscout.common.models import JobStatus, ScrapeJob, utcnow
from menuscout.common.schemas import JobPayload, JobView, ScrapeResult

logger = logging.getLogger(__name__)

# Lost CAS races before claim_next_job gives up for this poll
_CLAIM_RETRIES = 5
_MAX_ERROR_LENGTH = 2000


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; everything is stored in UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _duration(job: ScrapeJob, finished: datetime) -> Optional[float]:
    started = _as_utc(job.claimed_at)
    if started is None:
        return None
    return round((finished - started).total_seconds(), 2)


def to_view(job: ScrapeJob) -> JobView:
    """Convert an ORM row into the read-only view handed to callers."""
    status = job.status.value if isinstance(job.status, JobStatus) else str(job.status)
    return JobView(
        id=job.id,
        payload=JobPayload(restaurant_query=job.restaurant_query),
        status=status,
        result=ScrapeResult.model_validate(job.result) if job.result is not None else None,
        error=job.error_message,
        attempts=job.attempts or 0,
        worker_id=job.worker_id,
    )


def enqueue_job(restaurant_query: Any) -> str:
    """Validate the payload and append a queued job. Returns the job id."""
    try:
        payload = JobPayload(restaurant_query=restaurant_query)
    except ValidationError as exc:
        raise InvalidJobPayload(
            "restaurant_query must be a non-empty string"
        ) from exc

    with get_session() as session:
        job = ScrapeJob(restaurant_query=payload.restaurant_query, status=JobStatus.QUEUED)
        session.add(job)
        session.flush()
        job_id = job.id

    logger.info("Queued job %s for restaurant: %s", job_id, payload.restaurant_query)
    return job_id


def get_job(job_id: str) -> JobView:
    """Look up a job. Raises ``JobNotFoundError`` for unknown ids."""
    with get_session() as session:
        job = session.get(ScrapeJob, job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return to_view(job)


def claim_next_job(worker_id: str) -> Optional[JobView]:
    """Atomically move the oldest queued job to ``active`` and return it.

    Returns ``None`` when the queue is empty.
    """
    for _ in range(_CLAIM_RETRIES):
        with get_session() as session:
            candidate_id = session.execute(
                select(ScrapeJob.id)
                .where(ScrapeJob.status == JobStatus.QUEUED)
                .order_by(ScrapeJob.created_at, ScrapeJob.id)
                .limit(1)
            ).scalar_one_or_none()
            if candidate_id is None:
                return None

            claimed = session.execute(
                update(ScrapeJob)
                .where(ScrapeJob.id == candidate_id, ScrapeJob.status == JobStatus.QUEUED)
                .values(
                    status=JobStatus.ACTIVE,
                    claimed_at=utcnow(),
                    worker_id=worker_id,
                    attempts=ScrapeJob.attempts + 1,
                )
                .execution_options(synchronize_session=False)
            ).rowcount
            if claimed == 1:
                job = session.get(ScrapeJob, candidate_id, populate_existing=True)
                logger.info("Worker %s claimed job %s", worker_id, candidate_id)
                return to_view(job)

        logger.debug("Lost claim race for job %s; retrying", candidate_id)
    return None


def _finish(job_id: str, status: JobStatus, worker_id: Optional[str], **values: Any) -> bool:
    """CAS ``active -> status``.

    With ``worker_id`` the job must still be held by that worker, so a worker
    whose claim was requeued and taken over cannot overwrite the new outcome.
    Returns False if the job was not active (or not ours).
    """
    finished = utcnow()
    with get_session() as session:
        job = session.get(ScrapeJob, job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        held = [ScrapeJob.id == job_id, ScrapeJob.status == JobStatus.ACTIVE]
        if worker_id is not None:
            held.append(ScrapeJob.worker_id == worker_id)
        updated = session.execute(
            update(ScrapeJob)
            .where(*held)
            .values(
                status=status,
                completed_at=finished,
                duration_seconds=_duration(job, finished),
                **values,
            )
            .execution_options(synchronize_session=False)
        ).rowcount
    if updated != 1:
        logger.warning("Job %s is no longer active or was reclaimed; %s transition ignored",
                       job_id, status.value)
        return False
    return True


def complete_job(
    job_id: str,
    result: ScrapeResult,
    empty: bool = False,
    worker_id: Optional[str] = None,
) -> bool:
    """Store the result and mark the job ``completed``."""
    return _finish(
        job_id,
        JobStatus.COMPLETED,
        worker_id,
        result=result.to_payload(),
        error_message=None,
        item_count=len(result.menu_items),
        empty_result=empty,
    )


def fail_job(job_id: str, error_msg: str, worker_id: Optional[str] = None) -> bool:
    """Store the error message and mark the job ``failed``."""
    return _finish(
        job_id,
        JobStatus.FAILED,
        worker_id,
        result=None,
        error_message=(error_msg or "Unknown error")[:_MAX_ERROR_LENGTH],
    )


def requeue_stale_jobs(visibility_timeout_seconds: float, max_attempts: int) -> tuple[int, int]:
    """Recover jobs whose worker disappeared.

    Active jobs claimed more than ``visibility_timeout_seconds`` ago go back
    to ``queued`` while they have attempts left, and are failed otherwise.
    Returns ``(requeued, failed)``.
    """
    now = utcnow()
    cutoff = now - timedelta(seconds=visibility_timeout_seconds)
    with get_session() as session:
        stale = (ScrapeJob.status == JobStatus.ACTIVE, ScrapeJob.claimed_at < cutoff)
        requeued = session.execute(
            update(ScrapeJob)
            .where(*stale, ScrapeJob.attempts < max_attempts)
            .values(status=JobStatus.QUEUED, claimed_at=None, worker_id=None)
            .execution_options(synchronize_session=False)
        ).rowcount
        failed = session.execute(
            update(ScrapeJob)
            .where(*stale, ScrapeJob.attempts >= max_attempts)
            .values(
                status=JobStatus.FAILED,
                result=None,
                error_message=f"Abandoned by worker after {max_attempts} attempts",
                completed_at=now,
            )
            .execution_options(synchronize_session=False)
        ).rowcount

    if requeued or failed:
        logger.warning("Stale jobs: %d requeued, %d failed", requeued, failed)
    return requeued, failed


def list_recent_jobs(limit: int = 10) -> list[ScrapeJob]:
    """Most recently created jobs, newest first."""
    with get_session() as session:
        return list(
            session.execute(
                select(ScrapeJob).order_by(ScrapeJob.created_at.desc()).limit(limit)
            ).scalars()
        )
