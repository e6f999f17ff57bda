"""Job worker - claim queued jobs and run the menu pipeline for each."""
import asyncio
import logging
import os
import socket
from typing import Optional

from menuscout.common.errors import ExtractionEmptyResult
from menuscout.common.models import JobStatus
from menuscout.common.schemas import JobView
from menuscout.config import Settings, get_settings
from menuscout.crawler.workflow import SessionFactory, scrape_menu
from menuscout.jobs.store import (
    claim_next_job,
    complete_job,
    fail_job,
    requeue_stale_jobs,
)

logger = logging.getLogger(__name__)


def describe_error(exc: BaseException) -> str:
    """Human-readable one-line message for a failed job."""
    message = str(exc).strip()
    name = type(exc).__name__
    return f"{name}: {message}" if message else name


async def process_job(
    job: JobView,
    settings: Optional[Settings] = None,
    session_factory: Optional[SessionFactory] = None,
) -> JobStatus:
    """Run the pipeline for one claimed job and record the outcome.

    The browser session is closed inside ``scrape_menu`` before the job is
    marked completed or failed. Never raises for pipeline errors. Store writes
    run in a thread so other job loops keep driving their browsers.
    """
    settings = settings or get_settings()
    query = job.payload.restaurant_query
    logger.info("Processing job %s for restaurant: %s (attempt %d)", job.id, query, job.attempts)

    try:
        result = await asyncio.wait_for(
            scrape_menu(query, settings=settings, session_factory=session_factory),
            timeout=settings.job_timeout_seconds,
        )
    except ExtractionEmptyResult as exc:
        logger.warning("Job %s completed with no menu items: %s", job.id, exc)
        await asyncio.to_thread(complete_job, job.id, exc.result, True, job.worker_id)
        return JobStatus.COMPLETED
    except asyncio.TimeoutError:
        msg = f"Timed out after {settings.job_timeout_seconds:g}s"
        logger.error("Job %s failed: %s", job.id, msg)
        await asyncio.to_thread(fail_job, job.id, msg, job.worker_id)
        return JobStatus.FAILED
    except Exception as exc:
        logger.error("Job %s failed: %s", job.id, exc, exc_info=True)
        await asyncio.to_thread(fail_job, job.id, describe_error(exc), job.worker_id)
        return JobStatus.FAILED

    await asyncio.to_thread(complete_job, job.id, result, False, job.worker_id)
    logger.info("Job %s completed. Found %d menu items.", job.id, len(result.menu_items))
    return JobStatus.COMPLETED


async def _sleep_or_stop(stop: asyncio.Event, seconds: float) -> None:
    try:
        await asyncio.wait_for(stop.wait(), timeout=seconds)
    except asyncio.TimeoutError:
        pass


async def _worker_loop(
    worker_id: str,
    settings: Settings,
    poll_interval: float,
    once: bool,
    stop: asyncio.Event,
    session_factory: Optional[SessionFactory],
) -> int:
    processed = 0
    while not stop.is_set():
        try:
            await asyncio.to_thread(
                requeue_stale_jobs, settings.visibility_timeout_seconds, settings.max_attempts
            )
            job = await asyncio.to_thread(claim_next_job, worker_id)
        except Exception:
            logger.exception("Worker %s could not poll the job store", worker_id)
            job = None

        if job is None:
            if once:
                break
            await _sleep_or_stop(stop, poll_interval)
            continue

        try:
            await process_job(job, settings, session_factory)
        except Exception:
            # Store write failed; the job stays active until the visibility timeout
            logger.exception("Worker %s could not record outcome of job %s", worker_id, job.id)
        processed += 1
    return processed


async def run_worker(
    concurrency: Optional[int] = None,
    poll_interval: Optional[float] = None,
    once: bool = False,
    stop_event: Optional[asyncio.Event] = None,
    settings: Optional[Settings] = None,
    session_factory: Optional[SessionFactory] = None,
) -> int:
    """
    Run ``concurrency`` job loops until ``stop_event`` is set.

    Parameters
    ----------
    once:
        Exit as soon as the queue is empty instead of polling forever.
    session_factory:
        Override browser session acquisition (tests).

    Returns the number of jobs processed.
    """
    settings = settings or get_settings()
    concurrency = max(1, concurrency or settings.worker_concurrency)
    poll_interval = poll_interval if poll_interval is not None else settings.poll_interval_seconds
    stop = stop_event or asyncio.Event()

    base_id = f"{socket.gethostname()}:{os.getpid()}"
    logger.info("Worker %s started with %d loop(s)", base_id, concurrency)
    counts = await asyncio.gather(*(
        _worker_loop(f"{base_id}:{n}", settings, poll_interval, once, stop, session_factory)
        for n in range(concurrency)
    ))
    total = sum(counts)
    logger.info("Worker %s stopped after %d job(s)", base_id, total)
    return total
