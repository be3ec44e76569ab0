"""Dedicated APScheduler worker process running the task status sweep."""
from __future__ import annotations

import logging
import signal
import sys
import threading
from datetime import datetime, timezone
from time import perf_counter
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from apscheduler.schedulers.background import BackgroundScheduler

from usertasks.core.config import settings
from usertasks.core.logging import configure_logging
from usertasks.db.session import SessionLocal
from usertasks.observability.client import init_opik
from usertasks.observability.metrics import log_metric
from usertasks.observability.tracing import trace
from usertasks.services.task_service import run_status_sweep

logger = logging.getLogger(__name__)

SWEEP_JOB_ID = "task_status_sweep"


def main() -> None:
    configure_logging(log_level=settings.log_level)
    init_opik()
    try:
        _validate_config()
    except ValueError as exc:
        logger.error("Invalid scheduler configuration: %s", exc)
        sys.exit(1)

    logger.info("Scheduler worker starting (enabled=%s)", settings.scheduler_enabled)

    if not settings.scheduler_enabled:
        logger.warning("Scheduler worker started but SCHEDULER_ENABLED=false. No jobs will run.")
        return

    scheduler = BackgroundScheduler(timezone=settings.scheduler_timezone)
    _register_jobs(scheduler, run_now=settings.jobs_run_on_startup)
    logger.info("Scheduler enabled (tz=%s, status sweep every minute)", settings.scheduler_timezone)
    scheduler.start()

    stop_event = threading.Event()

    def shutdown(signum, frame):  # pragma: no cover - signal handler
        logger.info("Scheduler worker shutting down (signal=%s)", signum)
        if scheduler.running:
            scheduler.shutdown(wait=False)
        stop_event.set()

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    try:
        _wait_forever(stop_event)
    except KeyboardInterrupt:  # pragma: no cover - manual stop
        shutdown(signal.SIGINT, None)


def _register_jobs(scheduler: BackgroundScheduler, run_now: bool = False) -> None:
    # The startup run is this job's first fire time, never a separate call.
    extra = {}
    if run_now:
        logger.info("Running status sweep once on startup")
        extra["next_run_time"] = datetime.now(ZoneInfo(settings.scheduler_timezone))
    scheduler.add_job(
        _run_status_sweep_job,
        trigger="cron",
        second=0,
        minute="*",
        id=SWEEP_JOB_ID,
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        **extra,
    )
    logger.info("Registered scheduler jobs (tz=%s): %s every minute", settings.scheduler_timezone, SWEEP_JOB_ID)


def _run_status_sweep_job() -> None:
    _execute_job(
        job_name="status_sweep",
        runner=run_status_sweep,
        scheduled_run_time=datetime.now(timezone.utc),
    )


def _execute_job(job_name: str, runner, scheduled_run_time=None) -> None:
    session = SessionLocal()
    start = perf_counter()
    scheduled_str = scheduled_run_time.isoformat() if scheduled_run_time else None
    metadata = {"job": job_name, "scheduled_run_time": scheduled_str}
    logger.info("Job %s starting (scheduled_run_time=%s)", job_name, scheduled_str or "now")

    pending = 0
    completed = 0
    success = 0
    try:
        with trace(f"jobs.{job_name}", metadata=metadata):
            result = runner(session)
            pending = result.pending
            completed = result.completed
            success = 1
    except Exception:
        # Tasks that were not written stay PENDING and are retried next tick.
        logger.exception("Job %s failed", job_name)
    finally:
        session.close()

    duration_ms = (perf_counter() - start) * 1000
    log_metric("jobs.success", success, metadata={"job": job_name})
    log_metric("jobs.pending_tasks", pending, metadata={"job": job_name})
    log_metric("jobs.completed_tasks", completed, metadata={"job": job_name})
    log_metric("jobs.duration_ms", duration_ms, metadata={"job": job_name})

    if success:
        logger.info(
            "Job %s complete: pending=%s, completed=%s, duration_ms=%0.2f",
            job_name,
            pending,
            completed,
            duration_ms,
        )


def _validate_config() -> None:
    try:
        ZoneInfo(settings.scheduler_timezone)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"SCHEDULER_TIMEZONE is not a known timezone: {settings.scheduler_timezone!r}") from exc


def _wait_forever(stop_event: threading.Event) -> None:
    stop_event.wait()


if __name__ == "__main__":  # pragma: no cover - manual launch
    main()
