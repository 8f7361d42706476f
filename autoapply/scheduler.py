"""Deferred auto-apply runs and the APScheduler loop that fires them.

Deferred runs are stored as ``scheduled_runs`` rows, so they survive restarts.
The background scheduler only polls for due rows and hands them to the same
``run_auto_apply`` entrypoint an interactive request uses.
"""

import logging
import traceback
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED, EVENT_JOB_MISSED
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from autoapply.apply.channels import ApplyChannelClassifier, UrlPatternClassifier
from autoapply.apply.policy import AutoApplyOutcome, Candidate, Notifier, run_auto_apply
from autoapply.config import AppConfig
from autoapply.storage.repository import JobRepository

logger = logging.getLogger("autoapply.scheduler")

_scheduler: BackgroundScheduler | None = None


@dataclass
class ScheduleOutcome:
    mode: str
    run_id: Optional[str] = None
    fire_at: Optional[datetime] = None
    outcome: Optional[AutoApplyOutcome] = None
    message: str = ""

    def to_dict(self) -> dict:
        data = {"mode": self.mode, "message": self.message}
        if self.run_id:
            data["run_id"] = self.run_id
        if self.fire_at:
            data["fire_at"] = self.fire_at.isoformat()
        if self.outcome:
            data["outcome"] = self.outcome.to_dict()
        return data


@dataclass
class ProcessedRuns:
    executed: int = 0
    failed: int = 0
    run_ids: list[str] = field(default_factory=list)


def next_fire_time(mode: str, now: datetime, daily_hour: int = 9) -> Optional[datetime]:
    """When a deferred run in ``mode`` should fire, or None if it should not be deferred."""
    if mode == "after_1hr":
        return now + timedelta(hours=1)
    if mode == "daily_automatic":
        slot = now.replace(hour=daily_hour, minute=0, second=0, microsecond=0)
        if slot <= now:
            slot += timedelta(days=1)
        return slot
    return None


def schedule_auto_apply(
    repository: JobRepository,
    user_id: str,
    candidates: Iterable[Candidate],
    mode: str,
    config: AppConfig,
    classifier: Optional[ApplyChannelClassifier] = None,
    notifier: Optional[Notifier] = None,
    now: Optional[datetime] = None,
) -> ScheduleOutcome:
    """Run auto-apply now, or persist it for later, according to ``mode``."""
    now = now or datetime.now(timezone.utc)
    candidates = list(candidates)

    if mode == "now":
        outcome = run_auto_apply(repository, user_id, candidates, classifier, notifier, now)
        return ScheduleOutcome(mode, outcome=outcome, message=outcome.message or "Auto-apply completed")

    if mode == "manual":
        return ScheduleOutcome(mode, message="Manual mode - nothing scheduled")

    fire_at = next_fire_time(mode, now, config.auto_apply.daily_run_hour)
    if fire_at is None:
        raise ValueError(f"Unknown schedule mode: {mode}")

    if mode == "daily_automatic":
        # One standing daily run per user
        repository.cancel_pending_runs(user_id, mode)

    run = repository.add_scheduled_run(user_id, mode, fire_at, [c.to_dict() for c in candidates])
    logger.info("[user:%s] Scheduled %s auto-apply for %s", user_id, mode, fire_at.isoformat())
    return ScheduleOutcome(mode, run_id=run.id, fire_at=fire_at, message=f"Auto-apply scheduled for {fire_at:%Y-%m-%d %H:%M} UTC")


def process_due_runs(
    repository: JobRepository,
    config: AppConfig,
    classifier: Optional[ApplyChannelClassifier] = None,
    notifier: Optional[Notifier] = None,
    now: Optional[datetime] = None,
) -> ProcessedRuns:
    """Execute every pending run whose fire time has passed.

    One-off runs end as done/failed; daily runs stay pending and are re-armed
    for the next slot, keeping the last error in ``error_message``.
    """
    now = now or datetime.now(timezone.utc)
    classifier = classifier or UrlPatternClassifier(config.auto_apply.internal_url_patterns)
    processed = ProcessedRuns()

    for run in repository.due_scheduled_runs(now):
        run_id, user_id, mode = run.id, run.user_id, run.mode
        processed.run_ids.append(run_id)
        try:
            candidates = [Candidate.from_dict(c) for c in run.payload or []]
            outcome = run_auto_apply(repository, user_id, candidates, classifier, notifier, now)
            logger.info("[user:%s] Scheduled run %s finished: %s", user_id, run_id, outcome.summary.to_dict())
            processed.executed += 1
            status, message = "done", outcome.message
        except Exception as e:
            logger.error("[user:%s] Scheduled run %s failed: %s", user_id, run_id, e, exc_info=True)
            repository.db.rollback()
            processed.failed += 1
            status, message = "failed", f"{type(e).__name__}: {e}"

        run.attempts = (run.attempts or 0) + 1
        run.last_run_at = now
        run.error_message = message
        if mode == "daily_automatic":
            # Standing daily run: re-arm for the next slot even after a failure
            run.fire_at = next_fire_time(mode, now, config.auto_apply.daily_run_hour)
        else:
            run.status = status
        repository.db.add(run)
        repository.db.commit()

    return processed


# -- APScheduler wiring -----------------------------------------------------

def _job_listener(event):
    """Log scheduler job events for debugging."""
    if event.exception:
        logger.error("Scheduled job %s FAILED: %s", event.job_id, event.exception)
        logger.error("Traceback: %s", event.traceback)
    elif hasattr(event, "job_id"):
        if event.code == EVENT_JOB_MISSED:
            logger.warning("Scheduled job %s MISSED its fire time", event.job_id)
        else:
            logger.debug("Scheduled job %s executed successfully", event.job_id)


def _process_due_runs_wrapper(config: AppConfig) -> None:
    from autoapply.notifications.email_sender import EmailNotifier

    try:
        with JobRepository() as repository:
            notifier = EmailNotifier(config.email, repository.get_user_email)
            processed = process_due_runs(repository, config, notifier=notifier)
        if processed.run_ids:
            logger.info("Processed %d scheduled runs (%d failed)", len(processed.run_ids), processed.failed)
    except Exception:
        logger.error("=== SCHEDULER FAILED processing due runs ===\n%s", traceback.format_exc())
        raise


def _daily_matches_wrapper(config: AppConfig) -> None:
    logger.info("=== SCHEDULER FIRING daily match digest ===")
    from autoapply.pipeline import run_daily_matches

    run_daily_matches(config)
    logger.info("=== SCHEDULER COMPLETED daily match digest ===")


def init_scheduler(config: AppConfig) -> None:
    global _scheduler
    if _scheduler is not None:
        return
    _scheduler = BackgroundScheduler(timezone="UTC")
    _scheduler.add_listener(_job_listener, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR | EVENT_JOB_MISSED)
    _scheduler.add_job(
        _process_due_runs_wrapper,
        trigger=IntervalTrigger(seconds=config.auto_apply.poll_interval_seconds),
        args=[config],
        id="process_due_runs",
        name="Process due auto-apply runs",
        coalesce=True,
        max_instances=1,
        replace_existing=True,
    )
    _scheduler.add_job(
        _daily_matches_wrapper,
        trigger=CronTrigger(hour=config.auto_apply.daily_run_hour, minute=0, timezone="UTC"),
        args=[config],
        id="daily_match_digest",
        name="Daily match digest",
        misfire_grace_time=3600,
        coalesce=True,
        replace_existing=True,
    )
    _scheduler.start()
    logger.info("APScheduler started")


def shutdown_scheduler() -> None:
    global _scheduler
    if _scheduler is not None:
        _scheduler.shutdown(wait=False)
        _scheduler = None
        logger.info("APScheduler stopped")


def get_scheduler_info() -> dict:
    """Return diagnostic info about the scheduler state."""
    if _scheduler is None:
        return {"running": False, "jobs": []}
    jobs = []
    for job in _scheduler.get_jobs():
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run_time": str(job.next_run_time) if job.next_run_time else None,
            "trigger": str(job.trigger),
        })
    return {
        "running": _scheduler.running,
        "jobs": jobs,
    }
