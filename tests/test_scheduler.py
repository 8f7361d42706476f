"""Tests for schedule modes and processing of deferred runs."""

from datetime import datetime, timedelta, timezone

import pytest

import autoapply.scheduler as scheduler
from autoapply.apply.policy import Candidate
from autoapply.config import AppConfig
from autoapply.errors import UpstreamError
from autoapply.models import Application, ScheduledRun
from autoapply.scheduler import next_fire_time, process_due_runs, schedule_auto_apply

from conftest import NOW


@pytest.fixture
def config():
    return AppConfig()


class TestNextFireTime:
    def test_after_one_hour(self):
        assert next_fire_time("after_1hr", NOW) == NOW + timedelta(hours=1)

    def test_daily_later_today(self):
        now = datetime(2026, 3, 2, 7, 30, tzinfo=timezone.utc)
        assert next_fire_time("daily_automatic", now, daily_hour=9) == datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)

    def test_daily_rolls_to_tomorrow(self):
        assert next_fire_time("daily_automatic", NOW, daily_hour=9) == datetime(2026, 3, 3, 9, 0, tzinfo=timezone.utc)

    def test_immediate_modes(self):
        assert next_fire_time("now", NOW) is None
        assert next_fire_time("manual", NOW) is None


class TestScheduleAutoApply:
    def test_now_runs_immediately(self, repository, db_session, user, add_job, set_preferences, config):
        set_preferences(user.id)
        job = add_job()
        result = schedule_auto_apply(repository, user.id, [Candidate(job.id, 90)], "now", config, now=NOW)

        assert result.outcome.summary.auto_applied == 1
        assert db_session.query(ScheduledRun).count() == 0

    def test_after_one_hour_is_deferred(self, repository, db_session, user, add_job, set_preferences, config):
        set_preferences(user.id)
        job = add_job()
        result = schedule_auto_apply(repository, user.id, [Candidate(job.id, 90)], "after_1hr", config, now=NOW)

        assert result.outcome is None
        assert result.fire_at == NOW + timedelta(hours=1)
        assert db_session.query(Application).count() == 0
        run = db_session.query(ScheduledRun).one()
        assert run.payload == [{"job_id": job.id, "score": 90, "reasons": {}}]

    def test_daily_replaces_pending_daily_run(self, repository, user, config):
        first = schedule_auto_apply(repository, user.id, [Candidate("a", 90)], "daily_automatic", config, now=NOW)
        second = schedule_auto_apply(repository, user.id, [Candidate("b", 90)], "daily_automatic", config, now=NOW)

        pending = repository.pending_runs(user.id)
        assert [r.id for r in pending] == [second.run_id]
        assert first.run_id != second.run_id

    def test_manual_does_nothing(self, repository, db_session, user, config):
        result = schedule_auto_apply(repository, user.id, [Candidate("a", 90)], "manual", config, now=NOW)
        assert result.run_id is None
        assert db_session.query(ScheduledRun).count() == 0

    def test_unknown_mode(self, repository, user, config):
        with pytest.raises(ValueError):
            schedule_auto_apply(repository, user.id, [], "weekly", config, now=NOW)


class TestProcessDueRuns:
    def test_runs_only_due_records(self, repository, db_session, user, add_job, set_preferences, config):
        set_preferences(user.id)
        job = add_job()
        due = schedule_auto_apply(repository, user.id, [Candidate(job.id, 90)], "after_1hr", config, now=NOW)

        assert process_due_runs(repository, config, now=NOW + timedelta(minutes=30)).run_ids == []

        processed = process_due_runs(repository, config, now=NOW + timedelta(hours=1))
        assert processed.run_ids == [due.run_id]
        assert processed.executed == 1

        db_session.expire_all()
        run = db_session.get(ScheduledRun, due.run_id)
        assert run.status == "done"
        assert run.attempts == 1
        assert db_session.query(Application).filter_by(job_posting_id=job.id).count() == 1

    def test_daily_run_is_rearmed(self, repository, db_session, user, add_job, set_preferences, config):
        set_preferences(user.id)
        job = add_job()
        result = schedule_auto_apply(repository, user.id, [Candidate(job.id, 90)], "daily_automatic", config, now=NOW)

        fired_at = result.fire_at
        process_due_runs(repository, config, now=fired_at)

        db_session.expire_all()
        run = db_session.get(ScheduledRun, result.run_id)
        assert run.status == "pending"
        assert run.fire_at.replace(tzinfo=timezone.utc) == fired_at + timedelta(days=1)

        # Next day the same candidate is already applied, never re-applied
        process_due_runs(repository, config, now=fired_at + timedelta(days=1))
        assert db_session.query(Application).count() == 1

    def test_failure_marks_run_failed(self, repository, db_session, user, config, monkeypatch):
        result = schedule_auto_apply(repository, user.id, [Candidate("a", 90)], "after_1hr", config, now=NOW)

        def boom(*args, **kwargs):
            raise RuntimeError("database on fire")

        monkeypatch.setattr(scheduler, "run_auto_apply", boom)
        processed = process_due_runs(repository, config, now=NOW + timedelta(hours=2))

        assert processed.failed == 1
        db_session.expire_all()
        run = db_session.get(ScheduledRun, result.run_id)
        assert run.status == "failed"
        assert run.error_message == "RuntimeError: database on fire"
        assert run.attempts == 1

    def test_failed_daily_run_is_rearmed(self, repository, db_session, user, config, monkeypatch):
        result = schedule_auto_apply(repository, user.id, [Candidate("a", 90)], "daily_automatic", config, now=NOW)

        def boom(*args, **kwargs):
            raise UpstreamError("job store unavailable")

        monkeypatch.setattr(scheduler, "run_auto_apply", boom)
        processed = process_due_runs(repository, config, now=result.fire_at)

        assert processed.failed == 1
        db_session.expire_all()
        run = db_session.get(ScheduledRun, result.run_id)
        assert run.status == "pending"
        assert run.error_message == "UpstreamError: job store unavailable"
        assert run.fire_at.replace(tzinfo=timezone.utc) == result.fire_at + timedelta(days=1)


class TestBackgroundScheduler:
    def test_start_and_stop(self, config):
        scheduler.init_scheduler(config)
        try:
            info = scheduler.get_scheduler_info()
            assert info["running"] is True
            assert {job["id"] for job in info["jobs"]} == {"process_due_runs", "daily_match_digest"}
        finally:
            scheduler.shutdown_scheduler()
        assert scheduler.get_scheduler_info() == {"running": False, "jobs": []}
