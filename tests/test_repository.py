"""Tests for the SQLAlchemy repository."""

from datetime import datetime, timedelta, timezone

import pytest

from autoapply.errors import DuplicateApplicationError, QuotaExhaustedError
from autoapply.models import JobAnalytics

from conftest import NOW


class TestProfile:
    def test_latest_analysis_wins(self, repository, user, add_analysis):
        add_analysis(user.id, skills=["java"], analyzed_at=NOW - timedelta(days=10))
        add_analysis(user.id, skills=["python"], experience_years=6, analyzed_at=NOW)

        analysis = repository.get_resume_analysis(user.id)
        assert analysis.skills == ["python"]
        assert analysis.experience_years == 6

    def test_missing_profile_halves(self, repository, user):
        profile = repository.get_profile(user.id)
        assert profile.analysis is None
        assert profile.preferences is None

    def test_preferences_are_normalized(self, repository, user, set_preferences):
        set_preferences(user.id, auto_apply_threshold=-3, auto_apply_schedule="sometimes", remote_preference="moon")
        prefs = repository.get_job_preferences(user.id)
        assert prefs.auto_apply.threshold == 0
        assert prefs.auto_apply.schedule == "now"
        assert prefs.remote_preference == "any"

    def test_user_email(self, repository, user):
        assert repository.get_user_email(user.id) == "jane@example.com"
        assert repository.get_user_email("nobody") is None


class TestPostings:
    def test_preserves_requested_order(self, repository, add_job):
        a, b, c = add_job(), add_job(), add_job()
        jobs = repository.get_job_postings([c.id, "missing", a.id, b.id])
        assert [j.id for j in jobs] == [c.id, a.id, b.id]

    def test_empty_request(self, repository):
        assert repository.get_job_postings([]) == []

    def test_recent_postings(self, repository, add_job):
        old = add_job(created_at=datetime.now(timezone.utc) - timedelta(days=3))
        new = add_job()
        recent = repository.get_recent_postings(datetime.now(timezone.utc) - timedelta(days=1))
        assert [j.id for j in recent] == [new.id]
        assert old.id not in {j.id for j in recent}


class TestApplications:
    def test_insert_and_find(self, repository, user, add_job):
        job = add_job()
        repository.insert_application(user.id, job.to_job_posting(), "auto_applied", 90, {}, NOW)
        assert repository.find_existing_applications(user.id, [job.id]) == {job.id}
        assert repository.find_existing_applications(user.id) == {job.id}
        assert repository.find_existing_applications(user.id, []) == set()

    def test_duplicate_insert(self, repository, user, add_job):
        job = add_job().to_job_posting()
        repository.insert_application(user.id, job, "auto_applied", now=NOW)
        with pytest.raises(DuplicateApplicationError):
            repository.insert_application(user.id, job, "auto_applied", now=NOW)

    def test_quota_reservation(self, repository, user, add_job):
        first, second = add_job().to_job_posting(), add_job().to_job_posting()
        repository.insert_application(user.id, first, "auto_applied", now=NOW, quota_limit=1)
        with pytest.raises(QuotaExhaustedError):
            repository.insert_application(user.id, second, "auto_applied", now=NOW, quota_limit=1)

        assert repository.quota_used(user.id, NOW.date()) == 1
        assert repository.find_existing_applications(user.id) == {first.id}

    def test_quota_seeded_from_existing_rows(self, repository, user, add_job, add_application):
        add_application(user.id, add_job())
        add_application(user.id, add_job())
        repository.insert_application(user.id, add_job().to_job_posting(), "auto_applied", now=NOW, quota_limit=5)
        assert repository.quota_used(user.id, NOW.date()) == 3

    def test_count_today_ignores_other_statuses(self, repository, user, add_job, add_application):
        add_application(user.id, add_job(), status="auto_applied")
        add_application(user.id, add_job(), status="manual_required")
        add_application(user.id, add_job(), status="auto_applied", created_at=NOW - timedelta(days=1))
        assert repository.count_today_auto_applied(user.id, NOW.date()) == 1


class TestAnalytics:
    def test_upsert_creates_then_increments(self, repository, db_session, user):
        repository.upsert_daily_analytics(user.id, NOW.date(), auto_applied_delta=2)
        repository.upsert_daily_analytics(user.id, NOW.date(), auto_applied_delta=1, manual_required_delta=3)
        db_session.expire_all()

        row = db_session.query(JobAnalytics).filter_by(user_id=user.id).one()
        assert row.jobs_auto_applied == 3
        assert row.jobs_manual_required == 3

    def test_jobs_fetched_is_set(self, repository, db_session, user):
        repository.upsert_daily_analytics(user.id, NOW.date(), jobs_fetched=4)
        repository.upsert_daily_analytics(user.id, NOW.date(), jobs_fetched=7)
        db_session.expire_all()
        row = db_session.query(JobAnalytics).filter_by(user_id=user.id).one()
        assert row.jobs_fetched == 7

    def test_get_analytics_window(self, repository, user):
        repository.upsert_daily_analytics(user.id, NOW.date() - timedelta(days=40), auto_applied_delta=1)
        repository.upsert_daily_analytics(user.id, NOW.date(), auto_applied_delta=1)
        rows = repository.get_analytics(user.id, NOW.date() - timedelta(days=29))
        assert [r.date for r in rows] == [NOW.date()]


class TestScheduledRuns:
    def test_due_and_cancel(self, repository, user):
        due = repository.add_scheduled_run(user.id, "after_1hr", NOW - timedelta(minutes=1), [])
        later = repository.add_scheduled_run(user.id, "daily_automatic", NOW + timedelta(hours=5), [])

        assert [r.id for r in repository.due_scheduled_runs(NOW)] == [due.id]
        assert repository.cancel_pending_runs(user.id, "daily_automatic") == 1
        assert [r.id for r in repository.pending_runs(user.id)] == [due.id]
        assert later.id not in {r.id for r in repository.due_scheduled_runs(NOW + timedelta(days=1))}
