"""Tests for the daily match digest."""

from datetime import datetime, timedelta, timezone

import pytest

import autoapply.pipeline as pipeline
from autoapply.config import AppConfig
from autoapply.models import JobAnalytics, User
from autoapply.pipeline import run_daily_match_for_user, run_daily_matches
from autoapply.storage.repository import JobRepository

from conftest import FakeNotifier


@pytest.fixture
def config():
    return AppConfig()


class TestDailyMatchForUser:
    def test_sends_digest_of_recent_matches(self, repository, db_session, user, add_job, set_preferences, notifier, config):
        set_preferences(user.id, auto_apply_enabled=True, auto_apply_threshold=80)
        fresh = add_job(title="Platform Engineer", location="Remote")
        add_job(title="Stale Engineer", created_at=datetime.now(timezone.utc) - timedelta(days=3))

        result = run_daily_match_for_user(repository, user.id, config, notifier)

        assert result.status == "success"
        assert result.matches == 1
        _, notification_type, payload = notifier.sent[0]
        assert notification_type == "new_job_matches"
        assert [m["job_id"] for m in payload["matches"]] == [fresh.id]
        assert payload["auto_apply_enabled"] is True
        assert payload["auto_apply_threshold"] == 80

        db_session.expire_all()
        row = db_session.query(JobAnalytics).filter_by(user_id=user.id).one()
        assert row.jobs_fetched == 1

    def test_excludes_already_applied(self, repository, user, add_job, add_application, set_preferences, notifier, config):
        set_preferences(user.id)
        applied = add_job()
        add_application(user.id, applied)
        result = run_daily_match_for_user(repository, user.id, config, notifier)
        assert result.status == "no_matches"
        assert notifier.sent == []

    def test_respects_min_score_and_limit(self, repository, user, add_job, set_preferences, notifier, config):
        set_preferences(user.id)
        for _ in range(4):
            add_job()
        config.matching.digest_limit = 2
        result = run_daily_match_for_user(repository, user.id, config, notifier)
        assert result.matches == 2

        config.matching.digest_min_score = 99
        assert run_daily_match_for_user(repository, user.id, config, notifier).status == "no_matches"

    def test_skips_users_without_preferences(self, repository, user, add_job, notifier, config):
        add_job()
        assert run_daily_match_for_user(repository, user.id, config, notifier).status == "skipped"
        assert notifier.sent == []

    def test_email_failure_is_reported(self, repository, user, add_job, set_preferences, config):
        set_preferences(user.id)
        add_job()
        result = run_daily_match_for_user(repository, user.id, config, FakeNotifier(result=False))
        assert result.status == "email_failed"


class TestDailyMatches:
    def test_one_failure_does_not_stop_the_rest(self, db_session, user, add_job, set_preferences, config, monkeypatch):
        other = User(email="sam@example.com", name="Sam")
        db_session.add(other)
        db_session.commit()
        set_preferences(user.id)
        set_preferences(other.id)
        add_job()

        monkeypatch.setattr(pipeline, "JobRepository", lambda: JobRepository(db_session))
        monkeypatch.setattr(pipeline, "EmailNotifier", lambda *args, **kwargs: FakeNotifier())
        original = pipeline.run_daily_match_for_user

        def flaky(repository, user_id, *args, **kwargs):
            if user_id == user.id:
                raise RuntimeError("boom")
            return original(repository, user_id, *args, **kwargs)

        monkeypatch.setattr(pipeline, "run_daily_match_for_user", flaky)
        results = {r.user_id: r for r in run_daily_matches(config)}

        assert results[user.id].status == "error"
        assert results[user.id].error == "boom"
        assert results[other.id].status == "success"
