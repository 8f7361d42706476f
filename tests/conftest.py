"""Shared fixtures: a throwaway SQLite database per test and row factories."""

import itertools
import os
import tempfile
from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from autoapply.models import (
    Application,
    Base,
    JobPostingRow,
    JobPreferencesRow,
    ResumeAnalysisRow,
    User,
)
from autoapply.storage.repository import JobRepository

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def engine():
    """Create a temporary database for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = os.path.join(tmpdir, "test.db")
        eng = create_engine(f"sqlite:///{db_path}", connect_args={"check_same_thread": False})
        Base.metadata.create_all(eng)
        yield eng
        eng.dispose()


@pytest.fixture
def db_session(engine):
    Session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    session = Session()
    yield session
    session.close()


@pytest.fixture
def repository(db_session):
    return JobRepository(db_session)


@pytest.fixture
def user(db_session):
    u = User(email="jane@example.com", name="Jane Doe")
    db_session.add(u)
    db_session.commit()
    return u


@pytest.fixture
def add_job(db_session):
    counter = itertools.count(1)

    def _add(**overrides) -> JobPostingRow:
        n = next(counter)
        data = {
            "external_id": f"ext-{n}",
            "source": "test",
            "title": f"Software Engineer {n}",
            "company": f"Company {n}",
            "apply_url": None,
        }
        data.update(overrides)
        row = JobPostingRow(**data)
        db_session.add(row)
        db_session.commit()
        return row

    return _add


@pytest.fixture
def set_preferences(db_session):
    def _set(user_id: str, **overrides) -> JobPreferencesRow:
        row = db_session.query(JobPreferencesRow).filter_by(user_id=user_id).first()
        if row is None:
            row = JobPreferencesRow(user_id=user_id)
            db_session.add(row)
        data = {
            "auto_apply_enabled": True,
            "auto_apply_threshold": 75,
            "auto_apply_daily_limit": 10,
            "auto_apply_schedule": "now",
            "auto_apply_email_notifications": True,
        }
        data.update(overrides)
        for key, value in data.items():
            setattr(row, key, value)
        db_session.commit()
        return row

    return _set


@pytest.fixture
def add_analysis(db_session):
    def _add(user_id: str, skills=None, experience_years=None, analyzed_at=None) -> ResumeAnalysisRow:
        row = ResumeAnalysisRow(
            user_id=user_id,
            skills=skills or [],
            experience_years=experience_years,
            analyzed_at=analyzed_at or datetime.now(timezone.utc),
        )
        db_session.add(row)
        db_session.commit()
        return row

    return _add


@pytest.fixture
def add_application(db_session):
    def _add(user_id: str, job: JobPostingRow, status: str = "auto_applied", created_at=None) -> Application:
        row = Application(
            user_id=user_id,
            job_posting_id=job.id,
            job_title=job.title,
            company_name=job.company,
            status=status,
            created_at=created_at or NOW,
        )
        db_session.add(row)
        db_session.commit()
        return row

    return _add


class FakeNotifier:
    def __init__(self, result=True, error=None):
        self.result = result
        self.error = error
        self.sent = []

    def send_notification(self, user_id, notification_type, payload):
        self.sent.append((user_id, notification_type, payload))
        if self.error:
            raise self.error
        return self.result


@pytest.fixture
def notifier():
    return FakeNotifier()


def frozen_datetime(instant):
    """A datetime class whose now() always returns ``instant``."""

    class _Frozen(datetime):
        @classmethod
        def now(cls, tz=None):
            return instant if tz is None else instant.astimezone(tz)

    return _Frozen
