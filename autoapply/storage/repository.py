"""SQLAlchemy-backed storage for postings, profiles, applications and analytics."""

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, Optional

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from autoapply.errors import (
    ApplicationWriteError,
    DuplicateApplicationError,
    QuotaExhaustedError,
    UpstreamError,
)
from autoapply.jobs.models import JobPosting
from autoapply.models import (
    APPLIED_STATUSES,
    Application,
    ApplicationStatus,
    DailyQuota,
    JobAnalytics,
    JobPostingRow,
    JobPreferencesRow,
    ResumeAnalysisRow,
    ScheduledRun,
    SessionLocal,
    User,
)
from autoapply.profile.models import JobPreferences, ResumeAnalysis, UserProfile

logger = logging.getLogger("autoapply.storage")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """UTC [start, end) of a calendar day."""
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


class JobRepository:
    """Storage collaborator used by the matcher, the auto-apply engine and the digest.

    Wraps a single SQLAlchemy session. When no session is passed one is
    opened from ``SessionLocal`` and closed with the repository.
    """

    def __init__(self, db: Optional[Session] = None):
        self._owns_session = db is None
        self.db: Session = db if db is not None else SessionLocal()

    # -- profile -------------------------------------------------------

    def get_user_email(self, user_id: str) -> Optional[str]:
        row = self.db.query(User.email).filter(User.id == user_id, User.is_active.is_(True)).first()
        return row.email if row else None

    def get_resume_analysis(self, user_id: str) -> Optional[ResumeAnalysis]:
        """Most recent analysis for the user, or None."""
        row = (
            self.db.query(ResumeAnalysisRow)
            .filter(ResumeAnalysisRow.user_id == user_id)
            .order_by(ResumeAnalysisRow.analyzed_at.desc())
            .first()
        )
        return row.to_analysis() if row else None

    def get_job_preferences(self, user_id: str) -> Optional[JobPreferences]:
        row = self.db.query(JobPreferencesRow).filter(JobPreferencesRow.user_id == user_id).first()
        return row.to_preferences() if row else None

    def get_profile(self, user_id: str) -> UserProfile:
        return UserProfile(
            analysis=self.get_resume_analysis(user_id),
            preferences=self.get_job_preferences(user_id),
        )

    def users_with_preferences(self) -> list[str]:
        rows = self.db.query(JobPreferencesRow.user_id).order_by(JobPreferencesRow.user_id).all()
        return [row.user_id for row in rows]

    # -- postings ------------------------------------------------------

    def get_job_postings(self, job_ids: Iterable[str]) -> list[JobPosting]:
        """Fetch postings by id, preserving the order of ``job_ids``. Unknown ids are skipped."""
        ids = list(dict.fromkeys(job_ids))
        if not ids:
            return []
        try:
            rows = self.db.query(JobPostingRow).filter(JobPostingRow.id.in_(ids)).all()
        except SQLAlchemyError as e:
            raise UpstreamError(f"Failed to fetch job postings: {e}") from e
        by_id = {row.id: row.to_job_posting() for row in rows}
        return [by_id[job_id] for job_id in ids if job_id in by_id]

    def get_recent_postings(self, since: datetime, limit: int = 100) -> list[JobPosting]:
        """Postings ingested since ``since``, newest first."""
        try:
            rows = (
                self.db.query(JobPostingRow)
                .filter(JobPostingRow.created_at >= since)
                .order_by(JobPostingRow.created_at.desc())
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            raise UpstreamError(f"Failed to fetch recent job postings: {e}") from e
        return [row.to_job_posting() for row in rows]

    # -- applications --------------------------------------------------

    def find_existing_applications(self, user_id: str, job_ids: Optional[Iterable[str]] = None) -> set[str]:
        """Job ids the user already has an application for (all of them when ``job_ids`` is None)."""
        query = self.db.query(Application.job_posting_id).filter(
            Application.user_id == user_id,
            Application.job_posting_id.isnot(None),
        )
        if job_ids is not None:
            ids = list(job_ids)
            if not ids:
                return set()
            query = query.filter(Application.job_posting_id.in_(ids))
        return {row.job_posting_id for row in query.all()}

    def count_today_auto_applied(self, user_id: str, day: date) -> int:
        start, end = day_bounds(day)
        return self.db.query(func.count(Application.id)).filter(
            Application.user_id == user_id,
            Application.status == ApplicationStatus.AUTO_APPLIED.value,
            Application.created_at >= start,
            Application.created_at < end,
        ).scalar() or 0

    def insert_application(
        self,
        user_id: str,
        job: JobPosting,
        status: str,
        match_score: Optional[int] = None,
        match_reasons: Optional[dict] = None,
        now: Optional[datetime] = None,
        quota_limit: Optional[int] = None,
    ) -> Application:
        """Write one application row in its own transaction.

        With ``quota_limit`` set, a slot in today's quota counter is reserved
        in the same transaction; the row is only written if a slot was free.

        Raises DuplicateApplicationError, QuotaExhaustedError or
        ApplicationWriteError. The session is rolled back on every failure.
        """
        now = now or utc_now()
        try:
            if quota_limit is not None:
                self._reserve_quota_slot(user_id, now.date(), quota_limit)

            application = Application(
                user_id=user_id,
                job_posting_id=job.id,
                job_title=job.title,
                company_name=job.company,
                company_logo_url=job.company_logo_url,
                job_url=job.apply_url,
                job_description=job.description,
                location=job.location,
                work_type=job.work_type,
                salary_range=job.salary_range,
                status=status,
                applied_at=now if status in APPLIED_STATUSES else None,
                match_score=match_score,
                match_reasons=match_reasons,
                created_at=now,
            )
            self.db.add(application)
            self.db.flush()
            self.db.commit()
            return application

        except QuotaExhaustedError:
            self.db.rollback()
            raise
        except IntegrityError as e:
            self.db.rollback()
            if job.id in self.find_existing_applications(user_id, [job.id]):
                raise DuplicateApplicationError(f"Application already exists for job {job.id}") from e
            raise ApplicationWriteError(str(e.orig or e)) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            raise ApplicationWriteError(str(e)) from e

    def _reserve_quota_slot(self, user_id: str, day: date, limit: int) -> None:
        """Atomically take one slot of the user's daily quota or raise QuotaExhaustedError."""
        self._ensure_quota_row(user_id, day)
        result = self.db.execute(
            update(DailyQuota)
            .where(
                DailyQuota.user_id == user_id,
                DailyQuota.day == day,
                DailyQuota.used < limit,
            )
            .values(used=DailyQuota.used + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise QuotaExhaustedError(f"Daily auto-apply limit of {limit} reached")

    def _ensure_quota_row(self, user_id: str, day: date) -> None:
        exists = self.db.query(DailyQuota.id).filter(
            DailyQuota.user_id == user_id, DailyQuota.day == day
        ).first()
        if exists is not None:
            return
        used = self.count_today_auto_applied(user_id, day)
        self.db.add(DailyQuota(user_id=user_id, day=day, used=used))
        try:
            self.db.commit()
        except IntegrityError:
            # Another run created today's row first
            self.db.rollback()

    def quota_used(self, user_id: str, day: date) -> int:
        row = self.db.query(DailyQuota.used).filter(
            DailyQuota.user_id == user_id, DailyQuota.day == day
        ).first()
        return row.used if row else 0

    # -- scheduled runs ------------------------------------------------

    def add_scheduled_run(self, user_id: str, mode: str, fire_at: datetime, payload: list[dict]) -> ScheduledRun:
        run = ScheduledRun(user_id=user_id, mode=mode, fire_at=fire_at, payload=payload, status="pending")
        self.db.add(run)
        self.db.commit()
        return run

    def cancel_pending_runs(self, user_id: str, mode: Optional[str] = None) -> int:
        query = self.db.query(ScheduledRun).filter(
            ScheduledRun.user_id == user_id, ScheduledRun.status == "pending"
        )
        if mode:
            query = query.filter(ScheduledRun.mode == mode)
        cancelled = query.update({ScheduledRun.status: "cancelled"}, synchronize_session=False)
        self.db.commit()
        return cancelled

    def due_scheduled_runs(self, now: datetime) -> list[ScheduledRun]:
        return (
            self.db.query(ScheduledRun)
            .filter(ScheduledRun.status == "pending", ScheduledRun.fire_at <= now)
            .order_by(ScheduledRun.fire_at)
            .all()
        )

    def pending_runs(self, user_id: str) -> list[ScheduledRun]:
        return (
            self.db.query(ScheduledRun)
            .filter(ScheduledRun.user_id == user_id, ScheduledRun.status == "pending")
            .order_by(ScheduledRun.fire_at)
            .all()
        )

    # -- analytics -----------------------------------------------------

    def upsert_daily_analytics(
        self,
        user_id: str,
        day: date,
        auto_applied_delta: int = 0,
        manual_required_delta: int = 0,
        jobs_fetched: Optional[int] = None,
    ) -> None:
        """Increment today's counters, creating the row on first use."""
        values = {
            JobAnalytics.jobs_auto_applied: func.coalesce(JobAnalytics.jobs_auto_applied, 0) + auto_applied_delta,
            JobAnalytics.jobs_manual_required: func.coalesce(JobAnalytics.jobs_manual_required, 0) + manual_required_delta,
        }
        if jobs_fetched is not None:
            values[JobAnalytics.jobs_fetched] = jobs_fetched

        for _ in range(2):
            result = self.db.execute(
                update(JobAnalytics)
                .where(JobAnalytics.user_id == user_id, JobAnalytics.date == day)
                .values(values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount:
                self.db.commit()
                return

            self.db.add(JobAnalytics(
                user_id=user_id,
                date=day,
                jobs_fetched=jobs_fetched or 0,
                jobs_auto_applied=auto_applied_delta,
                jobs_manual_required=manual_required_delta,
            ))
            try:
                self.db.commit()
                return
            except IntegrityError:
                # Row created concurrently - retry as an update
                self.db.rollback()

        raise ApplicationWriteError(f"Could not upsert analytics for user {user_id} on {day}")

    def get_analytics(self, user_id: str, since: date) -> list[JobAnalytics]:
        return (
            self.db.query(JobAnalytics)
            .filter(JobAnalytics.user_id == user_id, JobAnalytics.date >= since)
            .order_by(JobAnalytics.date)
            .all()
        )

    # -- lifecycle -----------------------------------------------------

    def close(self):
        if self._owns_session and self.db is not None:
            self.db.close()
            self.db = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
