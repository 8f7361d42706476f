"""ORM models for the auto-apply backend."""

from .base import Base, SessionLocal, engine, init_db
from .application import APPLIED_STATUSES, Application, ApplicationStatus
from .daily_quota import DailyQuota
from .job_analytics import JobAnalytics
from .job_posting import JobPostingRow
from .job_preferences import JobPreferencesRow
from .resume_analysis import ResumeAnalysisRow
from .scheduled_run import ScheduledRun
from .user import User

__all__ = [
    "Base",
    "SessionLocal",
    "engine",
    "init_db",
    "User",
    "JobPostingRow",
    "ResumeAnalysisRow",
    "JobPreferencesRow",
    "Application",
    "ApplicationStatus",
    "APPLIED_STATUSES",
    "JobAnalytics",
    "DailyQuota",
    "ScheduledRun",
]
