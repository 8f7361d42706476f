"""Profile data model: resume analysis plus stated job preferences."""

from dataclasses import dataclass, field, replace
from typing import Optional

REMOTE_PREFERENCES = ("remote", "hybrid", "onsite", "any")
SCHEDULE_MODES = ("now", "after_1hr", "daily_automatic", "manual")

DEFAULT_THRESHOLD = 75
DEFAULT_DAILY_LIMIT = 10


@dataclass
class ResumeAnalysis:
    """Structured fields extracted from a resume by the external analysis service."""

    skills: list[str] = field(default_factory=list)
    experience_years: Optional[int] = None
    summary: str = ""


@dataclass
class AutoApplySettings:
    enabled: bool = False
    threshold: int = DEFAULT_THRESHOLD
    daily_limit: int = DEFAULT_DAILY_LIMIT
    schedule: str = "now"
    email_notifications: bool = True

    def normalized(self) -> "AutoApplySettings":
        """Return a copy with user-editable values clamped into their valid ranges."""
        return replace(
            self,
            enabled=bool(self.enabled),
            threshold=max(0, min(100, _as_int(self.threshold, DEFAULT_THRESHOLD))),
            daily_limit=max(0, _as_int(self.daily_limit, DEFAULT_DAILY_LIMIT)),
            schedule=self.schedule if self.schedule in SCHEDULE_MODES else "now",
            email_notifications=bool(self.email_notifications),
        )


@dataclass
class JobPreferences:
    desired_roles: list[str] = field(default_factory=list)
    locations: list[str] = field(default_factory=list)
    remote_preference: str = "any"
    min_salary: Optional[int] = None
    max_salary: Optional[int] = None
    auto_apply: AutoApplySettings = field(default_factory=AutoApplySettings)

    def __post_init__(self):
        if self.remote_preference not in REMOTE_PREFERENCES:
            self.remote_preference = "any"


@dataclass
class UserProfile:
    """Everything the scorer knows about a user. Either half may be missing."""

    analysis: Optional[ResumeAnalysis] = None
    preferences: Optional[JobPreferences] = None

    @property
    def skills(self) -> list[str]:
        return self.analysis.skills if self.analysis else []

    @property
    def experience_years(self) -> Optional[int]:
        return self.analysis.experience_years if self.analysis else None

    @property
    def desired_roles(self) -> list[str]:
        return self.preferences.desired_roles if self.preferences else []

    @property
    def locations(self) -> list[str]:
        return self.preferences.locations if self.preferences else []

    @property
    def remote_preference(self) -> str:
        return self.preferences.remote_preference if self.preferences else "any"

    @property
    def min_salary(self) -> Optional[int]:
        return self.preferences.min_salary if self.preferences else None

    @property
    def max_salary(self) -> Optional[int]:
        return self.preferences.max_salary if self.preferences else None


def _as_int(value, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default
