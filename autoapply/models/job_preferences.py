"""Job preferences model: search preferences plus auto-apply settings."""

from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from autoapply.profile.models import (
    DEFAULT_DAILY_LIMIT,
    DEFAULT_THRESHOLD,
    AutoApplySettings,
    JobPreferences,
)

from .base import Base, new_id


class JobPreferencesRow(Base):
    __tablename__ = "job_preferences"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), unique=True, nullable=False)

    desired_roles: Mapped[list | None] = mapped_column(JSON, default=list)
    locations: Mapped[list | None] = mapped_column(JSON, default=list)
    remote_preference: Mapped[str | None] = mapped_column(String(20), default="any")
    min_salary: Mapped[int | None] = mapped_column(Integer, nullable=True)
    max_salary: Mapped[int | None] = mapped_column(Integer, nullable=True)
    salary_currency: Mapped[str | None] = mapped_column(String(10), default="USD")

    # Auto-apply config
    auto_apply_enabled: Mapped[bool | None] = mapped_column(Boolean, default=False)
    auto_apply_threshold: Mapped[int | None] = mapped_column(Integer, default=DEFAULT_THRESHOLD)
    auto_apply_daily_limit: Mapped[int | None] = mapped_column(Integer, default=DEFAULT_DAILY_LIMIT)
    auto_apply_schedule: Mapped[str | None] = mapped_column(String(20), default="now")  # now, after_1hr, daily_automatic, manual
    auto_apply_email_notifications: Mapped[bool | None] = mapped_column(Boolean, default=True)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    user: Mapped["User"] = relationship(back_populates="preferences")

    def to_preferences(self) -> JobPreferences:
        """Convert DB row to the JobPreferences dataclass. NULL columns fall back to defaults."""
        auto_apply = AutoApplySettings(
            enabled=bool(self.auto_apply_enabled),
            threshold=DEFAULT_THRESHOLD if self.auto_apply_threshold is None else self.auto_apply_threshold,
            daily_limit=DEFAULT_DAILY_LIMIT if self.auto_apply_daily_limit is None else self.auto_apply_daily_limit,
            schedule=self.auto_apply_schedule or "now",
            email_notifications=True if self.auto_apply_email_notifications is None else self.auto_apply_email_notifications,
        )
        return JobPreferences(
            desired_roles=list(self.desired_roles or []),
            locations=list(self.locations or []),
            remote_preference=self.remote_preference or "any",
            min_salary=self.min_salary,
            max_salary=self.max_salary,
            auto_apply=auto_apply.normalized(),
        )
