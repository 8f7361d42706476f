"""Per-user, per-day activity counters."""

from datetime import date, datetime, timezone

from sqlalchemy import Date, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, new_id


class JobAnalytics(Base):
    __tablename__ = "job_analytics"
    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_analytics_user_date"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    date: Mapped[date] = mapped_column(Date, nullable=False)

    jobs_fetched: Mapped[int] = mapped_column(Integer, default=0)
    jobs_applied: Mapped[int] = mapped_column(Integer, default=0)
    jobs_auto_applied: Mapped[int] = mapped_column(Integer, default=0)
    jobs_manual_required: Mapped[int] = mapped_column(Integer, default=0)
    jobs_rejected: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "jobs_fetched": self.jobs_fetched or 0,
            "jobs_applied": self.jobs_applied or 0,
            "jobs_auto_applied": self.jobs_auto_applied or 0,
            "jobs_manual_required": self.jobs_manual_required or 0,
            "jobs_rejected": self.jobs_rejected or 0,
        }
