"""Job posting model: aggregated listings, deduplicated on (external_id, source)."""

from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from autoapply.jobs.models import JobPosting

from .base import Base, new_id


class JobPostingRow(Base):
    __tablename__ = "job_postings"
    __table_args__ = (
        UniqueConstraint("external_id", "source", name="uq_job_external_source"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    external_id: Mapped[str] = mapped_column(String(255), nullable=False)
    source: Mapped[str] = mapped_column(String(50), nullable=False, default="")

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    company: Mapped[str] = mapped_column(String(255), nullable=False)
    company_logo_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    required_skills: Mapped[list | None] = mapped_column(JSON, nullable=True)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    work_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    salary_min: Mapped[int | None] = mapped_column(Integer, nullable=True)
    salary_max: Mapped[int | None] = mapped_column(Integer, nullable=True)
    salary_currency: Mapped[str | None] = mapped_column(String(10), nullable=True)
    employment_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    experience_level: Mapped[str | None] = mapped_column(String(20), nullable=True)
    apply_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)

    posted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), index=True
    )

    def to_job_posting(self) -> JobPosting:
        """Convert DB row to the JobPosting dataclass."""
        return JobPosting(
            id=self.id,
            external_id=self.external_id,
            source=self.source or "",
            title=self.title,
            company=self.company,
            description=self.description or "",
            required_skills=list(self.required_skills or []),
            location=self.location or "",
            work_type=self.work_type or "",
            salary_min=self.salary_min,
            salary_max=self.salary_max,
            salary_currency=self.salary_currency or "USD",
            employment_type=self.employment_type or "",
            experience_level=self.experience_level,
            apply_url=self.apply_url,
            company_logo_url=self.company_logo_url,
            posted_at=self.posted_at,
            expires_at=self.expires_at,
        )
