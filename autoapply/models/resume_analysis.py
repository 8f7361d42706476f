"""Resume analysis model: structured fields written by the external extraction service."""

from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from autoapply.profile.models import ResumeAnalysis

from .base import Base, new_id


class ResumeAnalysisRow(Base):
    __tablename__ = "resume_analysis"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False, index=True)

    skills: Mapped[list | None] = mapped_column(JSON, nullable=True)
    experience_years: Mapped[int | None] = mapped_column(Integer, nullable=True)
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)

    analyzed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    user: Mapped["User"] = relationship(back_populates="analyses")

    def to_analysis(self) -> ResumeAnalysis:
        return ResumeAnalysis(
            skills=list(self.skills or []),
            experience_years=self.experience_years,
            summary=self.summary or "",
        )
