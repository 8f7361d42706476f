"""Job posting data model."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass
class JobPosting:
    """A job posting as ingested from a listing source. Treated as immutable."""

    id: str
    title: str
    company: str
    external_id: str = ""
    source: str = ""
    description: str = ""
    required_skills: list[str] = field(default_factory=list)
    location: str = ""
    work_type: str = ""  # remote, onsite, hybrid (free text)
    salary_min: Optional[int] = None
    salary_max: Optional[int] = None
    salary_currency: str = "USD"
    employment_type: str = ""  # full-time, part-time, contract
    experience_level: Optional[str] = None  # entry, mid, senior, lead, executive
    apply_url: Optional[str] = None
    company_logo_url: Optional[str] = None
    posted_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None

    @property
    def is_remote(self) -> bool:
        return "remote" in (self.work_type or "").lower() or "remote" in (self.location or "").lower()

    @property
    def salary_range(self) -> Optional[str]:
        """Display string like 'USD 100,000 - 150,000', or None without a full band."""
        if not self.salary_min or not self.salary_max:
            return None
        return f"{self.salary_currency or 'USD'} {self.salary_min:,} - {self.salary_max:,}"

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "external_id": self.external_id,
            "source": self.source,
            "title": self.title,
            "company": self.company,
            "description": self.description,
            "required_skills": list(self.required_skills),
            "location": self.location,
            "work_type": self.work_type,
            "salary_min": self.salary_min,
            "salary_max": self.salary_max,
            "salary_currency": self.salary_currency,
            "employment_type": self.employment_type,
            "experience_level": self.experience_level,
            "apply_url": self.apply_url,
            "posted_at": self.posted_at.isoformat() if self.posted_at else None,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
        }
