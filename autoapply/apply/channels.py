"""Apply-channel classification: can the system record an application itself?"""

import logging
from typing import Iterable, Protocol

from autoapply.jobs.models import JobPosting

logger = logging.getLogger("autoapply.apply.channels")

DEFAULT_INTERNAL_PATTERNS = ("linkedin.com/jobs/view",)


class ApplyChannelClassifier(Protocol):
    def can_auto_apply(self, job: JobPosting) -> bool:
        ...


class UrlPatternClassifier:
    """Treats jobs without an apply URL, or whose URL matches a known internal
    channel pattern, as auto-appliable. Everything else goes to an external
    ATS and needs the user to apply manually.
    """

    def __init__(self, patterns: Iterable[str] = DEFAULT_INTERNAL_PATTERNS):
        self.patterns = tuple(p.strip().lower() for p in patterns if p and p.strip())

    def can_auto_apply(self, job: JobPosting) -> bool:
        url = (job.apply_url or "").strip().lower()
        if not url:
            return True
        return any(pattern in url for pattern in self.patterns)

    def __repr__(self) -> str:
        return f"UrlPatternClassifier(patterns={list(self.patterns)!r})"
