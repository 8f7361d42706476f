"""Skill normalization, title heuristics, and small numeric helpers."""

import math
import re
from typing import Iterable, Optional

# Minimum years of experience expected for each level tag
LEVEL_MIN_YEARS = {
    "entry": 0,
    "mid": 2,
    "senior": 5,
    "lead": 7,
    "executive": 10,
}

# Title keywords that imply a level when the posting carries no tag.
# Checked in order, so "Senior Engineering Lead" resolves to lead.
TITLE_LEVEL_KEYWORDS = (
    ("executive", (r"director", r"vp", r"vice president", r"head of", r"chief", r"c[te]o")),
    ("lead", (r"lead", r"principal", r"staff")),
    ("senior", (r"senior", r"sr\.?")),
    ("entry", (r"junior", r"jr\.?", r"entry", r"intern", r"graduate")),
)


def normalize_skills(skills: Iterable[str]) -> list[str]:
    """Lowercase and strip skill tokens, dropping blanks."""
    normalized = []
    for skill in skills or []:
        if skill is None:
            continue
        token = str(skill).strip().lower()
        if token:
            normalized.append(token)
    return normalized


def skills_overlap(job_skill: str, profile_skills: Iterable[str]) -> bool:
    """True if any profile skill is a substring of the job skill or vice versa."""
    return any(s in job_skill or job_skill in s for s in profile_skills)


def level_from_title(title: str) -> Optional[str]:
    """Infer an experience level from keywords in a job title."""
    title_lower = (title or "").lower()
    for level, keywords in TITLE_LEVEL_KEYWORDS:
        for keyword in keywords:
            if re.search(rf"\b{keyword}(?!\w)", title_lower):
                return level
    return None


def leading_token(title: str) -> str:
    """First whitespace-separated word of a title, lowercased."""
    parts = (title or "").lower().split()
    return parts[0] if parts else ""


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (not banker's rounding)."""
    return int(math.floor(value + 0.5))


def clamp_score(value: float) -> int:
    """Round and clamp a percentage into [0, 100]."""
    return max(0, min(100, round_half_up(value)))
