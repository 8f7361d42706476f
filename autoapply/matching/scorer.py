"""Canonical match scorer shared by interactive matching, auto-apply and the daily digest.

Every sub-score is a percentage in [0, 100]. When the profile lacks the data
a sub-score needs, the sub-score falls back to a neutral value instead of
zero so that sparse profiles still surface jobs.
"""

import logging
import math
from dataclasses import asdict, dataclass
from typing import Optional

from autoapply.jobs.models import JobPosting
from autoapply.profile.models import UserProfile
from autoapply.utils.text_processing import (
    LEVEL_MIN_YEARS,
    clamp_score,
    leading_token,
    level_from_title,
    normalize_skills,
    skills_overlap,
)

logger = logging.getLogger("autoapply.matching.scorer")

# Neutral / fallback sub-scores
ROLE_NO_PREFERENCE = 60
ROLE_MISMATCH = 30
SKILLS_NO_JOB_SKILLS = 60
SKILLS_NO_PROFILE_SKILLS = 50
EXPERIENCE_UNKNOWN = 60
EXPERIENCE_NEAR = 75
EXPERIENCE_BELOW = 40
LOCATION_ANY = 75
LOCATION_NO_PREFERENCE = 70
LOCATION_REMOTE_FALLBACK = 80
LOCATION_MISMATCH = 30
SALARY_UNKNOWN = 60
SALARY_PARTIAL = 70
SALARY_BELOW = 30

# Explanation thresholds
NOTABLE_SCORE = 70
NOTABLE_LOCATION_SCORE = 80  # the 70/75 location neutrals are not worth mentioning


@dataclass(frozen=True)
class ScoreWeights:
    role: float = 0.30
    skills: float = 0.27
    experience: float = 0.15
    location: float = 0.15
    salary: float = 0.13

    def __post_init__(self):
        values = asdict(self)
        negative = [name for name, w in values.items() if w < 0]
        if negative:
            raise ValueError(f"Score weights must be non-negative: {', '.join(negative)}")
        total = sum(values.values())
        if not math.isclose(total, 1.0, abs_tol=1e-9):
            raise ValueError(f"Score weights must sum to 1.0, got {total}")

    @classmethod
    def from_mapping(cls, mapping: Optional[dict]) -> "ScoreWeights":
        """Build weights from a config mapping; missing keys keep their defaults."""
        if not mapping:
            return cls()
        unknown = set(mapping) - set(asdict(cls()))
        if unknown:
            raise ValueError(f"Unknown score weight(s): {', '.join(sorted(unknown))}")
        return cls(**{k: float(v) for k, v in mapping.items()})


DEFAULT_WEIGHTS = ScoreWeights()


@dataclass(frozen=True)
class SubScores:
    skills_match: int
    experience_match: int
    location_match: int
    salary_match: int
    role_match: int

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class MatchResult:
    job_id: str
    score: int
    reasons: SubScores
    explanation: str

    def to_dict(self) -> dict:
        return {
            "job_id": self.job_id,
            "score": self.score,
            "reasons": self.reasons.to_dict(),
            "explanation": self.explanation,
        }


def score_role(job: JobPosting, profile: UserProfile) -> int:
    roles = [r.strip().lower() for r in profile.desired_roles if r and r.strip()]
    if not roles:
        return ROLE_NO_PREFERENCE

    title = (job.title or "").lower()
    first_word = leading_token(title)
    for role in roles:
        if role in title or (first_word and first_word in role):
            return 100
    return ROLE_MISMATCH


def score_skills(job: JobPosting, profile: UserProfile) -> tuple[int, int]:
    """Return (score, number of matched job skills)."""
    job_skills = normalize_skills(job.required_skills)
    if not job_skills:
        return SKILLS_NO_JOB_SKILLS, 0

    profile_skills = normalize_skills(profile.skills)
    if not profile_skills:
        return SKILLS_NO_PROFILE_SKILLS, 0

    matched = sum(1 for skill in job_skills if skills_overlap(skill, profile_skills))
    return clamp_score(matched / len(job_skills) * 100), matched


def score_experience(job: JobPosting, profile: UserProfile) -> int:
    years = profile.experience_years
    level = (job.experience_level or "").lower() or None
    if level not in LEVEL_MIN_YEARS:
        level = level_from_title(job.title)

    if years is None or level is None:
        return EXPERIENCE_UNKNOWN

    required = LEVEL_MIN_YEARS[level]
    if years >= required:
        return 100
    if years >= required - 1:
        return EXPERIENCE_NEAR
    return EXPERIENCE_BELOW


def score_location(job: JobPosting, profile: UserProfile) -> int:
    preference = profile.remote_preference
    remote = job.is_remote

    if preference == "remote" and remote:
        return 100
    if preference == "any":
        return LOCATION_ANY

    job_location = (job.location or "").lower()
    locations = [loc.strip().lower() for loc in profile.locations if loc and loc.strip()]
    if locations and any(loc in job_location for loc in locations):
        return 100
    if remote and preference != "onsite":
        return LOCATION_REMOTE_FALLBACK
    return LOCATION_MISMATCH if locations else LOCATION_NO_PREFERENCE


def score_salary(job: JobPosting, profile: UserProfile) -> int:
    job_min = job.salary_min or job.salary_max
    job_max = job.salary_max or job.salary_min
    user_min = profile.min_salary
    user_max = profile.max_salary

    if not job_max or not user_min:
        return SALARY_UNKNOWN

    if job_min >= user_min and (not user_max or job_max <= user_max):
        return 100
    if job_max >= user_min:
        return SALARY_PARTIAL
    return SALARY_BELOW


def build_explanation(reasons: SubScores, matched_skills: int, remote: bool) -> str:
    parts = []
    if reasons.skills_match >= NOTABLE_SCORE:
        parts.append(f"Strong skills match ({matched_skills} skills)")
    if reasons.role_match >= NOTABLE_SCORE:
        parts.append("Matches your desired role")
    if reasons.location_match >= NOTABLE_LOCATION_SCORE:
        parts.append("Remote position available" if remote else "Good location match")
    if reasons.salary_match >= NOTABLE_SCORE:
        parts.append("Salary within your range")
    if reasons.experience_match >= NOTABLE_SCORE:
        parts.append("Experience level aligned")
    return ". ".join(parts) if parts else "Potential match based on available data"


def score_job(
    job: JobPosting,
    profile: UserProfile,
    weights: ScoreWeights = DEFAULT_WEIGHTS,
) -> MatchResult:
    """Score a job against a profile. Pure and deterministic."""
    skills, matched_skills = score_skills(job, profile)
    reasons = SubScores(
        skills_match=skills,
        experience_match=score_experience(job, profile),
        location_match=score_location(job, profile),
        salary_match=score_salary(job, profile),
        role_match=score_role(job, profile),
    )

    total = (
        weights.role * reasons.role_match
        + weights.skills * reasons.skills_match
        + weights.experience * reasons.experience_match
        + weights.location * reasons.location_match
        + weights.salary * reasons.salary_match
    )
    score = clamp_score(round(total, 9))

    logger.debug("Scored '%s' at %s: %d %s", job.title, job.company, score, reasons)

    return MatchResult(
        job_id=job.id,
        score=score,
        reasons=reasons,
        explanation=build_explanation(reasons, matched_skills, job.is_remote),
    )
