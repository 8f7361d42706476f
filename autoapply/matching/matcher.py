"""Matcher facade: loads a user's profile and postings, scores and ranks them."""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from autoapply.errors import JobsNotFoundError
from autoapply.jobs.models import JobPosting
from autoapply.matching.scorer import DEFAULT_WEIGHTS, MatchResult, ScoreWeights, score_job
from autoapply.profile.models import UserProfile
from autoapply.storage.repository import JobRepository

logger = logging.getLogger("autoapply.matching")


@dataclass
class MatchReport:
    matches: list[MatchResult] = field(default_factory=list)
    user_has_analysis: bool = False
    user_has_preferences: bool = False

    def to_dict(self) -> dict:
        return {
            "success": True,
            "matches": [m.to_dict() for m in self.matches],
            "user_has_analysis": self.user_has_analysis,
            "user_has_preferences": self.user_has_preferences,
        }


def rank_matches(
    profile: UserProfile,
    jobs: Iterable[JobPosting],
    weights: ScoreWeights = DEFAULT_WEIGHTS,
    min_score: Optional[int] = None,
    limit: Optional[int] = None,
    exclude: Iterable[str] = (),
) -> list[tuple[JobPosting, MatchResult]]:
    """Score jobs and return (job, match) pairs sorted by score descending.

    Ties keep input order. Jobs in ``exclude`` are skipped before scoring.
    """
    excluded = set(exclude)
    scored = []
    for job in jobs:
        if job.id in excluded:
            continue
        match = score_job(job, profile, weights)
        if min_score is not None and match.score < min_score:
            continue
        scored.append((job, match))

    scored.sort(key=lambda pair: pair[1].score, reverse=True)
    if limit is not None:
        scored = scored[:limit]
    return scored


def compute_matches(
    repository: JobRepository,
    user_id: str,
    job_ids: list[str],
    weights: Optional[ScoreWeights] = None,
) -> MatchReport:
    """Score the requested postings for a user, best match first.

    Missing resume analysis or preferences is not an error: the scorer uses
    neutral defaults and the report flags what the user still has to fill in.
    """
    profile = repository.get_profile(user_id)
    jobs = repository.get_job_postings(job_ids)
    if not jobs:
        raise JobsNotFoundError("No jobs found to match")

    ranked = rank_matches(profile, jobs, weights or DEFAULT_WEIGHTS)
    logger.info("[user:%s] Scored %d/%d requested jobs", user_id, len(ranked), len(job_ids))

    return MatchReport(
        matches=[match for _, match in ranked],
        user_has_analysis=profile.analysis is not None,
        user_has_preferences=profile.preferences is not None,
    )


def load_weights(mapping: Optional[dict]) -> ScoreWeights:
    """Weights from config, falling back to the canonical defaults when invalid."""
    try:
        return ScoreWeights.from_mapping(mapping)
    except (TypeError, ValueError) as e:
        logger.warning("Invalid matching weights (%s), using defaults", e)
        return DEFAULT_WEIGHTS
