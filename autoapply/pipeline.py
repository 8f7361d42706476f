"""Daily match digest: scores recent postings for every user and emails the best ones."""

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from autoapply.config import AppConfig
from autoapply.matching.matcher import load_weights, rank_matches
from autoapply.notifications.email_sender import EmailNotifier
from autoapply.storage.repository import JobRepository

logger = logging.getLogger("autoapply.pipeline")


@dataclass
class DigestResult:
    user_id: str
    status: str  # success, no_matches, email_failed, skipped, error
    matches: int = 0
    error: Optional[str] = None

    def to_dict(self) -> dict:
        data = {"user_id": self.user_id, "status": self.status, "matches": self.matches}
        if self.error:
            data["error"] = self.error
        return data


def run_daily_match_for_user(
    repository: JobRepository,
    user_id: str,
    config: AppConfig,
    notifier: Optional[EmailNotifier] = None,
    now: Optional[datetime] = None,
) -> DigestResult:
    """Score the last day's postings for one user and send the digest."""
    now = now or datetime.now(timezone.utc)
    matching = config.matching

    profile = repository.get_profile(user_id)
    if profile.preferences is None:
        logger.info("[user:%s] No preferences, skipping digest", user_id)
        return DigestResult(user_id, "skipped")

    since = now - timedelta(hours=matching.digest_lookback_hours)
    jobs = repository.get_recent_postings(since, limit=matching.digest_max_jobs)
    applied = repository.find_existing_applications(user_id)

    top = rank_matches(
        profile,
        jobs,
        load_weights(matching.weights),
        min_score=matching.digest_min_score,
        limit=matching.digest_limit,
        exclude=applied,
    )
    if not top:
        logger.info("[user:%s] No matches found", user_id)
        return DigestResult(user_id, "no_matches")

    logger.info("[user:%s] Found %d matches", user_id, len(top))

    status = "success"
    if notifier is not None:
        auto_apply = profile.preferences.auto_apply.normalized()
        payload = {
            "matches": [
                {
                    "job_id": job.id,
                    "job_title": job.title,
                    "company_name": job.company,
                    "match_score": match.score,
                    "location": job.location,
                    "work_type": job.work_type,
                    "job_url": job.apply_url,
                }
                for job, match in top
            ],
            "auto_apply_enabled": auto_apply.enabled,
            "auto_apply_threshold": auto_apply.threshold,
        }
        if not notifier.send_notification(user_id, "new_job_matches", payload):
            status = "email_failed"

    repository.upsert_daily_analytics(user_id, now.date(), jobs_fetched=len(top))
    return DigestResult(user_id, status, matches=len(top))


def run_daily_matches(config: AppConfig, now: Optional[datetime] = None) -> list[DigestResult]:
    """Run the digest for every user with preferences. One user's failure never stops the rest."""
    start = time.time()
    results = []
    with JobRepository() as repository:
        notifier = EmailNotifier(config.email, repository.get_user_email)
        user_ids = repository.users_with_preferences()
        logger.info("Processing %d users...", len(user_ids))

        for user_id in user_ids:
            try:
                results.append(run_daily_match_for_user(repository, user_id, config, notifier, now))
            except Exception as e:
                logger.error("[user:%s] Daily match failed: %s", user_id, e, exc_info=True)
                repository.db.rollback()
                results.append(DigestResult(user_id, "error", error=str(e)))

    logger.info("Daily job matching complete: %d users in %.1fs", len(results), time.time() - start)
    return results
