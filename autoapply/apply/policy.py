"""Auto-apply policy engine: threshold, daily quota, de-duplication and dispositions."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Optional, Protocol

from autoapply.apply.channels import ApplyChannelClassifier, UrlPatternClassifier
from autoapply.errors import ApplicationWriteError, DuplicateApplicationError, QuotaExhaustedError
from autoapply.matching.scorer import MatchResult
from autoapply.models import ApplicationStatus
from autoapply.storage.repository import JobRepository

logger = logging.getLogger("autoapply.apply")

AUTO_APPLIED = ApplicationStatus.AUTO_APPLIED.value
MANUAL_REQUIRED = ApplicationStatus.MANUAL_REQUIRED.value
FAILED = ApplicationStatus.FAILED.value
ALREADY_APPLIED = "already_applied"

MSG_NO_MATCHES = "No matches provided"
MSG_DISABLED = "Auto-apply is disabled"
MSG_LIMIT_REACHED = "Daily auto-apply limit reached"
MSG_NO_ELIGIBLE = "No eligible jobs for auto-apply"


class Notifier(Protocol):
    def send_notification(self, user_id: str, notification_type: str, payload: dict) -> bool:
        ...


@dataclass(frozen=True)
class Candidate:
    job_id: str
    score: int
    reasons: dict = field(default_factory=dict)

    @classmethod
    def from_match(cls, match: MatchResult) -> "Candidate":
        return cls(job_id=match.job_id, score=match.score, reasons=match.reasons.to_dict())

    @classmethod
    def from_dict(cls, data: dict) -> "Candidate":
        return cls(
            job_id=str(data["job_id"]),
            score=int(data.get("score") or 0),
            reasons=dict(data.get("reasons") or {}),
        )

    def to_dict(self) -> dict:
        return {"job_id": self.job_id, "score": self.score, "reasons": dict(self.reasons)}


@dataclass
class Disposition:
    job_id: str
    job_title: str
    company_name: str
    status: str  # auto_applied, manual_required, already_applied, failed
    match_score: int
    apply_url: Optional[str] = None
    reason: Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            "job_id": self.job_id,
            "job_title": self.job_title,
            "company_name": self.company_name,
            "status": self.status,
            "match_score": self.match_score,
        }
        if self.apply_url:
            data["apply_url"] = self.apply_url
        if self.reason:
            data["reason"] = self.reason
        return data


@dataclass
class AutoApplySummary:
    auto_applied: int = 0
    manual_required: int = 0
    already_applied: int = 0
    failed: int = 0
    quota_exceeded: int = 0

    @property
    def processed(self) -> int:
        return self.auto_applied + self.manual_required

    def to_dict(self) -> dict:
        return {
            "auto_applied": self.auto_applied,
            "manual_required": self.manual_required,
            "already_applied": self.already_applied,
            "failed": self.failed,
            "quota_exceeded": self.quota_exceeded,
        }


@dataclass
class AutoApplyOutcome:
    results: list[Disposition] = field(default_factory=list)
    summary: AutoApplySummary = field(default_factory=AutoApplySummary)
    message: Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            "success": True,
            "results": [r.to_dict() for r in self.results],
            "summary": self.summary.to_dict(),
        }
        if self.message:
            data["message"] = self.message
        return data


def rank_candidates(candidates: Iterable[Candidate], threshold: int) -> list[Candidate]:
    """Keep candidates at or above ``threshold``, one per job, highest score first.

    The sort is stable, so equal scores keep their input order.
    """
    eligible = [c for c in candidates if c.score >= threshold]
    eligible.sort(key=lambda c: c.score, reverse=True)

    ranked = []
    seen = set()
    for candidate in eligible:
        if candidate.job_id in seen:
            continue
        seen.add(candidate.job_id)
        ranked.append(candidate)
    return ranked


def run_auto_apply(
    repository: JobRepository,
    user_id: str,
    candidates: Iterable[Candidate],
    classifier: Optional[ApplyChannelClassifier] = None,
    notifier: Optional[Notifier] = None,
    now: Optional[datetime] = None,
) -> AutoApplyOutcome:
    """Record applications for the user's best-scoring candidates.

    Never raises for "nothing to do" conditions; those come back as an
    outcome with an informational ``message``. Errors loading the job
    postings propagate. A failed write only fails that one candidate.
    """
    candidates = list(candidates)
    classifier = classifier or UrlPatternClassifier()
    now = _as_utc(now)
    today = now.date()

    if not candidates:
        return AutoApplyOutcome(message=MSG_NO_MATCHES)

    preferences = repository.get_job_preferences(user_id)
    if preferences is None:
        logger.info("[user:%s] No preferences found, auto-apply stays disabled", user_id)
        return AutoApplyOutcome(message=MSG_DISABLED)

    settings = preferences.auto_apply.normalized()
    if not settings.enabled:
        return AutoApplyOutcome(message=MSG_DISABLED)

    used_today = repository.count_today_auto_applied(user_id, today)
    remaining = settings.daily_limit - used_today
    if remaining <= 0:
        logger.info("[user:%s] Daily auto-apply limit reached (%d/%d)", user_id, used_today, settings.daily_limit)
        return AutoApplyOutcome(message=MSG_LIMIT_REACHED)

    outcome = AutoApplyOutcome()

    # Already applied: reported, never written again
    existing = repository.find_existing_applications(user_id, [c.job_id for c in candidates])
    duplicates = [c for c in candidates if c.job_id in existing]
    fresh = [c for c in candidates if c.job_id not in existing]
    if duplicates:
        for job in repository.get_job_postings([c.job_id for c in duplicates]):
            score = max(c.score for c in duplicates if c.job_id == job.id)
            outcome.results.append(Disposition(
                job_id=job.id,
                job_title=job.title,
                company_name=job.company,
                status=ALREADY_APPLIED,
                match_score=score,
            ))
            outcome.summary.already_applied += 1

    ranked = rank_candidates(fresh, settings.threshold)
    selected = ranked[:remaining]
    outcome.summary.quota_exceeded = len(ranked) - len(selected)

    if not selected:
        outcome.message = MSG_NO_ELIGIBLE
        return outcome

    jobs = {job.id: job for job in repository.get_job_postings([c.job_id for c in selected])}

    for candidate in selected:
        job = jobs.get(candidate.job_id)
        if job is None:
            logger.warning("[user:%s] Job %s not found, skipping", user_id, candidate.job_id)
            continue

        status = AUTO_APPLIED if classifier.can_auto_apply(job) else MANUAL_REQUIRED
        try:
            repository.insert_application(
                user_id,
                job,
                status=status,
                match_score=candidate.score,
                match_reasons=candidate.reasons,
                now=now,
                quota_limit=settings.daily_limit if status == AUTO_APPLIED else None,
            )
        except QuotaExhaustedError:
            # A concurrent run took the last slot
            logger.info("[user:%s] Quota exhausted before job %s could be applied", user_id, job.id)
            outcome.summary.quota_exceeded += 1
            continue
        except DuplicateApplicationError:
            outcome.results.append(Disposition(
                job_id=job.id,
                job_title=job.title,
                company_name=job.company,
                status=ALREADY_APPLIED,
                match_score=candidate.score,
            ))
            outcome.summary.already_applied += 1
            continue
        except ApplicationWriteError as e:
            logger.error("[user:%s] Failed to insert application for job %s: %s", user_id, job.id, e)
            outcome.results.append(Disposition(
                job_id=job.id,
                job_title=job.title,
                company_name=job.company,
                status=FAILED,
                match_score=candidate.score,
                reason=str(e),
            ))
            outcome.summary.failed += 1
            continue

        outcome.results.append(Disposition(
            job_id=job.id,
            job_title=job.title,
            company_name=job.company,
            status=status,
            match_score=candidate.score,
            apply_url=job.apply_url if status == MANUAL_REQUIRED else None,
        ))
        if status == AUTO_APPLIED:
            outcome.summary.auto_applied += 1
        else:
            outcome.summary.manual_required += 1

    summary = outcome.summary
    if summary.processed:
        try:
            repository.upsert_daily_analytics(
                user_id,
                today,
                auto_applied_delta=summary.auto_applied,
                manual_required_delta=summary.manual_required,
            )
        except ApplicationWriteError as e:
            logger.error("[user:%s] Failed to update analytics: %s", user_id, e)

    logger.info(
        "[user:%s] Auto-apply completed: %d auto-applied, %d manual required, %d failed, %d already applied",
        user_id, summary.auto_applied, summary.manual_required, summary.failed, summary.already_applied,
    )

    if settings.email_notifications and summary.processed and notifier is not None:
        _notify(notifier, user_id, outcome)

    return outcome


def _notify(notifier: Notifier, user_id: str, outcome: AutoApplyOutcome) -> None:
    payload = {
        "applications": [
            {
                "job_title": r.job_title,
                "company_name": r.company_name,
                "status": r.status,
                "job_url": r.apply_url,
                "match_score": r.match_score,
            }
            for r in outcome.results
            if r.status in (AUTO_APPLIED, MANUAL_REQUIRED)
        ],
        "summary": outcome.summary.to_dict(),
    }
    try:
        if notifier.send_notification(user_id, "daily_summary", payload):
            logger.info("[user:%s] Email notification sent", user_id)
        else:
            logger.error("[user:%s] Email notification was not sent", user_id)
    except Exception as e:
        logger.error("[user:%s] Error sending email notification: %s", user_id, e)


def _as_utc(now: Optional[datetime]) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)
