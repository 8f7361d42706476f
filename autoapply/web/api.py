"""JSON API routes: matching, auto-apply, scheduling and analytics."""

from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, Query

from autoapply.apply.channels import UrlPatternClassifier
from autoapply.apply.policy import Candidate, run_auto_apply
from autoapply.config import AppConfig
from autoapply.matching.matcher import compute_matches, load_weights
from autoapply.notifications.email_sender import EmailNotifier
from autoapply.profile.models import SCHEDULE_MODES
from autoapply.scheduler import get_scheduler_info, schedule_auto_apply
from autoapply.storage.repository import JobRepository

from .dependencies import get_classifier, get_config, get_current_user_id, get_notifier, get_repository
from .schemas import AutoApplyRequest, MatchRequest, ScheduleRequest

router = APIRouter(prefix="/api")


@router.post("/matches")
def match_jobs(
    body: MatchRequest,
    user_id: str = Depends(get_current_user_id),
    repository: JobRepository = Depends(get_repository),
    config: AppConfig = Depends(get_config),
):
    report = compute_matches(repository, user_id, body.job_ids, load_weights(config.matching.weights))
    return report.to_dict()


@router.post("/auto-apply")
def auto_apply(
    body: AutoApplyRequest,
    user_id: str = Depends(get_current_user_id),
    repository: JobRepository = Depends(get_repository),
    classifier: UrlPatternClassifier = Depends(get_classifier),
    notifier: EmailNotifier = Depends(get_notifier),
):
    candidates = [Candidate.from_dict(m.model_dump()) for m in body.matches]
    outcome = run_auto_apply(repository, user_id, candidates, classifier, notifier)
    return outcome.to_dict()


@router.post("/auto-apply/schedule")
def schedule(
    body: ScheduleRequest,
    user_id: str = Depends(get_current_user_id),
    repository: JobRepository = Depends(get_repository),
    config: AppConfig = Depends(get_config),
    classifier: UrlPatternClassifier = Depends(get_classifier),
    notifier: EmailNotifier = Depends(get_notifier),
):
    mode = body.mode
    if mode is None:
        preferences = repository.get_job_preferences(user_id)
        mode = preferences.auto_apply.normalized().schedule if preferences else "now"
    if mode not in SCHEDULE_MODES:
        raise HTTPException(status_code=400, detail=f"Unknown schedule mode: {mode}")

    candidates = [Candidate.from_dict(m.model_dump()) for m in body.matches]
    result = schedule_auto_apply(repository, user_id, candidates, mode, config, classifier, notifier)
    return {"success": True, **result.to_dict()}


@router.get("/analytics")
def analytics(
    days: int = Query(30, ge=1, le=365),
    user_id: str = Depends(get_current_user_id),
    repository: JobRepository = Depends(get_repository),
):
    since = datetime.now(timezone.utc).date() - timedelta(days=days - 1)
    rows = repository.get_analytics(user_id, since)
    totals = {
        "jobs_fetched": sum(r.jobs_fetched or 0 for r in rows),
        "jobs_auto_applied": sum(r.jobs_auto_applied or 0 for r in rows),
        "jobs_manual_required": sum(r.jobs_manual_required or 0 for r in rows),
    }
    return {
        "success": True,
        "days": [r.to_dict() for r in rows],
        "totals": totals,
        "pending_runs": [
            {"id": run.id, "mode": run.mode, "fire_at": run.fire_at.isoformat()}
            for run in repository.pending_runs(user_id)
        ],
    }


@router.get("/scheduler")
def scheduler_debug(user_id: str = Depends(get_current_user_id)):
    """Diagnostic endpoint: shows scheduler state."""
    return get_scheduler_info()
