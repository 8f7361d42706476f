"""Request bodies for the JSON API."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class MatchRequest(BaseModel):
    """Jobs to score for the calling user."""
    model_config = ConfigDict(populate_by_name=True)

    job_ids: list[str] = Field(..., alias="jobIds", description="Job posting ids to score")


class ScoredMatch(BaseModel):
    job_id: str
    score: int = Field(ge=0, le=100)
    reasons: dict = Field(default_factory=dict)


class AutoApplyRequest(BaseModel):
    matches: list[ScoredMatch] = Field(default_factory=list)


class ScheduleRequest(BaseModel):
    matches: list[ScoredMatch] = Field(default_factory=list)
    mode: Optional[str] = Field(
        None, description="now, after_1hr, daily_automatic or manual; defaults to the user's saved schedule"
    )
