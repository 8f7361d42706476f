"""Tests for the matcher facade."""

import pytest

from autoapply.errors import JobsNotFoundError
from autoapply.jobs.models import JobPosting
from autoapply.matching.matcher import compute_matches, rank_matches
from autoapply.profile.models import UserProfile


class TestComputeMatches:
    def test_sorted_best_first(self, repository, user, add_job, add_analysis, set_preferences):
        add_analysis(user.id, skills=["python", "sql"], experience_years=5)
        set_preferences(user.id, desired_roles=["data engineer"])
        weak = add_job(title="Office Manager", required_skills=["excel"])
        strong = add_job(title="Data Engineer", required_skills=["python", "sql"])

        report = compute_matches(repository, user.id, [weak.id, strong.id])

        assert [m.job_id for m in report.matches] == [strong.id, weak.id]
        assert report.matches[0].score > report.matches[1].score
        assert report.user_has_analysis
        assert report.user_has_preferences

    def test_flags_missing_profile(self, repository, user, add_job):
        job = add_job()
        report = compute_matches(repository, user.id, [job.id])
        assert len(report.matches) == 1
        assert not report.user_has_analysis
        assert not report.user_has_preferences

        data = report.to_dict()
        assert data["success"] is True
        assert data["matches"][0]["job_id"] == job.id

    def test_unknown_jobs(self, repository, user):
        with pytest.raises(JobsNotFoundError, match="No jobs found to match"):
            compute_matches(repository, user.id, ["nope"])

    def test_same_input_same_output(self, repository, user, add_job, add_analysis):
        add_analysis(user.id, skills=["go"], experience_years=2)
        ids = [add_job(required_skills=["go", "rust"]).id for _ in range(3)]
        assert compute_matches(repository, user.id, ids).to_dict() == compute_matches(repository, user.id, ids).to_dict()


class TestRankMatches:
    def test_filters_and_limits(self):
        jobs = [
            JobPosting(id=str(i), title="Engineer", company="Acme", required_skills=["x"] if i % 2 else [])
            for i in range(6)
        ]
        ranked = rank_matches(UserProfile(), jobs, min_score=0, limit=2, exclude={"0"})
        assert len(ranked) == 2
        assert "0" not in {job.id for job, _ in ranked}

    def test_min_score(self):
        jobs = [JobPosting(id="a", title="Engineer", company="Acme")]
        assert rank_matches(UserProfile(), jobs, min_score=63) == []
        assert len(rank_matches(UserProfile(), jobs, min_score=62)) == 1
