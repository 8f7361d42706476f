"""Tests for apply-channel classification."""

from autoapply.apply.channels import UrlPatternClassifier
from autoapply.jobs.models import JobPosting


def job(url):
    return JobPosting(id="1", title="Engineer", company="Acme", apply_url=url)


class TestUrlPatternClassifier:
    def test_no_url_is_auto_appliable(self):
        assert UrlPatternClassifier().can_auto_apply(job(None))
        assert UrlPatternClassifier().can_auto_apply(job("   "))

    def test_internal_pattern(self):
        assert UrlPatternClassifier().can_auto_apply(job("https://www.LinkedIn.com/jobs/view/123"))

    def test_external_ats(self):
        assert not UrlPatternClassifier().can_auto_apply(job("https://jobs.lever.co/acme/123"))

    def test_custom_patterns(self):
        classifier = UrlPatternClassifier(["apply.example.com", ""])
        assert classifier.can_auto_apply(job("https://apply.example.com/42"))
        assert not classifier.can_auto_apply(job("https://www.linkedin.com/jobs/view/123"))
