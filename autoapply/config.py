"""YAML config loading and validation."""

import math
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml


@dataclass
class EmailConfig:
    resend_api_key: str = ""
    smtp_server: str = "smtp.gmail.com"
    smtp_port: int = 587
    sender_email: str = ""
    sender_password: str = ""  # Gmail App Password
    site_url: str = "http://localhost:8000"


@dataclass
class MatchingConfig:
    weights: dict[str, float] = field(default_factory=dict)
    digest_min_score: int = 50
    digest_limit: int = 10
    digest_lookback_hours: int = 24
    digest_max_jobs: int = 100


@dataclass
class AutoApplyConfig:
    internal_url_patterns: list[str] = field(default_factory=lambda: ["linkedin.com/jobs/view"])
    poll_interval_seconds: int = 60
    daily_run_hour: int = 9  # UTC


@dataclass
class AppConfig:
    email: EmailConfig = field(default_factory=EmailConfig)
    matching: MatchingConfig = field(default_factory=MatchingConfig)
    auto_apply: AutoApplyConfig = field(default_factory=AutoApplyConfig)
    database_url: str = "sqlite:///data/autoapply.db"
    log_dir: str = "logs"


def load_config(config_path: str = "config.yaml") -> AppConfig:
    """Load and validate configuration from YAML file."""
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(
            f"Config file not found: {config_path}\n"
            "Copy config.example.yaml to config.yaml and fill in your settings."
        )

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    config = AppConfig()

    # Email (env vars take precedence for secrets)
    email_raw = raw.get("email", {})
    config.email = EmailConfig(
        resend_api_key=os.environ.get("RESEND_API_KEY", email_raw.get("resend_api_key", "")),
        smtp_server=email_raw.get("smtp_server", "smtp.gmail.com"),
        smtp_port=email_raw.get("smtp_port", 587),
        sender_email=email_raw.get("sender_email", ""),
        sender_password=os.environ.get("AUTOAPPLY_SMTP_PASSWORD", email_raw.get("sender_password", "")),
        site_url=email_raw.get("site_url", "http://localhost:8000"),
    )

    # Matching
    matching_raw = raw.get("matching", {})
    config.matching = MatchingConfig(
        weights=dict(matching_raw.get("weights") or {}),
        digest_min_score=matching_raw.get("digest_min_score", 50),
        digest_limit=matching_raw.get("digest_limit", 10),
        digest_lookback_hours=matching_raw.get("digest_lookback_hours", 24),
        digest_max_jobs=matching_raw.get("digest_max_jobs", 100),
    )

    # Auto-apply
    apply_raw = raw.get("auto_apply", {})
    config.auto_apply = AutoApplyConfig(
        internal_url_patterns=apply_raw.get("internal_url_patterns", ["linkedin.com/jobs/view"]),
        poll_interval_seconds=apply_raw.get("poll_interval_seconds", 60),
        daily_run_hour=apply_raw.get("daily_run_hour", 9),
    )

    config.database_url = os.environ.get("DATABASE_URL", raw.get("database_url", "sqlite:///data/autoapply.db"))
    config.log_dir = raw.get("log_dir", "logs")

    return config


def validate_config(config: AppConfig) -> list[str]:
    """Return list of validation warnings (empty = OK)."""
    warnings = []

    if not config.email.sender_email:
        warnings.append("No sender email configured - notifications will be skipped")
    elif not config.email.resend_api_key and not config.email.sender_password:
        warnings.append("Email credentials not configured (Resend API key or SMTP password) - notifications will fail")

    if config.matching.weights:
        try:
            total = sum(float(w) for w in config.matching.weights.values())
        except (TypeError, ValueError):
            warnings.append("Matching weights must be numbers - defaults will be used")
        else:
            if not math.isclose(total, 1.0, abs_tol=1e-9):
                warnings.append(f"Matching weights sum to {total:.3f}, expected 1.0 - defaults will be used")

    if not 0 <= config.auto_apply.daily_run_hour <= 23:
        warnings.append("auto_apply.daily_run_hour must be between 0 and 23")

    if not config.auto_apply.internal_url_patterns:
        warnings.append("No internal apply URL patterns - only jobs without an apply URL will be auto-applied")

    return warnings
