"""Shared FastAPI dependencies: DB session, repository, caller identity and config."""

from collections.abc import Generator
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from autoapply.apply.channels import UrlPatternClassifier
from autoapply.config import AppConfig
from autoapply.models import SessionLocal
from autoapply.notifications.email_sender import EmailNotifier
from autoapply.storage.repository import JobRepository


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_repository(db: Session = Depends(get_db)) -> JobRepository:
    return JobRepository(db)


def get_current_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    """Caller id as forwarded by the authenticating gateway."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return x_user_id.strip()


def get_config(request: Request) -> AppConfig:
    return request.app.state.config


def get_classifier(config: AppConfig = Depends(get_config)) -> UrlPatternClassifier:
    return UrlPatternClassifier(config.auto_apply.internal_url_patterns)


def get_notifier(
    config: AppConfig = Depends(get_config),
    repository: JobRepository = Depends(get_repository),
) -> EmailNotifier:
    return EmailNotifier(config.email, repository.get_user_email)
