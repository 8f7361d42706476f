"""SQLAlchemy engine and session setup."""

import os
import uuid
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker


def _get_database_url() -> str:
    url = os.environ.get("DATABASE_URL", "sqlite:///data/autoapply.db")
    # Heroku-style postgres:// but SQLAlchemy 2.x requires postgresql://
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)
    return url


def _ensure_sqlite_dir(engine: Engine) -> None:
    if engine.url.get_backend_name() == "sqlite" and engine.url.database not in (None, "", ":memory:"):
        Path(engine.url.database).parent.mkdir(parents=True, exist_ok=True)


def make_engine(url: str) -> Engine:
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)
    return create_engine(url, pool_pre_ping=True, echo=False)


DATABASE_URL = _get_database_url()

engine = make_engine(DATABASE_URL)

SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def new_id() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    pass


def init_db(url: str | None = None) -> Engine:
    """Bind SessionLocal to ``url`` (or the default engine) and create missing tables."""
    global engine
    if url and url != engine.url.render_as_string(hide_password=False):
        engine = make_engine(url)
        SessionLocal.configure(bind=engine)
    _ensure_sqlite_dir(engine)
    Base.metadata.create_all(engine)
    return engine
