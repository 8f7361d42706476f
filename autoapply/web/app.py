"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException

from autoapply.config import AppConfig
from autoapply.errors import AutoApplyError
from autoapply.models import init_db

from .api import router as api_router
from .exceptions import http_exception_handler, service_exception_handler

logger = logging.getLogger("autoapply.web")


@asynccontextmanager
async def lifespan(app: FastAPI):
    if app.state.start_scheduler:
        from autoapply.scheduler import init_scheduler
        init_scheduler(app.state.config)

    yield

    if app.state.start_scheduler:
        from autoapply.scheduler import shutdown_scheduler
        shutdown_scheduler()


def create_app(config: Optional[AppConfig] = None, start_scheduler: bool = True, create_tables: bool = True) -> FastAPI:
    config = config or AppConfig()
    if create_tables:
        init_db(config.database_url)

    app = FastAPI(title="AutoApply", lifespan=lifespan)
    app.state.config = config
    app.state.start_scheduler = start_scheduler

    app.add_exception_handler(AutoApplyError, service_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)

    app.include_router(api_router)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app
