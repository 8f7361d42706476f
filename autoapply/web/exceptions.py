"""Maps service exceptions onto JSON error responses."""

import logging

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse

from autoapply.errors import AutoApplyError, JobsNotFoundError, UpstreamError

logger = logging.getLogger("autoapply.web")


async def service_exception_handler(request: Request, exc: AutoApplyError) -> JSONResponse:
    status_code = 500
    if isinstance(exc, JobsNotFoundError):
        status_code = 404
    elif isinstance(exc, UpstreamError):
        status_code = 502

    if status_code >= 500:
        logger.error("Service error in %s: %s", request.url.path, exc, exc_info=True)
    else:
        logger.info("%s in %s: %s", type(exc).__name__, request.url.path, exc)

    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": str(exc), "type": type(exc).__name__},
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.detail, "type": "HTTPException"},
    )
