"""
Translation of pipeline errors into HTTP responses.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from tender_engine.errors import RateLimitError, TenderError

logger = logging.getLogger(__name__)


async def tender_error_handler(request: Request, exc: TenderError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.info("%s %s rejected (%s): %s", request.method, request.url.path, exc.status_code, exc.message)

    headers = None
    if isinstance(exc, RateLimitError):
        headers = {"Retry-After": str(int(exc.retry_delay_seconds))}
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TenderError, tender_error_handler)
