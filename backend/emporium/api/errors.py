"""Exception → ``application/problem+json`` mapping.

Domain errors carry their own status code and title (see
:mod:`emporium.errors`); anything else is an unexpected 500.
"""

from __future__ import annotations

import logging
import uuid

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from emporium.errors import DomainError, RequestValidationFailed
from emporium.utils.logger import ctx_request_id

logger = logging.getLogger("emporium.api")

PROBLEM_JSON = "application/problem+json"


def _problem(status: int, title: str, detail: str, **extra) -> JSONResponse:
    body = {
        "type": f"https://httpstatuses.io/{status}",
        "title": title,
        "status": status,
        "detail": detail,
        "traceId": ctx_request_id.get() or uuid.uuid4().hex,
    }
    body.update(extra)
    return JSONResponse(status_code=status, content=body, media_type=PROBLEM_JSON)


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    logger.warning(
        "%s %s -> %d %s: %s",
        request.method, request.url.path, exc.status_code, type(exc).__name__, exc.message,
    )
    if isinstance(exc, RequestValidationFailed):
        return _problem(exc.status_code, exc.title, exc.message, errors=exc.errors)
    return _problem(exc.status_code, exc.title, exc.message)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return _problem(500, "Internal Server Error", "An unexpected error occurred.")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
