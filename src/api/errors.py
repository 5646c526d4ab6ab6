"""
Collectibles Appraiser — Error Handlers

Renders every error as JSON `{"error": ..., "detail": ...}` with the status
code the error taxonomy assigns.

Usage:
    from src.api.errors import setup_error_handlers

    app = FastAPI()
    setup_error_handlers(app)
"""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.errors import AppraisalError

logger = structlog.get_logger(__name__)


def error_response(status_code: int, error: str, detail: str, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "detail": detail},
        headers=headers,
    )


async def handle_appraisal_error(request: Request, exc: AppraisalError) -> JSONResponse:
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "request_failed",
        path=request.url.path,
        method=request.method,
        status_code=exc.status_code,
        error=exc.message,
        error_type=type(exc).__name__,
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    detail = str(exc.detail)
    return error_response(exc.status_code, detail, detail, headers=getattr(exc, "headers", None))


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(400, "Invalid request", str(exc.errors()))


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "request_unhandled_error",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        error_type=type(exc).__name__,
    )
    return error_response(500, "Unhandled server error", str(exc))


def setup_error_handlers(app: FastAPI) -> None:
    """Register all exception handlers on the application."""
    app.add_exception_handler(AppraisalError, handle_appraisal_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
