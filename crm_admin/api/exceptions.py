"""Custom exceptions and error translation for FastAPI application."""

import logging
from datetime import datetime, timezone

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_403_FORBIDDEN,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

from crm_admin.backup.exceptions import BackupError, RestoreError

logger = logging.getLogger(__name__)


class CRMAdminError(HTTPException):
    """Base exception for crm-admin API errors."""
    pass


class NotAuthenticatedError(CRMAdminError):
    def __init__(self):
        super().__init__(HTTP_401_UNAUTHORIZED, "Unauthorized", headers={"WWW-Authenticate": "Bearer"})


class ForbiddenError(CRMAdminError):
    def __init__(self):
        super().__init__(HTTP_403_FORBIDDEN, "Forbidden - Admin access required")


def _error_body(detail: str, code: str) -> dict:
    return {
        "detail": detail,
        "error": code,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


async def backup_error_handler(request: Request, exc: BackupError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.warning(f"{request.method} {request.url.path} rejected: {exc.message}")

    body = _error_body(exc.message, exc.code)
    if isinstance(exc, RestoreError):
        body["rolled_back"] = exc.rolled_back
        body["state"] = exc.state
    return JSONResponse(status_code=exc.status_code, content=body)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    logger.warning(f"{request.method} {request.url.path} rejected: {message}")
    return JSONResponse(status_code=HTTP_400_BAD_REQUEST, content=_error_body(message, "validation_error"))


async def os_error_handler(request: Request, exc: OSError) -> JSONResponse:
    logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(
        status_code=HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body("Internal server error", "io_error"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BackupError, backup_error_handler)
    app.add_exception_handler(OSError, os_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
