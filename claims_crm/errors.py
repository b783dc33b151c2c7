"""
Typed application errors and the JSON error envelope.

Every failure leaves the API as ``{"error": ..., "code": ..., "details"?: ...}``
where ``code`` is one of :class:`ErrorCode`. Database driver messages are
logged but never copied into a response body.
"""

from enum import Enum
from typing import Any, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

log = structlog.get_logger()


class ErrorCode(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    UPSTREAM_FAILURE = "upstream_failure"


class AppError(Exception):
    code = ErrorCode.UPSTREAM_FAILURE
    status_code = 500

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(AppError):
    code = ErrorCode.VALIDATION
    status_code = 400


class NotFoundError(AppError):
    code = ErrorCode.NOT_FOUND
    status_code = 404


class ConflictError(AppError):
    code = ErrorCode.CONFLICT
    status_code = 409


class UpstreamError(AppError):
    code = ErrorCode.UPSTREAM_FAILURE
    status_code = 500


def error_response(status_code: int, code: ErrorCode, message: str, details: Optional[Any] = None) -> JSONResponse:
    body = {"error": message, "code": code.value}
    if details is not None:
        body["details"] = details
    return JSONResponse(status_code=status_code, content=body)


async def handle_app_error(request: Request, exc: AppError):
    return error_response(exc.status_code, exc.code, exc.message, exc.details)


async def handle_request_validation(request: Request, exc: RequestValidationError):
    details = []
    for err in exc.errors():
        # loc looks like ("body", "policyId")
        field = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        details.append(f"{field}: {err.get('msg')}" if field else err.get("msg"))
    return error_response(400, ErrorCode.VALIDATION, "Validation failed", details)


async def handle_integrity_error(request: Request, exc: IntegrityError):
    log.warning("db.integrity_error", path=request.url.path, error=str(exc.orig))
    return error_response(409, ErrorCode.CONFLICT, "Request conflicts with existing data")


async def handle_database_error(request: Request, exc: SQLAlchemyError):
    log.error("db.operation_failed", path=request.url.path, error=str(exc), error_type=type(exc).__name__)
    return error_response(500, ErrorCode.UPSTREAM_FAILURE, "Database operation failed")


async def handle_http_exception(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        code = ErrorCode.NOT_FOUND
    elif exc.status_code == 409:
        code = ErrorCode.CONFLICT
    elif exc.status_code < 500:
        code = ErrorCode.VALIDATION
    else:
        code = ErrorCode.UPSTREAM_FAILURE
    return error_response(exc.status_code, code, str(exc.detail))


def register_error_handlers(app: FastAPI):
    app.add_exception_handler(AppError, handle_app_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.add_exception_handler(IntegrityError, handle_integrity_error)
    app.add_exception_handler(SQLAlchemyError, handle_database_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
