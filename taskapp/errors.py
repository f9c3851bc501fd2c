from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class TaskAppError(Exception):
    status_code = 500
    message = "Internal server error"

    def __init__(self, message: Optional[str] = None, details: Any = None):
        super().__init__(message or self.message)
        self.message = message or self.message
        self.details = details


class Unauthorized(TaskAppError):
    status_code = 401
    message = "Unauthorized"


class NotFound(TaskAppError):
    status_code = 404
    message = "Not found"


class ValidationFailed(TaskAppError):
    status_code = 400
    message = "Validation failed"


class Conflict(TaskAppError):
    status_code = 409
    message = "Conflict"


class ServiceUnavailable(TaskAppError):
    status_code = 503
    message = "Service unavailable"


class InternalError(TaskAppError):
    status_code = 500
    message = "Internal server error"


@contextmanager
def failure_boundary(
    operation: str,
    message: str = "Internal server error",
    expose_type: bool = False,
) -> Iterator[None]:
    """
    Run a handler body; anything that is not already a TaskAppError (or a
    FastAPI HTTPException) is logged with its traceback and re-raised as
    InternalError. With expose_type the exception class name is returned to
    the client as details, never the exception text.
    """
    try:
        yield
    except (TaskAppError, HTTPException):
        raise
    except Exception as exc:
        logger.exception("%s error", operation)
        details = type(exc).__name__ if expose_type else None
        raise InternalError(message, details=details) from exc


def error_body(message: str, details: Any = None) -> dict:
    body = {"error": message}
    if details is not None:
        body["details"] = details
    return body


async def _task_app_error_handler(request: Request, exc: TaskAppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder(error_body(exc.message, exc.details)),
    )


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content=jsonable_encoder(error_body("Validation failed", exc.errors())),
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TaskAppError, _task_app_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
