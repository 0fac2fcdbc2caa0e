from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence
from uuid import UUID

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .models import DESCRIPTION_MAX_LENGTH, TITLE_MAX_LENGTH, TITLE_MIN_LENGTH
from .schemas import ApiResponse

logger = logging.getLogger(__name__)

MSG_VALIDATION_FAILED = "Validation failed"
MSG_MALFORMED_BODY = "Request body is not valid. Check the JSON format."
MSG_INTERNAL_ERROR = "Internal server error. Please try again later."

TITLE_REQUIRED = "title: Title is required"
TITLE_LENGTH = f"title: Title must be between {TITLE_MIN_LENGTH} and {TITLE_MAX_LENGTH} characters"
DESCRIPTION_LENGTH = f"description: Description must not exceed {DESCRIPTION_MAX_LENGTH} characters"

_REQUIRED_MESSAGES = {"title": TITLE_REQUIRED}


class TaskApiError(Exception):
    """Base class for failures that map to a specific HTTP status and message."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(TaskApiError):
    """One or more input fields violate their constraints."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, errors: Sequence[str]) -> None:
        super().__init__(MSG_VALIDATION_FAILED)
        self.errors: List[str] = list(errors)


class NotFoundError(TaskApiError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, task_id: UUID) -> None:
        super().__init__(f"Task not found with id: {task_id}")
        self.task_id = task_id


class MalformedRequestError(TaskApiError):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self) -> None:
        super().__init__(MSG_MALFORMED_BODY)


class InvalidParameterError(TaskApiError):
    """A path or query parameter could not be converted to its declared type."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, name: str) -> None:
        super().__init__(f"Parameter '{name}' has an invalid format")
        self.name = name


class UnexpectedError(TaskApiError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self) -> None:
        super().__init__(MSG_INTERNAL_ERROR)


def _field_message(field: str, err: Dict[str, Any]) -> str:
    if field in _REQUIRED_MESSAGES and (err.get("type") == "missing" or err.get("input") is None):
        return _REQUIRED_MESSAGES[field]
    if err.get("type") == "missing":
        return f"{field}: Field is required"
    return f"{field}: {err.get('msg', 'Invalid value')}"


# PUBLIC_INTERFACE
def translate_request_errors(errors: Iterable[Dict[str, Any]]) -> TaskApiError:
    """
    Convert FastAPI/pydantic request errors into one of our error types.

    - Unparseable JSON or a body that is not an object -> MalformedRequestError
    - Wrongly typed path/query parameters -> InvalidParameterError
    - Anything else is a body field error -> ValidationError (one entry per field)
    """
    field_errors: Dict[str, str] = {}
    for err in errors:
        loc = tuple(err.get("loc") or ())
        source = loc[0] if loc else None
        if err.get("type") == "json_invalid" or (source == "body" and len(loc) < 2):
            return MalformedRequestError()
        if source in {"query", "path", "header", "cookie"}:
            return InvalidParameterError(str(loc[1]) if len(loc) > 1 else str(source))
        field = ".".join(str(part) for part in loc[1:]) or "body"
        field_errors.setdefault(field, _field_message(field, err))
    return ValidationError(list(field_errors.values()))


# PUBLIC_INTERFACE
def error_response(exc: Exception) -> JSONResponse:
    """
    Map any exception to the standard failure envelope.

    Unknown exceptions are logged with their traceback and rendered as a
    generic 500; their details never reach the client.
    """
    if isinstance(exc, RequestValidationError):
        exc = translate_request_errors(exc.errors())

    if not isinstance(exc, TaskApiError):
        logger.exception("Unhandled error while processing request", exc_info=exc)
        exc = UnexpectedError()

    errors: Optional[List[str]] = None
    if isinstance(exc, ValidationError):
        errors = exc.errors
        logger.warning("Validation failed: %s", errors)
    elif not isinstance(exc, UnexpectedError):
        logger.warning("%s: %s", type(exc).__name__, exc.message)

    envelope = ApiResponse.error(exc.message, errors)
    return JSONResponse(status_code=exc.status_code, content=envelope.model_dump(mode="json", by_alias=True))


def _http_error_response(exc: StarletteHTTPException) -> JSONResponse:
    envelope = ApiResponse.error(str(exc.detail))
    return JSONResponse(
        status_code=exc.status_code,
        content=envelope.model_dump(mode="json", by_alias=True),
        headers=getattr(exc, "headers", None),
    )


# PUBLIC_INTERFACE
def register_exception_handlers(app: FastAPI) -> None:
    """Install the envelope-producing exception handlers on the app."""

    @app.exception_handler(TaskApiError)
    async def task_api_error_handler(request: Request, exc: TaskApiError) -> JSONResponse:
        return error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return error_response(exc)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return _http_error_response(exc)

    @app.exception_handler(Exception)
    async def unexpected_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        return error_response(exc)
