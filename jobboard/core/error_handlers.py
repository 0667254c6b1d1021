"""
Centralized error normalization.

All failures raised by endpoints, dependencies and the CRUD layer end up here
and are rendered into one envelope:

- development: {"status", "statusCode", "errors": {<field|"error">: [messages]}}
- production:  {"status", "message"} for operational errors, and a generic
  500 "Something went wrong!" for anything unclassified.
"""

import logging
import re
from typing import Any, Dict, Iterable, Mapping, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from pydantic.alias_generators import to_camel
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from jobboard.core.config import settings
from jobboard.core.exceptions import (
    AppError,
    DuplicateKeyError,
    InvalidIdentifierError,
    MalformedRequestError,
    NotFoundError,
    ValidationFailedError,
)

logger = logging.getLogger(__name__)

GENERIC_MESSAGE = "Something went wrong!"

# PostgreSQL: DETAIL:  Key (name)=(Cairo) already exists.
_PG_DUPLICATE = re.compile(r"Key \((?P<field>[^)]+)\)=\((?P<value>.*?)\) already exists")
# SQLite: UNIQUE constraint failed: locations.name
_SQLITE_DUPLICATE = re.compile(r"UNIQUE constraint failed: \w+\.(?P<field>\w+)")


def render_error(exc: AppError) -> JSONResponse:
    """Render an operational error for the current environment."""
    if settings.is_development:
        content = {
            "status": exc.status,
            "statusCode": exc.status_code,
            "errors": exc.field_errors(),
        }
    else:
        content = {"status": exc.status, "message": exc.message}
    return JSONResponse(status_code=exc.status_code, content=content)


def render_unknown(exc: Exception) -> JSONResponse:
    """Render a programming/unknown error without leaking its details."""
    logger.error(f"Unhandled error: {exc!r}", exc_info=exc)
    if settings.is_development:
        content = {
            "status": "error",
            "statusCode": 500,
            "errors": {"error": ["Something went wrong"]},
        }
    else:
        content = {"status": "error", "message": GENERIC_MESSAGE}
    return JSONResponse(status_code=500, content=content)


def _clean_message(message: str) -> str:
    return message.removeprefix("Value error, ")


def translate_validation_errors(errors: Iterable[Mapping[str, Any]]) -> AppError:
    """
    Map pydantic error entries onto the error taxonomy.

    Path parameters that fail to parse become invalid-identifier errors, broken
    JSON becomes a malformed-request error, everything else is collected into
    per-field validation messages.
    """
    field_errors: Dict[str, list] = {}

    for error in errors:
        loc = tuple(error.get("loc", ()))
        error_type = error.get("type", "")

        if loc and loc[0] == "path":
            return InvalidIdentifierError(str(loc[-1]), error.get("input"))
        if error_type == "json_invalid":
            return MalformedRequestError()
        if loc == ("body",) and error_type == "missing":
            return MalformedRequestError("Invalid request: Missing required request body")

        parts = [str(part) for part in loc if part not in ("body", "query")]
        field = parts[0] if parts else "error"
        field_errors.setdefault(field, []).append(_clean_message(error.get("msg", "Invalid value")))

    if not field_errors:
        return ValidationFailedError({"error": ["Validation Error"]}, message="Validation Error")
    return ValidationFailedError(field_errors)


def translate_integrity_error(exc: IntegrityError, payload: Optional[Mapping[str, Any]] = None) -> AppError:
    """
    Identify the offending field and value of a unique-constraint violation.

    PostgreSQL reports both in the error detail; SQLite only names the column,
    so the value is looked up in the payload that was being written.
    """
    text = str(exc.orig) if exc.orig is not None else str(exc)

    match = _PG_DUPLICATE.search(text)
    if match:
        return DuplicateKeyError(to_camel(match.group("field")), match.group("value"))

    match = _SQLITE_DUPLICATE.search(text)
    if match:
        field = match.group("field")
        value = (payload or {}).get(field)
        return DuplicateKeyError(to_camel(field), value)

    logger.warning(f"Integrity violation: {text}")
    return AppError("The operation conflicts with related records", 409)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if not exc.is_operational:
        return render_unknown(exc)
    logger.info(f"{request.method} {request.url.path} failed: {exc.message}")
    return render_error(exc)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return render_error(translate_validation_errors(exc.errors()))


async def pydantic_validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return render_error(translate_validation_errors(exc.errors()))


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    return render_error(translate_integrity_error(exc))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    # API and non-API paths share the same JSON 404
    if exc.status_code == 404:
        return render_error(NotFoundError(f"Can't find {request.url.path} on this server!"))
    return render_error(AppError(str(exc.detail), exc.status_code))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    return render_unknown(exc)


def register_exception_handlers(app: FastAPI) -> None:
    """Attach every handler to the application."""
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(ValidationError, pydantic_validation_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
