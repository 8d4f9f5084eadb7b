"""Custom exceptions and JSON envelope error handlers."""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


# ── Exception hierarchy ─────────────────────────────────────────────

class AppException(Exception):
    """Base for all application exceptions → ``{success: false, ...}`` JSON."""

    def __init__(
        self,
        status_code: int,
        message: str,
        errors: Optional[dict[str, list[str]]] = None,
    ) -> None:
        self.status_code = status_code
        self.message = message
        self.errors = errors
        super().__init__(message)


class NotFoundException(AppException):
    """404 — entity not found."""

    def __init__(
        self,
        entity_type: str,
        entity_id: Any = None,
        *,
        message: Optional[str] = None,
    ) -> None:
        if message is None:
            message = f"{entity_type} with id '{entity_id}' does not exist."
        super().__init__(status_code=404, message=message)
        self.entity_type = entity_type
        self.entity_id = entity_id


class UnauthorizedException(AppException):
    """401 — missing, invalid or expired credentials."""

    def __init__(self, message: str = "Unauthenticated.") -> None:
        super().__init__(status_code=401, message=message)


class ForbiddenException(AppException):
    """403 — insufficient permissions."""

    def __init__(
        self,
        message: str = "You do not have permission to perform this action.",
    ) -> None:
        super().__init__(status_code=403, message=message)


class AlreadyProcessedException(AppException):
    """400 — the leave request has left the pending state."""

    def __init__(self, current_status: Any) -> None:
        status_value = getattr(current_status, "value", current_status)
        super().__init__(
            status_code=400,
            message=f"Leave request has already been {status_value}",
        )
        self.current_status = current_status


class ValidationException(AppException):
    """422 — business-logic validation failures."""

    def __init__(self, errors: dict[str, list[str]]) -> None:
        super().__init__(
            status_code=422,
            message="Validation error",
            errors=errors,
        )


class InvalidDateRangeError(ValidationException):
    """422 — a multi-day range whose end precedes its start."""

    def __init__(self, message: str = "End date must be after start date") -> None:
        super().__init__({"end_date": [message]})


class ConflictError(ValidationException):
    """422 — unique-constraint / duplicate value."""

    def __init__(self, field: str, value: Any) -> None:
        super().__init__({field: [f"The {field} '{value}' has already been taken."]})
        self.field = field
        self.value = value


# ── Envelope builder ────────────────────────────────────────────────

def _envelope(message: str, errors: Optional[dict[str, list[str]]] = None) -> dict[str, Any]:
    body: dict[str, Any] = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    return body


# ── FastAPI handlers ────────────────────────────────────────────────

async def _handle_app_exception(
    request: Request,
    exc: AppException,
) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Unhandled application error on %s: %s", request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=_envelope(exc.message, exc.errors),
    )


_VALUE_ERROR_PREFIX = "Value error, "


def _error_message(name: str, err: dict[str, Any]) -> str:
    """Human-readable message for one pydantic error on field *name*."""
    if err.get("type") == "missing":
        return f"{name.replace('_', ' ').capitalize()} is required"
    msg = err.get("msg", "Invalid value")
    if msg.startswith(_VALUE_ERROR_PREFIX):
        msg = msg[len(_VALUE_ERROR_PREFIX):]
    return msg


async def _handle_validation_error(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    field_errors: dict[str, list[str]] = {}
    for err in exc.errors():
        loc = err.get("loc", ())
        name = (
            ".".join(str(p) for p in loc[1:])
            if len(loc) > 1
            else str(loc[0]) if loc else "unknown"
        )
        field_errors.setdefault(name, []).append(_error_message(name, err))

    return JSONResponse(
        status_code=422,
        content=_envelope("Validation error", field_errors),
    )


async def _handle_http_exception(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=_envelope(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


# ── Registration helper (called from main.py) ──────────────────────

def register_exception_handlers(app: FastAPI) -> None:
    """Attach all custom exception handlers to the FastAPI app."""
    app.add_exception_handler(AppException, _handle_app_exception)          # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _handle_validation_error)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, _handle_http_exception)  # type: ignore[arg-type]
