"""Structured JSON logging with per-request context.

Every record emitted while a request is being served carries that request's
``request_id`` and authenticated ``user_id``, so service-level lines
("Leave request ... approved") can be joined to the access-log line.
"""

from __future__ import annotations

import json
import logging
import sys
import time
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import Request, Response
from jose import JWTError
from starlette.middleware.base import BaseHTTPMiddleware

from leaveflow.auth.service import decode_access_token

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
user_id_var: ContextVar[Optional[str]] = ContextVar("user_id", default=None)

_CONTEXT_FIELDS = (
    "request_id",
    "user_id",
    "path",
    "method",
    "status_code",
    "latency_ms",
    "leave_request_id",
    "actor_id",
)


class RequestContextFilter(logging.Filter):
    """Copy the current request's ids onto records that lack them."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = request_id_var.get()
        if getattr(record, "user_id", None) is None:
            record.user_id = user_id_var.get()
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in _CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = value

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


def configure_logging(level: str = "INFO") -> None:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())
    handler.addFilter(RequestContextFilter())
    logging.basicConfig(level=level.upper(), handlers=[handler], force=True)
    # RequestLoggingMiddleware already writes one line per request.
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def _token_subject(request: Request) -> Optional[str]:
    """``sub`` of a valid bearer token, or None. Sessions are not checked."""
    auth_header = request.headers.get("Authorization") or ""
    if not auth_header.startswith("Bearer "):
        return None
    try:
        return decode_access_token(auth_header[7:]).get("sub")
    except JWTError:
        return None


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Assign ``X-Request-Id`` and write one access-log line per request."""

    def __init__(self, app, logger_name: str = "leaveflow.request") -> None:
        super().__init__(app)
        self.logger = logging.getLogger(logger_name)

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-Id") or uuid.uuid4().hex
        request.state.request_id = request_id
        request_token = request_id_var.set(request_id)
        user_token = user_id_var.set(_token_subject(request))
        context = {"path": request.url.path, "method": request.method}
        start = time.perf_counter()
        try:
            try:
                response = await call_next(request)
            except Exception:
                self.logger.exception(
                    "Unhandled error",
                    extra={**context, "latency_ms": _elapsed_ms(start)},
                )
                raise

            level = logging.ERROR if response.status_code >= 500 else logging.INFO
            self.logger.log(
                level,
                "%s %s -> %d",
                request.method,
                request.url.path,
                response.status_code,
                extra={
                    **context,
                    "status_code": response.status_code,
                    "latency_ms": _elapsed_ms(start),
                },
            )
        finally:
            request_id_var.reset(request_token)
            user_id_var.reset(user_token)

        response.headers["X-Request-Id"] = request_id
        return response


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)
