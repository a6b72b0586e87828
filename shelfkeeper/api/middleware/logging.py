"""
Access logging middleware.

One log record per API request, carrying:
- the request ID (taken from X-Request-ID or generated) and echoed back
- the authenticated principal, once the auth dependency has resolved it
- status, duration, and a [SLOW] marker past the threshold
- a redacted copy of JSON bodies; uploads are summarized by size only

The request ID is also bound into loguru for the duration of the request,
so application log lines can be correlated with the access record.
"""

import json
import logging
import time
import uuid
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Set

from fastapi import FastAPI, Request, Response
from loguru import logger as app_logger
from starlette.middleware.base import BaseHTTPMiddleware

request_id_var: ContextVar[str] = ContextVar("request_id", default="")

access_logger = logging.getLogger("shelfkeeper.access")

REDACTED = "[REDACTED]"


@dataclass
class LoggingConfig:
    """Access log settings."""

    enabled: bool = True

    log_request_body: bool = False
    max_body_log_size: int = 10000

    skip_paths: Set[str] = field(default_factory=lambda: {"/health", "/favicon.ico"})

    secret_headers: Set[str] = field(default_factory=lambda: {
        "authorization",
        "cookie",
        "set-cookie",
    })

    secret_fields: Set[str] = field(default_factory=lambda: {
        "password",
        "confirm_password",
        "token",
        "access_token",
        "jwt_secret_key",
    })

    # Seconds
    slow_request_threshold: float = 2.0

    request_id_header: str = "X-Request-ID"


def get_request_id() -> str:
    """Request ID of the request being handled, or an empty string."""
    return request_id_var.get()


def redact_sensitive_data(data: Any, secret_fields: Set[str]) -> Any:
    """Replace values of secret keys at any depth of a JSON-like value."""
    if isinstance(data, dict):
        return {
            key: REDACTED if key.lower() in secret_fields else redact_sensitive_data(value, secret_fields)
            for key, value in data.items()
        }
    if isinstance(data, list):
        return [redact_sensitive_data(item, secret_fields) for item in data]
    return data


class StructuredLogFormatter(logging.Formatter):
    """One JSON object per access record."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": self.formatTime(record),
            "level": record.levelname,
            "msg": record.getMessage(),
            "request_id": request_id_var.get() or None,
        }
        entry.update(getattr(record, "access", {}))
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def access_level(status_code: int, slow: bool) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400 or slow:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Writes the access record and sets the X-Request-ID response header."""

    def __init__(self, app: FastAPI, config: Optional[LoggingConfig] = None):
        super().__init__(app)
        self.config = config or LoggingConfig()

    async def describe_body(self, request: Request) -> Optional[str]:
        content_type = request.headers.get("content-type", "")

        if content_type.startswith("multipart/form-data"):
            return f"[UPLOAD {request.headers.get('content-length', '?')} bytes]"
        if not content_type.startswith("application/json"):
            return None

        body = await request.body()
        if not body:
            return None
        if len(body) > self.config.max_body_log_size:
            return f"[JSON {len(body)} bytes]"
        try:
            parsed = json.loads(body)
        except ValueError:
            return "[INVALID JSON]"
        return json.dumps(redact_sensitive_data(parsed, self.config.secret_fields))

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(self.config.request_id_header) or uuid.uuid4().hex[:8]
        request_id_var.set(request_id)

        with app_logger.contextualize(request_id=request_id):
            if not self.config.enabled or request.url.path in self.config.skip_paths:
                response = await call_next(request)
                response.headers[self.config.request_id_header] = request_id
                return response

            access = {
                "method": request.method,
                "path": request.url.path,
                "query": request.url.query or None,
                "client_ip": request.client.host if request.client else None,
                "headers": {
                    name: REDACTED if name.lower() in self.config.secret_headers else value
                    for name, value in request.headers.items()
                },
            }
            if self.config.log_request_body:
                access["body"] = await self.describe_body(request)

            started = time.perf_counter()
            response = await call_next(request)
            elapsed = time.perf_counter() - started

            response.headers[self.config.request_id_header] = request_id

            slow = elapsed > self.config.slow_request_threshold
            access["status_code"] = response.status_code
            access["duration_ms"] = round(elapsed * 1000, 2)
            # Set by get_current_principal on authenticated routes
            access["principal_id"] = getattr(request.state, "principal_id", None)

            line = f"{request.method} {request.url.path} {response.status_code} {access['duration_ms']}ms"
            access_logger.log(
                access_level(response.status_code, slow),
                f"[SLOW] {line}" if slow else line,
                extra={"access": access},
            )
            return response


def setup_logging(
    app: FastAPI,
    config: Optional[LoggingConfig] = None,
    structured: bool = True,
) -> None:
    """
    Install the access log middleware.

    Args:
        app: FastAPI application instance.
        config: Access log settings.
        structured: Emit access records as JSON lines.
    """
    config = config or LoggingConfig()

    if structured and not any(
        isinstance(handler.formatter, StructuredLogFormatter) for handler in access_logger.handlers
    ):
        handler = logging.StreamHandler()
        handler.setFormatter(StructuredLogFormatter())
        access_logger.addHandler(handler)
        access_logger.setLevel(logging.INFO)

    app.add_middleware(RequestLoggingMiddleware, config=config)
