"""
Error Handling for Shelfkeeper

Centralized error handling:
- Structured error responses
- Logging of errors
- Exception translation
"""

import traceback
from datetime import datetime, timezone

from fastapi import Request
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from shelfkeeper.errors import AuthenticationError, ShelfkeeperException


def create_error_response(
    error: str,
    code: str,
    status_code: int,
    detail: str = None,
    headers: dict = None,
) -> JSONResponse:
    """Create standardized error response."""
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "code": code,
            "detail": detail,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
        headers=headers,
    )


def setup_exception_handlers(app):
    """Register exception handlers with FastAPI app."""

    @app.exception_handler(AuthenticationError)
    async def authentication_exception_handler(request: Request, exc: AuthenticationError):
        # Same body for every failure reason; the reason only goes to the log
        logger.warning(f"Authentication failed ({exc.reason}) on {request.method} {request.url.path}")
        return create_error_response(
            error=exc.message,
            code=exc.code,
            status_code=exc.status_code,
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(ShelfkeeperException)
    async def shelfkeeper_exception_handler(request: Request, exc: ShelfkeeperException):
        logger.warning(f"Shelfkeeper error: {exc.code} - {exc.message}")
        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
        return create_error_response(
            error=exc.message,
            code=exc.code,
            status_code=exc.status_code,
            detail=exc.detail,
            headers=headers,
        )

    @app.exception_handler(PydanticValidationError)
    async def validation_exception_handler(request: Request, exc: PydanticValidationError):
        logger.warning(f"Validation error: {str(exc)}")
        return create_error_response(
            error="Validation Error",
            code="VALIDATION_ERROR",
            status_code=400,
            detail=str(exc),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(
            f"Unhandled exception: {type(exc).__name__}: {str(exc)}\n{traceback.format_exc()}"
        )
        return create_error_response(
            error="Internal Server Error",
            code="INTERNAL_ERROR",
            status_code=500,
            detail="An unexpected error occurred",
        )
