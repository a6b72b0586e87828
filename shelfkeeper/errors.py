"""
Exception hierarchy for Shelfkeeper.

Every error that should reach an HTTP client as a structured body derives
from ShelfkeeperException. The API layer translates these in
api/middleware/error_handler.py.
"""


class ShelfkeeperException(Exception):
    """Base exception for Shelfkeeper errors."""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        detail: str = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.detail = detail
        super().__init__(message)


class NotFoundError(ShelfkeeperException):
    """Resource not found."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(
            message=f"{resource} not found",
            code="NOT_FOUND",
            status_code=404,
            detail=f"No {resource} with identifier '{identifier}' exists",
        )


class ConflictError(ShelfkeeperException):
    """Resource already exists."""

    def __init__(self, message: str, detail: str = None):
        super().__init__(
            message=message,
            code="CONFLICT",
            status_code=409,
            detail=detail,
        )


# =============================================================================
# Authentication
# =============================================================================

class AuthenticationError(ShelfkeeperException):
    """
    Request could not be authenticated.

    Subclasses only exist so logs can say which check failed; clients always
    see the same body.
    """

    reason = "unauthenticated"

    def __init__(self, detail: str = None):
        super().__init__(
            message="Could not validate credentials",
            code="NOT_AUTHENTICATED",
            status_code=401,
            detail=detail,
        )


class MissingCredential(AuthenticationError):
    """No bearer token was presented."""

    reason = "missing"


class MalformedCredential(AuthenticationError):
    """Token failed signature, structure, issuer or audience checks."""

    reason = "malformed"


class ExpiredCredential(AuthenticationError):
    """Token is past its expiry instant."""

    reason = "expired"


class InvalidCredentials(ShelfkeeperException):
    """Login with an unknown email or a wrong password."""

    def __init__(self):
        super().__init__(
            message="Incorrect email or password",
            code="INVALID_CREDENTIALS",
            status_code=401,
        )


class AccountLockedError(ShelfkeeperException):
    """Login refused while the principal is locked out."""

    def __init__(self):
        super().__init__(
            message="Account temporarily locked",
            code="ACCOUNT_LOCKED",
            status_code=423,
            detail="Too many failed login attempts. Try again later.",
        )


# =============================================================================
# Upload payloads
# =============================================================================

class InvalidPayload(ShelfkeeperException):
    """Uploaded file cannot be processed at all."""

    def __init__(self, message: str, detail: str = None):
        super().__init__(
            message=message,
            code="INVALID_PAYLOAD",
            status_code=400,
            detail=detail,
        )


class PayloadTooLarge(ShelfkeeperException):
    """Uploaded file exceeds the configured size limit."""

    def __init__(self, limit_mb: int):
        super().__init__(
            message="File too large",
            code="PAYLOAD_TOO_LARGE",
            status_code=413,
            detail=f"Maximum allowed size is {limit_mb}MB",
        )


class UnsupportedMediaType(ShelfkeeperException):
    """Uploaded file is not a CSV file."""

    def __init__(self, detail: str = None):
        super().__init__(
            message="Invalid file type. Please upload a CSV file (.csv).",
            code="UNSUPPORTED_MEDIA_TYPE",
            status_code=415,
            detail=detail,
        )
