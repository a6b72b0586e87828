"""
Password hashing and JWT helpers for Shelfkeeper.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from uuid import uuid4

import bcrypt
from jose import jwt

from shelfkeeper.config import Settings


# bcrypt only looks at the first 72 bytes and newer releases reject longer input
BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def get_password_hash(password: str) -> str:
    """Hash a password with a fresh bcrypt salt."""
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a password against a stored bcrypt hash."""
    try:
        return bcrypt.checkpw(_password_bytes(plain_password), hashed_password.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


def create_access_token(
    subject: str,
    settings: Settings,
    extra_claims: Optional[dict[str, Any]] = None,
    expires_delta: Optional[timedelta] = None,
) -> tuple[str, datetime]:
    """
    Issue a signed access token.

    Args:
        subject: Principal id, stored in the ``sub`` claim
        settings: Signing key, algorithm, issuer and audience
        extra_claims: Additional claims such as ``email``
        expires_delta: Lifetime, defaults to ACCESS_TOKEN_EXPIRE_MINUTES

    Returns:
        (encoded token, expiry instant in UTC)
    """
    issued_at = datetime.now(timezone.utc)
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)
    expires_at = issued_at + expires_delta

    to_encode = dict(extra_claims or {})
    to_encode.update({
        "sub": subject,
        "jti": str(uuid4()),
        "iat": issued_at,
        "exp": expires_at,
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
    })
    encoded_jwt = jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)
    return encoded_jwt, expires_at


def decode_access_token(token: str, settings: Settings) -> dict[str, Any]:
    """
    Verify signature, expiry, issuer and audience and return the claims.

    Raises:
        jose.ExpiredSignatureError: Token is past ``exp``
        jose.JWTError: Any other verification failure
    """
    return jwt.decode(
        token,
        settings.jwt_secret_key,
        algorithms=[settings.jwt_algorithm],
        audience=settings.jwt_audience,
        issuer=settings.jwt_issuer,
    )
