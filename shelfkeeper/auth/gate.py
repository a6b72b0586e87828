"""
AuthorizationGate: turns a bearer credential into a principal id.

The gate only checks the token. It never touches the database, so a
request for someone else's book is stopped by owner scoping in the
repository, not here.
"""

from typing import Optional

from jose import ExpiredSignatureError, JWTError
from loguru import logger

from shelfkeeper.config import Settings
from shelfkeeper.errors import (
    AuthenticationError,
    ExpiredCredential,
    MalformedCredential,
    MissingCredential,
)
from shelfkeeper.security import decode_access_token


class AuthorizationGate:
    """
    Resolves caller identity from a signed session token.

    Usage:
        gate = AuthorizationGate(settings)
        principal_id = gate.resolve_identity(token)
    """

    def __init__(self, settings: Settings):
        self.settings = settings

    def resolve_identity(self, credential: Optional[str]) -> str:
        """
        Verify a credential and return the principal id it names.

        Args:
            credential: Raw token, without the "Bearer " prefix

        Returns:
            Principal id from the ``sub`` claim

        Raises:
            MissingCredential: No token presented
            ExpiredCredential: Token is past its expiry
            MalformedCredential: Bad signature, issuer, audience or subject
        """
        try:
            return self._resolve(credential)
        except AuthenticationError as exc:
            logger.warning(f"Rejected credential: {exc.reason}")
            raise

    def _resolve(self, credential: Optional[str]) -> str:
        if credential is None or not credential.strip():
            raise MissingCredential()

        try:
            claims = decode_access_token(credential.strip(), self.settings)
        except ExpiredSignatureError:
            raise ExpiredCredential()
        except JWTError:
            raise MalformedCredential()

        subject = claims.get("sub")
        if not isinstance(subject, str) or not subject.strip():
            raise MalformedCredential("Token has no subject")

        return subject
