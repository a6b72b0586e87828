"""
Registration and login for Shelfkeeper.
"""

from dataclasses import dataclass
from datetime import datetime
from functools import lru_cache
from typing import Optional

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from shelfkeeper.auth.lockout import LockoutPolicy
from shelfkeeper.config import Settings
from shelfkeeper.errors import AccountLockedError, ConflictError, InvalidCredentials
from shelfkeeper.security import create_access_token, get_password_hash, verify_password
from shelfkeeper.storage.models import User
from shelfkeeper.storage.user_repository import UserRepository


@lru_cache(maxsize=1)
def _unknown_account_hash() -> str:
    """Hash checked for unknown emails so both failures cost one bcrypt round."""
    return get_password_hash("shelfkeeper-unknown-account")


@dataclass
class IssuedToken:
    """A signed token together with the principal it was issued for."""

    token: str
    expires_at: datetime
    user: User


class AuthService:
    """
    Account registration and credential checks.

    Failed attempts drive the LockoutPolicy. Because the request session
    rolls back when an error response is raised, lockout fields are
    committed before InvalidCredentials / AccountLockedError leave here.
    """

    def __init__(self, session: AsyncSession, settings: Settings):
        self.session = session
        self.settings = settings
        self.users = UserRepository(session)
        self.lockout = LockoutPolicy.from_settings(settings)

    def issue_token(self, user: User) -> IssuedToken:
        token, expires_at = create_access_token(
            subject=user.id,
            settings=self.settings,
            extra_claims={"email": user.email},
        )
        return IssuedToken(token=token, expires_at=expires_at, user=user)

    async def register(
        self,
        email: str,
        password: str,
        display_name: Optional[str] = None,
    ) -> IssuedToken:
        """
        Create a principal and sign them in.

        Raises:
            ConflictError: Email is already registered
        """
        if await self.users.exists_by_email(email):
            raise ConflictError("Email already registered", detail="A user with this email already exists")

        try:
            user = await self.users.create(
                email=email,
                password_hash=get_password_hash(password),
                display_name=display_name.strip() if display_name and display_name.strip() else None,
            )
        except IntegrityError:
            # Concurrent registration won the unique email index
            await self.session.rollback()
            raise ConflictError("Email already registered", detail="A user with this email already exists")
        logger.info(f"Registered user {user.id}")
        return self.issue_token(user)

    async def authenticate(self, email: str, password: str) -> IssuedToken:
        """
        Check credentials and issue a token.

        Raises:
            AccountLockedError: Account is locked; the password is not checked
            InvalidCredentials: Unknown email or wrong password
        """
        user = await self.users.get_by_email(email)
        if user is None:
            verify_password(password, _unknown_account_hash())
            logger.warning("Login attempt for unknown email")
            raise InvalidCredentials()

        if self.lockout.is_locked(user):
            logger.warning(f"Login refused for locked user {user.id}")
            raise AccountLockedError()

        self.lockout.release_if_expired(user)

        if not verify_password(password, user.password_hash):
            locked = self.lockout.register_failure(user)
            await self.users.save_login_state(user)
            if locked:
                raise AccountLockedError()
            raise InvalidCredentials()

        self.lockout.register_success(user)
        logger.info(f"User {user.id} logged in")
        return self.issue_token(user)
