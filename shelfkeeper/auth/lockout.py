"""
Login lockout state machine.

A principal is either active or locked. Consecutive failed password checks
are counted on the user row; reaching the limit locks the account until
``locked_until``. The lock is lifted lazily: the next login attempt after
that instant finds it expired and starts from a clean counter.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from loguru import logger

from shelfkeeper.config import Settings
from shelfkeeper.storage.models import User, utcnow


@dataclass(frozen=True)
class LockoutPolicy:
    """Failure limit and lock duration."""

    max_attempts: int = 5
    lock_duration: timedelta = timedelta(minutes=15)

    @classmethod
    def from_settings(cls, settings: Settings) -> "LockoutPolicy":
        return cls(
            max_attempts=settings.lockout_max_attempts,
            lock_duration=timedelta(minutes=settings.lockout_minutes),
        )

    def is_locked(self, user: User, now: Optional[datetime] = None) -> bool:
        """True while ``locked_until`` lies in the future."""
        now = now or utcnow()
        return user.locked_until is not None and user.locked_until > now

    def release_if_expired(self, user: User, now: Optional[datetime] = None) -> bool:
        """
        Clear an elapsed lock and its failure counter.

        Returns:
            True if the user row was changed
        """
        now = now or utcnow()
        if user.locked_until is not None and user.locked_until <= now:
            user.locked_until = None
            user.failed_login_attempts = 0
            logger.info(f"Lockout expired for user {user.id}")
            return True
        return False

    def register_failure(self, user: User, now: Optional[datetime] = None) -> bool:
        """
        Count a failed password check.

        Returns:
            True if this failure locked the account
        """
        now = now or utcnow()
        user.failed_login_attempts = (user.failed_login_attempts or 0) + 1

        if user.failed_login_attempts >= self.max_attempts:
            user.locked_until = now + self.lock_duration
            logger.warning(
                f"User {user.id} locked until {user.locked_until.isoformat()} "
                f"after {user.failed_login_attempts} failed logins"
            )
            return True

        logger.warning(f"Failed login {user.failed_login_attempts}/{self.max_attempts} for user {user.id}")
        return False

    def register_success(self, user: User) -> None:
        user.failed_login_attempts = 0
        user.locked_until = None
