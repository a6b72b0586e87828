"""
User Repository for Shelfkeeper.
"""

from typing import Optional
from uuid import uuid4

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import User, utcnow


class UserRepository:
    """Async access to principals."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, user_id: str) -> Optional[User]:
        return await self.session.get(User, user_id)

    async def get_by_email(self, email: str) -> Optional[User]:
        """Look up a user by email, ignoring case."""
        stmt = select(User).where(func.lower(User.email) == email.strip().lower())
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def exists_by_email(self, email: str) -> bool:
        return await self.get_by_email(email) is not None

    async def create(
        self,
        email: str,
        password_hash: str,
        display_name: Optional[str] = None,
    ) -> User:
        """
        Create a new user.

        Args:
            email: Login identifier
            password_hash: bcrypt hash of the password
            display_name: Optional name shown in the UI

        Returns:
            Created User
        """
        user = User(
            id=str(uuid4()),
            email=email.strip().lower(),
            password_hash=password_hash,
            display_name=display_name,
            failed_login_attempts=0,
            created_at=utcnow(),
        )
        self.session.add(user)
        await self.session.flush()
        return user

    async def save_login_state(self, user: User) -> None:
        """
        Persist lockout fields immediately.

        Failed logins end in an error response, which rolls back the request
        session, so the counter has to be committed before raising.
        """
        self.session.add(user)
        await self.session.commit()
