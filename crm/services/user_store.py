"""
User Store — persistence boundary for credential records.

The session manager only talks to the abstract UserStore, so its logic can
be exercised against an in-memory implementation in unit tests. The
SQLAlchemy implementation works on the request-scoped AsyncSession; the
get_db dependency owns commit/rollback.
"""

import uuid
from abc import ABC, abstractmethod
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from crm.exceptions import DuplicateEmailError
from crm.models.user import User


class UserStore(ABC):
    """Abstract repository for User rows."""

    @abstractmethod
    async def find_by_email(self, email: str) -> User | None:
        """Case-insensitive lookup by login email."""

    @abstractmethod
    async def find_by_id(self, user_id: uuid.UUID) -> User | None:
        """Lookup by primary key."""

    @abstractmethod
    async def create(self, **fields: Any) -> User:
        """
        Insert a new user and return it with its id assigned.

        Raises:
            DuplicateEmailError: If the email is already taken.
        """

    @abstractmethod
    async def update(self, user_id: uuid.UUID, **fields: Any) -> User | None:
        """
        Apply a partial update.

        Returns:
            The updated user, or None if no user has this id.
        """

    @abstractmethod
    async def increment_failed_attempts(self, user_id: uuid.UUID) -> int:
        """
        Add one to the failed-login counter as a single atomic write.

        Returns:
            The counter value after the increment.
        """


class SQLAlchemyUserStore(UserStore):
    """UserStore backed by an AsyncSession."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def find_by_email(self, email: str) -> User | None:
        result = await self._session.execute(
            select(User).where(func.lower(User.email) == email.lower())
        )
        return result.scalar_one_or_none()

    async def find_by_id(self, user_id: uuid.UUID) -> User | None:
        return await self._session.get(User, user_id)

    async def create(self, **fields: Any) -> User:
        user = User(**fields)
        self._session.add(user)
        # Flush so the id and timestamp defaults are populated
        try:
            await self._session.flush()
        except IntegrityError as e:
            await self._session.rollback()
            # Lost a race with a concurrent registration of the same email
            if "unique" in str(e).lower():
                raise DuplicateEmailError(fields.get("email", "")) from e
            raise
        return user

    async def update(self, user_id: uuid.UUID, **fields: Any) -> User | None:
        user = await self._session.get(User, user_id)
        if user is None:
            return None
        for name, value in fields.items():
            setattr(user, name, value)
        await self._session.flush()
        return user

    async def increment_failed_attempts(self, user_id: uuid.UUID) -> int:
        result = await self._session.execute(
            update(User)
            .where(User.id == user_id)
            .values(failed_attempts=User.failed_attempts + 1)
            .returning(User.failed_attempts)
        )
        return result.scalar_one()
