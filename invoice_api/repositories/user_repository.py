"""
User repository: the storage boundary for user records.

Services never touch an AsyncSession directly for user records; they talk to
a UserRepository. The protocol below is the contract, and
SqlAlchemyUserRepository is the production implementation. Tests can swap in
anything that matches the method signatures.

Uniqueness of email is enforced by the database, not by a check-then-insert
in Python. When two registrations race on the same address, the loser's
flush raises IntegrityError, which add() converts into DuplicateError.
"""

from typing import Protocol

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from invoice_api.exceptions import DuplicateError
from invoice_api.models.user import User, normalize_email


class UserRepository(Protocol):
    """Persistence operations scoped to the User entity."""

    async def get_by_id(self, user_id: int) -> User | None:
        ...

    async def get_by_email(self, email: str) -> User | None:
        """Look up a user by email, case-insensitively."""
        ...

    async def list_all(self) -> list[User]:
        ...

    async def add(self, user: User) -> User:
        """
        Insert a new user and return it with its id assigned.

        Raises:
            DuplicateError: If the email is already taken.
        """
        ...

    async def save(self, user: User) -> User:
        """Persist changes made to an already-loaded user."""
        ...


class SqlAlchemyUserRepository:
    """UserRepository backed by an async SQLAlchemy session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, user_id: int) -> User | None:
        return await self.db.get(User, user_id)

    async def get_by_email(self, email: str) -> User | None:
        result = await self.db.execute(
            select(User).where(User.email == normalize_email(email))
        )
        return result.scalar_one_or_none()

    async def list_all(self) -> list[User]:
        result = await self.db.execute(select(User).order_by(User.id))
        return list(result.scalars().all())

    async def add(self, user: User) -> User:
        self.db.add(user)
        try:
            # Flush to get user.id assigned and to surface the unique constraint now
            await self.db.flush()
        except IntegrityError as exc:
            await self.db.rollback()
            raise DuplicateError() from exc
        return user

    async def save(self, user: User) -> User:
        await self.db.flush()
        await self.db.refresh(user)
        return user
