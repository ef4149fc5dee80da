"""
User repository.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import Any, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from storycraft.core.logging import get_logger
from storycraft.db.models import UserDB
from storycraft.domain.user import User
from storycraft.repositories.base import BaseRepository

logger = get_logger(__name__)


class UserRepository(BaseRepository[User]):
    """Users are addressed by uuid. Emails are stored lowercase."""

    async def get_by_uuid(self, uuid: str) -> Optional[User]:
        return await self.get(uuid)

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[User]:
        """Get a user by email."""
        ...


class InMemoryUserRepository(UserRepository):
    """
    In-memory user repository for development/testing.
    """

    def __init__(self) -> None:
        self._users: dict[str, User] = {}
        self._next_id = 1

    async def get(self, id: str) -> Optional[User]:
        """Get a user by uuid."""
        return self._users.get(id)

    async def get_by_email(self, email: str) -> Optional[User]:
        return next((user for user in self._users.values() if user.email == email), None)

    async def save(self, entity: User) -> User:
        """Save a user, assigning a numeric id on first insert."""
        if entity.id is None:
            entity.id = self._next_id
            self._next_id += 1
        self._users[entity.uuid] = entity
        logger.debug("User saved", user_uuid=entity.uuid)
        return entity

    async def delete(self, id: str) -> bool:
        if id in self._users:
            del self._users[id]
            logger.debug("User deleted", user_uuid=id)
            return True
        return False

    async def list(
        self,
        filters: Optional[dict[str, Any]] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[User]:
        """List users ordered by numeric id."""
        users = sorted(self._users.values(), key=lambda u: u.id or 0)

        if filters:
            if "is_active" in filters:
                users = [u for u in users if u.is_active == filters["is_active"]]
            if "role" in filters:
                users = [u for u in users if filters["role"] in u.roles or u.role == filters["role"]]

        return users[offset : offset + limit]

    async def exists(self, id: str) -> bool:
        return id in self._users


class SqlAlchemyUserRepository(UserRepository):
    """
    SQLAlchemy user repository for production.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """
        Initialize with a session factory.

        Args:
            session_factory: SQLAlchemy async session factory
        """
        self.session_factory = session_factory

    @staticmethod
    def _to_domain(row: UserDB) -> User:
        return User(
            id=row.id,
            uuid=row.uuid,
            email=row.email,
            password=row.password,
            first_name=row.first_name,
            last_name=row.last_name,
            role=row.role,
            roles=list(row.roles or []),
            permissions=list(row.permissions or []),
            is_active=row.is_active,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    async def get(self, id: str) -> Optional[User]:
        async with self.session_factory() as session:
            row = await session.scalar(select(UserDB).where(UserDB.uuid == id))
            return self._to_domain(row) if row else None

    async def get_by_email(self, email: str) -> Optional[User]:
        async with self.session_factory() as session:
            row = await session.scalar(select(UserDB).where(UserDB.email == email))
            return self._to_domain(row) if row else None

    async def save(self, entity: User) -> User:
        async with self.session_factory() as session:
            row = await session.scalar(select(UserDB).where(UserDB.uuid == entity.uuid))
            if row is None:
                row = UserDB(uuid=entity.uuid, created_at=entity.created_at)
                session.add(row)

            row.email = entity.email
            row.password = entity.password
            row.first_name = entity.first_name
            row.last_name = entity.last_name
            row.role = entity.role
            row.roles = list(entity.roles)
            row.permissions = list(entity.permissions)
            row.is_active = entity.is_active
            row.updated_at = entity.updated_at

            await session.commit()
            await session.refresh(row)
            entity.id = row.id

        return entity

    async def delete(self, id: str) -> bool:
        async with self.session_factory() as session:
            result = await session.execute(delete(UserDB).where(UserDB.uuid == id))
            await session.commit()
            return result.rowcount == 1

    async def list(
        self,
        filters: Optional[dict[str, Any]] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[User]:
        query = select(UserDB)
        if filters and "is_active" in filters:
            query = query.where(UserDB.is_active == filters["is_active"])
        query = query.order_by(UserDB.id).limit(limit).offset(offset)

        async with self.session_factory() as session:
            rows = (await session.scalars(query)).all()

        users = [self._to_domain(row) for row in rows]
        if filters and "role" in filters:
            users = [u for u in users if filters["role"] in u.roles or u.role == filters["role"]]
        return users

    async def exists(self, id: str) -> bool:
        async with self.session_factory() as session:
            found = await session.scalar(select(UserDB.id).where(UserDB.uuid == id))
            return found is not None
