"""
Saved proposal repository.
"""

from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from storycraft.core.logging import get_logger
from storycraft.db.models import ProposalDB
from storycraft.domain.proposal import ProposalMessage, SavedProposal
from storycraft.repositories.base import BaseRepository

logger = get_logger(__name__)


class ProposalRepository(BaseRepository[SavedProposal]):
    async def list_by_owner(self, owner_id: Optional[str]) -> list[SavedProposal]:
        """All proposals of one owner, newest update first."""
        return await self.list({"owner_id": owner_id}, limit=None)


class InMemoryProposalRepository(ProposalRepository):
    """
    In-memory proposal repository for development/testing.
    """

    def __init__(self) -> None:
        self._proposals: dict[str, SavedProposal] = {}

    async def get(self, id: str) -> Optional[SavedProposal]:
        return self._proposals.get(id)

    async def save(self, entity: SavedProposal) -> SavedProposal:
        self._proposals[entity.id] = entity
        logger.debug("Proposal saved", proposal_id=entity.id)
        return entity

    async def delete(self, id: str) -> bool:
        if id in self._proposals:
            del self._proposals[id]
            logger.debug("Proposal deleted", proposal_id=id)
            return True
        return False

    async def list(
        self,
        filters: Optional[dict[str, Any]] = None,
        limit: Optional[int] = 100,
        offset: int = 0,
    ) -> list[SavedProposal]:
        proposals = list(self._proposals.values())

        if filters:
            if "owner_id" in filters:
                proposals = [p for p in proposals if p.owner_id == filters["owner_id"]]
            if "status" in filters:
                proposals = [p for p in proposals if p.status == filters["status"]]

        proposals.sort(key=lambda p: p.updated_at, reverse=True)

        if limit is None:
            return proposals[offset:]
        return proposals[offset : offset + limit]

    async def exists(self, id: str) -> bool:
        return id in self._proposals


class SqlAlchemyProposalRepository(ProposalRepository):
    """
    SQLAlchemy proposal repository for production.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    @staticmethod
    def _to_domain(row: ProposalDB) -> SavedProposal:
        return SavedProposal(
            id=row.id,
            owner_id=row.owner_id,
            title=row.title,
            description=row.description,
            messages=[ProposalMessage.model_validate(message) for message in row.messages or []],
            tags=list(row.tags or []),
            status=row.status,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    async def get(self, id: str) -> Optional[SavedProposal]:
        async with self.session_factory() as session:
            row = await session.get(ProposalDB, id)
            return self._to_domain(row) if row else None

    async def save(self, entity: SavedProposal) -> SavedProposal:
        async with self.session_factory() as session:
            row = await session.get(ProposalDB, entity.id)
            if row is None:
                row = ProposalDB(id=entity.id, created_at=entity.created_at)
                session.add(row)

            row.owner_id = entity.owner_id
            row.title = entity.title
            row.description = entity.description
            row.messages = [message.model_dump(mode="json") for message in entity.messages]
            row.tags = list(entity.tags)
            row.status = entity.status
            row.updated_at = entity.updated_at

            await session.commit()

        return entity

    async def delete(self, id: str) -> bool:
        async with self.session_factory() as session:
            result = await session.execute(delete(ProposalDB).where(ProposalDB.id == id))
            await session.commit()
            return result.rowcount == 1

    async def list(
        self,
        filters: Optional[dict[str, Any]] = None,
        limit: Optional[int] = 100,
        offset: int = 0,
    ) -> list[SavedProposal]:
        query = select(ProposalDB)
        if filters:
            if "owner_id" in filters:
                query = query.where(ProposalDB.owner_id == filters["owner_id"])
            if "status" in filters:
                query = query.where(ProposalDB.status == filters["status"])

        query = query.order_by(ProposalDB.updated_at.desc()).offset(offset)
        if limit is not None:
            query = query.limit(limit)

        async with self.session_factory() as session:
            rows = (await session.scalars(query)).all()
            return [self._to_domain(row) for row in rows]

    async def exists(self, id: str) -> bool:
        async with self.session_factory() as session:
            found = await session.scalar(select(ProposalDB.id).where(ProposalDB.id == id))
            return found is not None
