"""
Guided proposal repository.
"""

from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from storycraft.core.logging import get_logger
from storycraft.db.models import EnhancedProposalDB
from storycraft.domain.enhanced_proposal import EnhancedProposal
from storycraft.repositories.base import BaseRepository

logger = get_logger(__name__)


class EnhancedProposalRepository(BaseRepository[EnhancedProposal]):
    async def list_by_owner(self, owner_id: Optional[str]) -> list[EnhancedProposal]:
        """All guided proposals of one owner, newest update first."""
        return await self.list({"owner_id": owner_id}, limit=None)


class InMemoryEnhancedProposalRepository(EnhancedProposalRepository):
    """
    In-memory guided proposal repository for development/testing.
    """

    def __init__(self) -> None:
        self._proposals: dict[str, EnhancedProposal] = {}

    async def get(self, id: str) -> Optional[EnhancedProposal]:
        return self._proposals.get(id)

    async def save(self, entity: EnhancedProposal) -> EnhancedProposal:
        self._proposals[entity.id] = entity
        logger.debug("Enhanced proposal saved", proposal_id=entity.id, phase=entity.current_phase)
        return entity

    async def delete(self, id: str) -> bool:
        if id in self._proposals:
            del self._proposals[id]
            logger.debug("Enhanced proposal deleted", proposal_id=id)
            return True
        return False

    async def list(
        self,
        filters: Optional[dict[str, Any]] = None,
        limit: Optional[int] = 100,
        offset: int = 0,
    ) -> list[EnhancedProposal]:
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


class SqlAlchemyEnhancedProposalRepository(EnhancedProposalRepository):
    """
    SQLAlchemy guided proposal repository.

    The whole proposal is stored as one JSON document.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def get(self, id: str) -> Optional[EnhancedProposal]:
        async with self.session_factory() as session:
            row = await session.get(EnhancedProposalDB, id)
            return EnhancedProposal.model_validate(row.document) if row else None

    async def save(self, entity: EnhancedProposal) -> EnhancedProposal:
        async with self.session_factory() as session:
            row = await session.get(EnhancedProposalDB, entity.id)
            if row is None:
                row = EnhancedProposalDB(id=entity.id, created_at=entity.created_at)
                session.add(row)

            row.owner_id = entity.owner_id
            row.title = entity.title
            row.workflow_type = entity.workflow_type
            row.current_phase = entity.current_phase
            row.completion_percentage = entity.completion_percentage
            row.status = entity.status
            row.document = entity.model_dump(mode="json")
            row.updated_at = entity.updated_at

            await session.commit()

        return entity

    async def delete(self, id: str) -> bool:
        async with self.session_factory() as session:
            result = await session.execute(delete(EnhancedProposalDB).where(EnhancedProposalDB.id == id))
            await session.commit()
            return result.rowcount == 1

    async def list(
        self,
        filters: Optional[dict[str, Any]] = None,
        limit: Optional[int] = 100,
        offset: int = 0,
    ) -> list[EnhancedProposal]:
        query = select(EnhancedProposalDB)
        if filters:
            if "owner_id" in filters:
                query = query.where(EnhancedProposalDB.owner_id == filters["owner_id"])
            if "status" in filters:
                query = query.where(EnhancedProposalDB.status == filters["status"])

        query = query.order_by(EnhancedProposalDB.updated_at.desc()).offset(offset)
        if limit is not None:
            query = query.limit(limit)

        async with self.session_factory() as session:
            rows = (await session.scalars(query)).all()
            return [EnhancedProposal.model_validate(row.document) for row in rows]

    async def exists(self, id: str) -> bool:
        async with self.session_factory() as session:
            found = await session.scalar(select(EnhancedProposalDB.id).where(EnhancedProposalDB.id == id))
            return found is not None
