"""
Saved proposal management.
"""

import re
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from storycraft.core.constants import ProposalSortBy, ProposalStatus, SortOrder
from storycraft.core.exceptions import InvalidRequestError, ProposalNotFoundError
from storycraft.core.logging import get_logger
from storycraft.core.security import generate_proposal_id
from storycraft.domain.proposal import (
    ProposalFilters,
    ProposalMessage,
    ProposalSortOptions,
    SavedProposal,
)
from storycraft.repositories.enhanced_proposal_repo import EnhancedProposalRepository
from storycraft.repositories.proposal_repo import ProposalRepository

logger = get_logger(__name__)

TITLE_MAX_LENGTH = 50
DESCRIPTION_EXCERPT_LENGTH = 200
RECENT_PROPOSALS_LIMIT = 5
STATUS_ALL = "all"

WELCOME_MESSAGES = [
    "🚀 **StoryCraft Proposals Assistant**\n\n"
    "I'm your assistant for creating world-class proposals that get approved and funded.",
    "✨ **Smart Capabilities**:\n"
    "• **Context-Aware Analysis**: I analyze your input patterns for targeted advice\n"
    "• **Framework-Based Guidance**: Strategic, financial, technical, and operational insights\n"
    "• **Real-World Examples**: Industry best practices and proven methodologies\n"
    "• **Risk Intelligence**: Proactive identification and mitigation strategies\n\n"
    "💡 **Pro Tip**: The more specific you are, the more targeted my guidance becomes!\n\n"
    "What kind of proposal challenge can I help you solve?",
]


def _naive_utc(value: datetime) -> datetime:
    """Stored timestamps are naive UTC; aware query values are converted."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def welcome_messages(now: Optional[datetime] = None) -> list[ProposalMessage]:
    """Assistant greeting that opens a new proposal conversation."""
    start = now or datetime.utcnow()
    return [
        ProposalMessage(
            id=str(index + 1),
            content=content,
            is_user=False,
            timestamp=start + timedelta(milliseconds=index),
        )
        for index, content in enumerate(WELCOME_MESSAGES)
    ]


def extract_title_from_messages(messages: list[ProposalMessage]) -> str:
    """
    Derive a title from the first user message.

    Uses the first sentence, truncated to 50 characters plus "...".
    """
    user_messages = [message for message in messages if message.is_user]
    if not user_messages:
        return "New Proposal"

    first = user_messages[0].content
    title = re.split(r"[.!?]+", first)[0].strip() or first
    if len(title) > TITLE_MAX_LENGTH:
        return title[:TITLE_MAX_LENGTH] + "..."
    return title


def filter_and_sort_proposals(
    proposals: list[SavedProposal],
    filters: Optional[ProposalFilters] = None,
    sort: Optional[ProposalSortOptions] = None,
) -> list[SavedProposal]:
    """
    Apply listing filters then sort.

    Filters combine: status (``all`` disables it), case-insensitive search
    over title, description and tags, any-of tag match and an inclusive
    creation date range.
    """
    filters = filters or ProposalFilters()
    sort = sort or ProposalSortOptions()
    result = list(proposals)

    if filters.status and filters.status != STATUS_ALL:
        result = [p for p in result if p.status == filters.status]

    if filters.search_query:
        query = filters.search_query.lower()
        result = [
            p
            for p in result
            if query in p.title.lower()
            or query in p.description.lower()
            or any(query in tag.lower() for tag in p.tags)
        ]

    if filters.tags:
        result = [p for p in result if any(tag in p.tags for tag in filters.tags)]

    if filters.date_range:
        start = filters.date_range.start
        end = filters.date_range.end
        if start is not None:
            result = [p for p in result if p.created_at >= _naive_utc(start)]
        if end is not None:
            result = [p for p in result if p.created_at <= _naive_utc(end)]

    sort_keys = {
        ProposalSortBy.TITLE.value: lambda p: p.title.lower(),
        ProposalSortBy.CREATED_AT.value: lambda p: p.created_at,
        ProposalSortBy.UPDATED_AT.value: lambda p: p.updated_at,
        ProposalSortBy.STATUS.value: lambda p: p.status,
    }
    key = sort_keys.get(sort.sort_by)
    if key is not None:
        result.sort(key=key, reverse=sort.order == SortOrder.DESC)
    return result


class ProposalService:
    """
    Stores and queries a user's saved proposals.
    """

    def __init__(
        self,
        proposal_repository: ProposalRepository,
        enhanced_proposal_repository: Optional[EnhancedProposalRepository] = None,
    ) -> None:
        self.proposal_repository = proposal_repository
        self.enhanced_proposal_repository = enhanced_proposal_repository

    async def list_proposals(
        self,
        owner_id: str,
        filters: Optional[ProposalFilters] = None,
        sort: Optional[ProposalSortOptions] = None,
    ) -> list[SavedProposal]:
        proposals = await self.proposal_repository.list_by_owner(owner_id)
        return filter_and_sort_proposals(proposals, filters, sort)

    async def get_proposal(self, owner_id: str, proposal_id: str) -> SavedProposal:
        """
        Get a proposal owned by ``owner_id``.

        Raises:
            ProposalNotFoundError: Missing or owned by someone else
        """
        proposal = await self.proposal_repository.get(proposal_id)
        if proposal is None or proposal.owner_id != owner_id:
            raise ProposalNotFoundError(proposal_id)
        return proposal

    async def save_proposal(self, owner_id: str, proposal: SavedProposal) -> SavedProposal:
        """
        Insert a new proposal or replace an existing one.

        Updating an existing proposal bumps ``updated_at``.

        Raises:
            InvalidRequestError: Missing id or title
            ProposalNotFoundError: Id belongs to another user's proposal
        """
        if not proposal.id:
            raise InvalidRequestError("Proposal id is required", field="id")
        if not proposal.title or not proposal.title.strip():
            raise InvalidRequestError("Proposal title is required", field="title")

        existing = await self.proposal_repository.get(proposal.id)
        if existing is not None and existing.owner_id != owner_id:
            raise ProposalNotFoundError(proposal.id)

        updates: dict[str, Any] = {"owner_id": owner_id}
        if existing is not None:
            updates["updated_at"] = datetime.utcnow()
        saved = await self.proposal_repository.save(proposal.model_copy(update=updates))

        logger.info(
            "Proposal saved",
            proposal_id=saved.id,
            owner_id=owner_id,
            created=existing is None,
        )
        return saved

    async def delete_proposal(self, owner_id: str, proposal_id: str) -> None:
        await self.get_proposal(owner_id, proposal_id)
        await self.proposal_repository.delete(proposal_id)
        logger.info("Proposal deleted", proposal_id=proposal_id, owner_id=owner_id)

    async def update_messages(
        self, owner_id: str, proposal_id: str, messages: list[ProposalMessage]
    ) -> SavedProposal:
        proposal = await self.get_proposal(owner_id, proposal_id)
        updated = proposal.model_copy(update={"messages": messages, "updated_at": datetime.utcnow()})
        return await self.proposal_repository.save(updated)

    async def get_all_tags(self, owner_id: str) -> list[str]:
        """Sorted unique tags across the owner's proposals."""
        proposals = await self.proposal_repository.list_by_owner(owner_id)
        return sorted({tag for proposal in proposals for tag in proposal.tags})

    @staticmethod
    def create_proposal_from_messages(
        messages: list[ProposalMessage], title: Optional[str] = None
    ) -> SavedProposal:
        """Build an unsaved draft from a conversation."""
        now = datetime.utcnow()
        description = messages[0].content[:DESCRIPTION_EXCERPT_LENGTH] + "..." if messages else ""
        return SavedProposal(
            id=generate_proposal_id(),
            title=title or extract_title_from_messages(messages),
            description=description,
            messages=list(messages),
            created_at=now,
            updated_at=now,
            tags=[],
            status=ProposalStatus.DRAFT,
        )

    async def save_messages_as_proposal(
        self, owner_id: str, messages: list[ProposalMessage], title: Optional[str] = None
    ) -> SavedProposal:
        proposal = self.create_proposal_from_messages(messages, title)
        return await self.save_proposal(owner_id, proposal)

    @staticmethod
    def create_new_proposal() -> SavedProposal:
        """Fresh unsaved draft opened with the assistant greeting."""
        now = datetime.utcnow()
        return SavedProposal(
            id=generate_proposal_id(),
            title="New Proposal Draft",
            description="",
            messages=welcome_messages(now),
            created_at=now,
            updated_at=now,
            tags=[],
            status=ProposalStatus.DRAFT,
        )

    async def save_current_proposal(
        self,
        owner_id: str,
        proposal: Optional[SavedProposal] = None,
        title: Optional[str] = None,
    ) -> SavedProposal:
        """
        Save the proposal being edited, creating one when there is none.

        Without an explicit title the title is derived from the messages.
        """
        if proposal is None:
            now = datetime.utcnow()
            proposal = SavedProposal(
                id=generate_proposal_id(),
                title=title or "New Proposal",
                messages=welcome_messages(now),
                created_at=now,
                updated_at=now,
            )

        to_save = proposal.model_copy(
            update={
                "title": title or extract_title_from_messages(proposal.messages),
                "updated_at": datetime.utcnow(),
            }
        )
        return await self.save_proposal(owner_id, to_save)

    async def get_dashboard_stats(self, owner_id: str) -> dict[str, Any]:
        """Counts per status, tags, recent activity and guided proposals."""
        proposals = await self.proposal_repository.list_by_owner(owner_id)

        by_status = {status.value: 0 for status in ProposalStatus}
        for proposal in proposals:
            by_status[proposal.status] = by_status.get(proposal.status, 0) + 1

        recent = sorted(proposals, key=lambda p: p.updated_at, reverse=True)[:RECENT_PROPOSALS_LIMIT]

        enhanced_count = 0
        if self.enhanced_proposal_repository is not None:
            enhanced_count = len(await self.enhanced_proposal_repository.list_by_owner(owner_id))

        return {
            "total_proposals": len(proposals),
            "by_status": by_status,
            "total_tags": len({tag for proposal in proposals for tag in proposal.tags}),
            "total_messages": sum(proposal.message_count for proposal in proposals),
            "recent_proposals": recent,
            "enhanced_proposals": enhanced_count,
        }
