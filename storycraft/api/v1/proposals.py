"""
Saved proposal endpoints.
"""

from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from storycraft.api.deps import get_current_user, get_proposal_service
from storycraft.core.constants import ProposalSortBy, ProposalStatus, SortOrder
from storycraft.core.logging import get_logger
from storycraft.core.security import generate_proposal_id
from storycraft.domain.proposal import (
    DateRange,
    ProposalFilters,
    ProposalMessage,
    ProposalSortOptions,
    SavedProposal,
)
from storycraft.domain.user import User
from storycraft.services.proposal_service import ProposalService

logger = get_logger(__name__)

router = APIRouter(prefix="/proposals")


# Request models
class SaveProposalRequest(BaseModel):
    """Proposal to insert or replace. A missing id creates a new proposal."""

    id: Optional[str] = None
    title: str
    description: str = ""
    messages: list[ProposalMessage] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    status: ProposalStatus = ProposalStatus.DRAFT
    created_at: Optional[datetime] = None


class UpdateProposalRequest(BaseModel):
    """Fields to change on an existing proposal."""

    title: Optional[str] = None
    description: Optional[str] = None
    messages: Optional[list[ProposalMessage]] = None
    tags: Optional[list[str]] = None
    status: Optional[ProposalStatus] = None


class UpdateMessagesRequest(BaseModel):
    """Replacement conversation."""

    messages: list[ProposalMessage]


class FromMessagesRequest(BaseModel):
    """Conversation to save as a new proposal."""

    messages: list[ProposalMessage] = Field(default_factory=list)
    title: Optional[str] = None


class SaveCurrentRequest(BaseModel):
    """Proposal being edited, if any, and an optional title."""

    proposal: Optional[SavedProposal] = None
    title: Optional[str] = None


# Response models
class ProposalListResponse(BaseModel):
    """Response for proposal listing."""

    proposals: list[SavedProposal]
    total: int


class TagsResponse(BaseModel):
    tags: list[str]


@router.get("", response_model=ProposalListResponse)
async def list_proposals(
    status_filter: Optional[str] = Query(default=None, alias="status"),
    tags: Optional[list[str]] = Query(default=None),
    search: Optional[str] = Query(default=None),
    start: Optional[datetime] = Query(default=None),
    end: Optional[datetime] = Query(default=None),
    sort_by: ProposalSortBy = Query(default=ProposalSortBy.UPDATED_AT),
    order: SortOrder = Query(default=SortOrder.DESC),
    user: User = Depends(get_current_user),
    proposal_service: ProposalService = Depends(get_proposal_service),
) -> ProposalListResponse:
    """
    List the user's proposals with filters and sorting.
    """
    filters = ProposalFilters(
        status=status_filter,
        tags=tags or [],
        search_query=search,
        date_range=DateRange(start=start, end=end) if start or end else None,
    )
    proposals = await proposal_service.list_proposals(
        user.uuid,
        filters,
        ProposalSortOptions(sort_by=sort_by, order=order),
    )
    return ProposalListResponse(proposals=proposals, total=len(proposals))


@router.post("", response_model=SavedProposal)
async def save_proposal(
    request: SaveProposalRequest,
    user: User = Depends(get_current_user),
    proposal_service: ProposalService = Depends(get_proposal_service),
) -> SavedProposal:
    """
    Insert a new proposal or replace an existing one.
    """
    now = datetime.utcnow()
    proposal = SavedProposal(
        id=request.id or generate_proposal_id(),
        owner_id=user.uuid,
        title=request.title,
        description=request.description,
        messages=request.messages,
        tags=request.tags,
        status=request.status,
        created_at=request.created_at or now,
        updated_at=now,
    )
    return await proposal_service.save_proposal(user.uuid, proposal)


@router.get("/tags", response_model=TagsResponse)
async def get_tags(
    user: User = Depends(get_current_user),
    proposal_service: ProposalService = Depends(get_proposal_service),
) -> TagsResponse:
    """
    Sorted unique tags across the user's proposals.
    """
    return TagsResponse(tags=await proposal_service.get_all_tags(user.uuid))


@router.get("/stats")
async def get_stats(
    user: User = Depends(get_current_user),
    proposal_service: ProposalService = Depends(get_proposal_service),
) -> dict[str, Any]:
    """
    Dashboard statistics for the user.
    """
    stats = await proposal_service.get_dashboard_stats(user.uuid)
    stats["recent_proposals"] = [p.model_dump(mode="json") for p in stats["recent_proposals"]]
    return stats


@router.post("/from-messages", response_model=SavedProposal, status_code=status.HTTP_201_CREATED)
async def create_from_messages(
    request: FromMessagesRequest,
    user: User = Depends(get_current_user),
    proposal_service: ProposalService = Depends(get_proposal_service),
) -> SavedProposal:
    """
    Save a conversation as a new proposal, deriving title and description.
    """
    return await proposal_service.save_messages_as_proposal(user.uuid, request.messages, request.title)


@router.post("/new", response_model=SavedProposal)
async def new_proposal(
    user: User = Depends(get_current_user),
    proposal_service: ProposalService = Depends(get_proposal_service),
) -> SavedProposal:
    """
    Fresh draft opened with the assistant greeting. Not saved until posted back.
    """
    return proposal_service.create_new_proposal()


@router.post("/save-current", response_model=SavedProposal)
async def save_current(
    request: SaveCurrentRequest,
    user: User = Depends(get_current_user),
    proposal_service: ProposalService = Depends(get_proposal_service),
) -> SavedProposal:
    """
    Save the proposal being edited, creating a greeting-only one when absent.
    """
    return await proposal_service.save_current_proposal(user.uuid, request.proposal, request.title)


@router.get("/{proposal_id}", response_model=SavedProposal)
async def get_proposal(
    proposal_id: str,
    user: User = Depends(get_current_user),
    proposal_service: ProposalService = Depends(get_proposal_service),
) -> SavedProposal:
    """
    Get a proposal by ID.
    """
    return await proposal_service.get_proposal(user.uuid, proposal_id)


@router.put("/{proposal_id}", response_model=SavedProposal)
async def update_proposal(
    proposal_id: str,
    request: UpdateProposalRequest,
    user: User = Depends(get_current_user),
    proposal_service: ProposalService = Depends(get_proposal_service),
) -> SavedProposal:
    """
    Update fields of an existing proposal.
    """
    existing = await proposal_service.get_proposal(user.uuid, proposal_id)
    updated = existing.model_copy(update=request.model_dump(exclude_none=True))
    if request.messages is not None:
        updated.messages = request.messages
    return await proposal_service.save_proposal(user.uuid, updated)


@router.delete("/{proposal_id}")
async def delete_proposal(
    proposal_id: str,
    user: User = Depends(get_current_user),
    proposal_service: ProposalService = Depends(get_proposal_service),
) -> dict[str, str]:
    """
    Delete a proposal.
    """
    logger.info("Deleting proposal", proposal_id=proposal_id)
    await proposal_service.delete_proposal(user.uuid, proposal_id)
    return {"status": "deleted", "proposal_id": proposal_id}


@router.put("/{proposal_id}/messages", response_model=SavedProposal)
async def update_messages(
    proposal_id: str,
    request: UpdateMessagesRequest,
    user: User = Depends(get_current_user),
    proposal_service: ProposalService = Depends(get_proposal_service),
) -> SavedProposal:
    """
    Replace the conversation of a proposal.
    """
    return await proposal_service.update_messages(user.uuid, proposal_id, request.messages)
