"""
Saved proposal domain model.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from storycraft.core.constants import ProposalSortBy, ProposalStatus, SortOrder


class ProposalMessage(BaseModel):
    """A message in a proposal conversation."""

    id: str = Field(..., description="Message identifier")
    content: str = Field(..., description="Message content")
    is_user: bool = Field(..., description="True when written by the user")
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class SavedProposal(BaseModel):
    """A saved chat-like proposal session."""

    model_config = ConfigDict(use_enum_values=True)

    id: str = Field(..., description="Unique proposal identifier")
    owner_id: Optional[str] = Field(default=None, description="UUID of the owning user")
    title: str
    description: str = ""
    messages: list[ProposalMessage] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    tags: list[str] = Field(default_factory=list)
    status: ProposalStatus = Field(default=ProposalStatus.DRAFT)

    @property
    def user_messages(self) -> list[ProposalMessage]:
        """Messages written by the user."""
        return [message for message in self.messages if message.is_user]

    @property
    def message_count(self) -> int:
        return len(self.messages)


class DateRange(BaseModel):
    """Inclusive creation date bounds."""

    start: Optional[datetime] = None
    end: Optional[datetime] = None


class ProposalFilters(BaseModel):
    """Filters for proposal listings."""

    status: Optional[Union[ProposalStatus, str]] = Field(
        default=None, description="Proposal status, or 'all'"
    )
    tags: list[str] = Field(default_factory=list)
    search_query: Optional[str] = None
    date_range: Optional[DateRange] = None


class ProposalSortOptions(BaseModel):
    """Sort options for proposal listings."""

    model_config = ConfigDict(use_enum_values=True)

    sort_by: ProposalSortBy = ProposalSortBy.UPDATED_AT
    order: SortOrder = SortOrder.DESC
