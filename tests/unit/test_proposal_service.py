"""
Unit tests for saved proposals.
"""

from datetime import datetime, timedelta, timezone

import pytest

from storycraft.core.exceptions import InvalidRequestError, ProposalNotFoundError
from storycraft.domain.proposal import (
    DateRange,
    ProposalFilters,
    ProposalMessage,
    ProposalSortOptions,
    SavedProposal,
)
from storycraft.repositories.enhanced_proposal_repo import InMemoryEnhancedProposalRepository
from storycraft.repositories.proposal_repo import InMemoryProposalRepository
from storycraft.services.enhanced_proposal_service import EnhancedProposalService
from storycraft.services.proposal_service import (
    ProposalService,
    extract_title_from_messages,
    filter_and_sort_proposals,
    welcome_messages,
)

BASE_TIME = datetime(2024, 3, 1, 9, 0, 0)


@pytest.fixture
def service(
    proposal_repository: InMemoryProposalRepository,
    enhanced_proposal_repository: InMemoryEnhancedProposalRepository,
) -> ProposalService:
    return ProposalService(proposal_repository, enhanced_proposal_repository)


def message(content: str, is_user: bool = True, message_id: str = "m") -> ProposalMessage:
    return ProposalMessage(id=message_id, content=content, is_user=is_user, timestamp=BASE_TIME)


def proposal(
    proposal_id: str,
    title: str,
    status: str = "draft",
    tags: list[str] | None = None,
    days: int = 0,
    description: str = "",
) -> SavedProposal:
    return SavedProposal(
        id=proposal_id,
        owner_id="owner-1",
        title=title,
        description=description,
        status=status,
        tags=tags or [],
        created_at=BASE_TIME + timedelta(days=days),
        updated_at=BASE_TIME + timedelta(days=days),
    )


def test_title_comes_from_first_user_sentence() -> None:
    messages = [message("Hi, I'm the assistant.", is_user=False), message("Build a loyalty app. It should be fun!")]
    assert extract_title_from_messages(messages) == "Build a loyalty app"


def test_long_titles_are_truncated() -> None:
    title = extract_title_from_messages([message("x" * 60)])
    assert title == "x" * 50 + "..."


def test_title_without_user_messages() -> None:
    assert extract_title_from_messages([message("hello", is_user=False)]) == "New Proposal"


def test_welcome_messages_are_ordered() -> None:
    messages = welcome_messages(BASE_TIME)

    assert [m.id for m in messages] == ["1", "2"]
    assert not any(m.is_user for m in messages)
    assert messages[1].timestamp - messages[0].timestamp == timedelta(milliseconds=1)
    assert "StoryCraft Proposals Assistant" in messages[0].content


class TestFilterAndSort:
    @pytest.fixture
    def proposals(self) -> list[SavedProposal]:
        return [
            proposal("p1", "beta launch", status="draft", tags=["mobile"], days=0),
            proposal("p2", "Alpha pilot", status="completed", tags=["web"], days=1, description="Retail stores"),
            proposal("p3", "Gamma rollout", status="draft", tags=["mobile", "web"], days=2),
        ]

    def test_status_filter(self, proposals: list[SavedProposal]) -> None:
        result = filter_and_sort_proposals(proposals, ProposalFilters(status="draft"))
        assert [p.id for p in result] == ["p3", "p1"]

        result = filter_and_sort_proposals(proposals, ProposalFilters(status="all"))
        assert len(result) == 3

    def test_search_covers_description_and_tags(self, proposals: list[SavedProposal]) -> None:
        assert [p.id for p in filter_and_sort_proposals(proposals, ProposalFilters(search_query="RETAIL"))] == ["p2"]
        assert [p.id for p in filter_and_sort_proposals(proposals, ProposalFilters(search_query="mob"))] == ["p3", "p1"]

    def test_any_tag_matches(self, proposals: list[SavedProposal]) -> None:
        result = filter_and_sort_proposals(proposals, ProposalFilters(tags=["web"]))
        assert [p.id for p in result] == ["p3", "p2"]

    def test_date_range_is_inclusive(self, proposals: list[SavedProposal]) -> None:
        filters = ProposalFilters(
            date_range=DateRange(start=BASE_TIME + timedelta(days=1), end=BASE_TIME + timedelta(days=2))
        )
        assert [p.id for p in filter_and_sort_proposals(proposals, filters)] == ["p3", "p2"]

    def test_aware_bounds_are_compared_in_utc(self, proposals: list[SavedProposal]) -> None:
        start = (BASE_TIME + timedelta(days=2)).replace(tzinfo=timezone.utc)
        filters = ProposalFilters(date_range=DateRange(start=start))
        assert [p.id for p in filter_and_sort_proposals(proposals, filters)] == ["p3"]

    def test_title_sort_ignores_case(self, proposals: list[SavedProposal]) -> None:
        sort = ProposalSortOptions(sort_by="title", order="asc")
        assert [p.title for p in filter_and_sort_proposals(proposals, sort=sort)] == [
            "Alpha pilot",
            "beta launch",
            "Gamma rollout",
        ]

    def test_created_at_descending(self, proposals: list[SavedProposal]) -> None:
        sort = ProposalSortOptions(sort_by="createdAt", order="desc")
        assert [p.id for p in filter_and_sort_proposals(proposals, sort=sort)] == ["p3", "p2", "p1"]


@pytest.mark.asyncio
async def test_save_and_get(service: ProposalService) -> None:
    saved = await service.save_proposal("owner-1", proposal("p1", "Loyalty"))

    assert saved.owner_id == "owner-1"
    assert (await service.get_proposal("owner-1", "p1")).title == "Loyalty"

    with pytest.raises(ProposalNotFoundError):
        await service.get_proposal("owner-2", "p1")


@pytest.mark.asyncio
async def test_update_bumps_updated_at(service: ProposalService) -> None:
    first = await service.save_proposal("owner-1", proposal("p1", "Loyalty"))
    assert first.updated_at == BASE_TIME

    second = await service.save_proposal("owner-1", first.model_copy(update={"title": "Loyalty v2"}))
    assert second.updated_at > BASE_TIME
    assert second.created_at == BASE_TIME


@pytest.mark.asyncio
async def test_save_requires_title(service: ProposalService) -> None:
    with pytest.raises(InvalidRequestError):
        await service.save_proposal("owner-1", proposal("p1", "   "))


@pytest.mark.asyncio
async def test_cannot_overwrite_another_users_proposal(service: ProposalService) -> None:
    await service.save_proposal("owner-1", proposal("p1", "Mine"))
    with pytest.raises(ProposalNotFoundError):
        await service.save_proposal("owner-2", proposal("p1", "Theirs"))


@pytest.mark.asyncio
async def test_delete(service: ProposalService) -> None:
    await service.save_proposal("owner-1", proposal("p1", "Loyalty"))
    await service.delete_proposal("owner-1", "p1")

    with pytest.raises(ProposalNotFoundError):
        await service.delete_proposal("owner-1", "p1")


@pytest.mark.asyncio
async def test_messages_become_a_proposal(service: ProposalService) -> None:
    messages = [message("Build a loyalty app for coffee shops. Customers earn points.")]
    saved = await service.save_messages_as_proposal("owner-1", messages)

    assert saved.title == "Build a loyalty app for coffee shops"
    assert saved.description == messages[0].content + "..."
    assert saved.status == "draft"
    assert (await service.get_proposal("owner-1", saved.id)).messages == messages


@pytest.mark.asyncio
async def test_new_proposal_is_not_saved(service: ProposalService) -> None:
    draft = service.create_new_proposal()

    assert draft.title == "New Proposal Draft"
    assert len(draft.messages) == 2
    assert await service.list_proposals("owner-1") == []


@pytest.mark.asyncio
async def test_save_current_derives_title(service: ProposalService) -> None:
    current = proposal("p1", "Untitled").model_copy(update={"messages": [message("Plan the spring campaign. Soon.")]})

    saved = await service.save_current_proposal("owner-1", current)
    assert saved.title == "Plan the spring campaign"

    created = await service.save_current_proposal("owner-1", None, title="Fresh start")
    assert created.title == "Fresh start"
    assert len(created.messages) == 2


@pytest.mark.asyncio
async def test_tags_and_stats(
    service: ProposalService, enhanced_proposal_repository: InMemoryEnhancedProposalRepository
) -> None:
    await service.save_proposal("owner-1", proposal("p1", "One", tags=["web", "mobile"]))
    await service.save_proposal("owner-1", proposal("p2", "Two", status="completed", tags=["web"]))
    await service.save_proposal("owner-2", proposal("p3", "Other", tags=["zzz"]))
    await EnhancedProposalService(enhanced_proposal_repository).create_proposal("owner-1")

    assert await service.get_all_tags("owner-1") == ["mobile", "web"]

    stats = await service.get_dashboard_stats("owner-1")
    assert stats["total_proposals"] == 2
    assert stats["by_status"] == {"draft": 1, "in-progress": 0, "completed": 1, "archived": 0}
    assert stats["total_tags"] == 2
    assert stats["enhanced_proposals"] == 1
    assert len(stats["recent_proposals"]) == 2
