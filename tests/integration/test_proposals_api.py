"""
Saved proposal API tests.
"""

import pytest
from httpx import AsyncClient

CONVERSATION = [
    {"id": "1", "content": "Hi! What would you like to build?", "is_user": False},
    {"id": "2", "content": "A booking portal for our clinic. Patients hate calling.", "is_user": True},
]


async def create(client: AsyncClient, headers: dict[str, str], **fields: object) -> dict:
    body = {"title": "Booking portal", "description": "Online appointments", **fields}
    response = await client.post("/api/proposals", json=body, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()


@pytest.mark.asyncio
async def test_requires_authentication(async_client: AsyncClient) -> None:
    response = await async_client.get("/api/proposals")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_save_and_get(async_client: AsyncClient, auth_headers: dict[str, str]) -> None:
    created = await create(async_client, auth_headers, tags=["health"])
    assert created["id"].startswith("proposal_")
    assert created["status"] == "draft"

    response = await async_client.get(f"/api/proposals/{created['id']}", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["title"] == "Booking portal"

    missing = await async_client.get("/api/proposals/proposal_missing", headers=auth_headers)
    assert missing.status_code == 404
    assert missing.json()["error"]["code"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_blank_title_rejected(async_client: AsyncClient, auth_headers: dict[str, str]) -> None:
    response = await async_client.post("/api/proposals", json={"title": "  "}, headers=auth_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_proposals_are_private(async_client: AsyncClient, signup) -> None:
    owner = await signup()
    other = await signup(email="babbage@example.com", first_name="Charles", last_name="Babbage")
    created = await create(async_client, owner)

    response = await async_client.get(f"/api/proposals/{created['id']}", headers=other)
    assert response.status_code == 404

    listing = await async_client.get("/api/proposals", headers=other)
    assert listing.json()["total"] == 0

    hijack = await async_client.post(
        "/api/proposals", json={"id": created["id"], "title": "Mine now"}, headers=other
    )
    assert hijack.status_code == 404


@pytest.mark.asyncio
async def test_list_filters_and_sorting(async_client: AsyncClient, auth_headers: dict[str, str]) -> None:
    await create(async_client, auth_headers, title="Zebra crossing", tags=["city"], status="completed")
    await create(async_client, auth_headers, title="Apple orchard", tags=["farm"])
    await create(async_client, auth_headers, title="Mango stand", tags=["farm", "retail"], status="archived")

    response = await async_client.get(
        "/api/proposals", params={"sort_by": "title", "order": "asc"}, headers=auth_headers
    )
    titles = [p["title"] for p in response.json()["proposals"]]
    assert titles == ["Apple orchard", "Mango stand", "Zebra crossing"]

    response = await async_client.get("/api/proposals", params={"tags": "farm"}, headers=auth_headers)
    assert response.json()["total"] == 2

    response = await async_client.get("/api/proposals", params={"status": "completed"}, headers=auth_headers)
    assert [p["title"] for p in response.json()["proposals"]] == ["Zebra crossing"]

    response = await async_client.get("/api/proposals", params={"status": "all"}, headers=auth_headers)
    assert response.json()["total"] == 3

    response = await async_client.get("/api/proposals", params={"search": "RETAIL"}, headers=auth_headers)
    assert [p["title"] for p in response.json()["proposals"]] == ["Mango stand"]


@pytest.mark.asyncio
async def test_update_and_delete(async_client: AsyncClient, auth_headers: dict[str, str]) -> None:
    created = await create(async_client, auth_headers)

    response = await async_client.put(
        f"/api/proposals/{created['id']}",
        json={"status": "in-progress", "tags": ["q3"]},
        headers=auth_headers,
    )
    assert response.status_code == 200
    updated = response.json()
    assert updated["status"] == "in-progress"
    assert updated["tags"] == ["q3"]
    assert updated["title"] == "Booking portal"

    response = await async_client.put(
        f"/api/proposals/{created['id']}/messages", json={"messages": CONVERSATION}, headers=auth_headers
    )
    assert len(response.json()["messages"]) == 2

    response = await async_client.delete(f"/api/proposals/{created['id']}", headers=auth_headers)
    assert response.json() == {"status": "deleted", "proposal_id": created["id"]}

    response = await async_client.delete(f"/api/proposals/{created['id']}", headers=auth_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_from_messages_derives_title(async_client: AsyncClient, auth_headers: dict[str, str]) -> None:
    response = await async_client.post(
        "/api/proposals/from-messages", json={"messages": CONVERSATION}, headers=auth_headers
    )

    assert response.status_code == 201
    proposal = response.json()
    assert proposal["title"] == "A booking portal for our clinic"
    assert proposal["description"] == "Hi! What would you like to build?..."

    listing = await async_client.get("/api/proposals", headers=auth_headers)
    assert listing.json()["total"] == 1


@pytest.mark.asyncio
async def test_new_draft_is_not_saved(async_client: AsyncClient, auth_headers: dict[str, str]) -> None:
    response = await async_client.post("/api/proposals/new", headers=auth_headers)

    assert response.status_code == 200
    draft = response.json()
    assert draft["title"] == "New Proposal Draft"
    assert len(draft["messages"]) == 2
    assert not any(m["is_user"] for m in draft["messages"])

    listing = await async_client.get("/api/proposals", headers=auth_headers)
    assert listing.json()["total"] == 0


@pytest.mark.asyncio
async def test_save_current_without_proposal(async_client: AsyncClient, auth_headers: dict[str, str]) -> None:
    response = await async_client.post("/api/proposals/save-current", json={}, headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["title"] == "New Proposal"


@pytest.mark.asyncio
async def test_tags_and_stats(async_client: AsyncClient, auth_headers: dict[str, str]) -> None:
    await create(async_client, auth_headers, tags=["b", "a"], messages=CONVERSATION)
    await create(async_client, auth_headers, tags=["a"], status="completed")
    await async_client.post("/api/enhanced-proposals", headers=auth_headers)

    response = await async_client.get("/api/proposals/tags", headers=auth_headers)
    assert response.json() == {"tags": ["a", "b"]}

    response = await async_client.get("/api/proposals/stats", headers=auth_headers)
    stats = response.json()
    assert stats["total_proposals"] == 2
    assert stats["by_status"] == {"draft": 1, "in-progress": 0, "completed": 1, "archived": 0}
    assert stats["total_tags"] == 2
    assert stats["total_messages"] == 2
    assert len(stats["recent_proposals"]) == 2
    assert stats["enhanced_proposals"] == 1
