"""
Guided proposal API tests.
"""

import pytest
from httpx import AsyncClient

BASE = "/api/enhanced-proposals"

KNOWLEDGE_BASE = {
    "personas": [
        {"id": "persona-0", "name": "End User", "role": "End User", "description": "d", "pain_points": ["Slow"]},
        {"id": "persona-1", "name": "Administrator", "role": "Administrator", "description": "d"},
    ],
    "contexts": [
        {"id": f"context-{i}", "category": "market", "title": "Market Context", "description": "d"}
        for i in range(3)
    ],
    "goals": [
        {"id": f"goal-{i}", "type": "business", "description": f"Goal {i}", "priority": "high"}
        for i in range(2)
    ],
    "constraints": [
        {"id": "constraint-0", "type": "budget", "description": "Small budget"},
        {"id": "constraint-1", "type": "timeline", "description": "Ship by June"},
    ],
    "assumptions": [{"id": "assumption-0", "category": "user", "description": "Users prefer mobile"}],
}


async def start(client: AsyncClient, headers: dict[str, str], **body: object) -> dict:
    response = await client.post(BASE, json=body or None, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_create_and_list(async_client: AsyncClient, auth_headers: dict[str, str]) -> None:
    proposal = await start(async_client, auth_headers)
    assert proposal["workflow_type"] == "story"
    assert proposal["current_phase"] == "information-gathering"
    assert len(proposal["messages"]) == 1

    epic = await start(async_client, auth_headers, workflow_type="epic")
    assert epic["title"] == "New Epic Proposal"

    response = await async_client.get(BASE, headers=auth_headers)
    assert response.json()["total"] == 2


@pytest.mark.asyncio
async def test_respond_asks_next_question(async_client: AsyncClient, auth_headers: dict[str, str]) -> None:
    proposal = await start(async_client, auth_headers)

    response = await async_client.post(
        f"{BASE}/{proposal['id']}/respond", json={"content": "Hello"}, headers=auth_headers
    )

    assert response.status_code == 200
    data = response.json()
    assert data["reply"]["is_user"] is False
    assert data["reply"]["question_category"] == "persona"
    assert data["progress"]["completion_percentage"] == 0
    assert data["progress"]["ready_for_next_phase"] is False


@pytest.mark.asyncio
async def test_messages_feed_progress(async_client: AsyncClient, auth_headers: dict[str, str]) -> None:
    proposal = await start(async_client, auth_headers)
    url = f"{BASE}/{proposal['id']}"

    response = await async_client.post(
        f"{url}/messages",
        json={"content": "The main goal is to increase revenue. We have a strict budget."},
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert response.json()["extracted_info"] is not None

    progress = (await async_client.get(f"{url}/progress", headers=auth_headers)).json()
    assert progress["completion_percentage"] == 20
    assert "personas" in progress["missing_information"]

    empty = await async_client.post(f"{url}/messages", json={"content": ""}, headers=auth_headers)
    assert empty.status_code == 400


@pytest.mark.asyncio
async def test_next_question(async_client: AsyncClient, auth_headers: dict[str, str]) -> None:
    proposal = await start(async_client, auth_headers)

    response = await async_client.get(f"{BASE}/{proposal['id']}/next-question", headers=auth_headers)

    data = response.json()
    assert data["question"]["id"] == "persona-1"
    assert data["message"]


@pytest.mark.asyncio
async def test_full_workflow(async_client: AsyncClient, auth_headers: dict[str, str]) -> None:
    proposal = await start(async_client, auth_headers)
    url = f"{BASE}/{proposal['id']}"

    response = await async_client.patch(f"{url}/extracted-information", json=KNOWLEDGE_BASE, headers=auth_headers)
    assert response.json()["completion_percentage"] == 100

    early = await async_client.post(f"{url}/epics", headers=auth_headers)
    assert early.status_code == 422
    assert early.json()["error"]["code"] == "BUSINESS_LOGIC_ERROR"

    response = await async_client.post(f"{url}/transition", headers=auth_headers)
    assert response.json()["current_phase"] == "story-formation"

    response = await async_client.post(f"{url}/stories", headers=auth_headers)
    stories = response.json()["generated_content"]["user_stories"]
    assert stories

    story_id = stories[0]["id"]
    response = await async_client.patch(
        f"{url}/stories/{story_id}", json={"title": "Renamed", "priority": "high"}, headers=auth_headers
    )
    assert response.status_code == 200
    assert response.json()["title"] == "Renamed"
    assert response.json()["priority"] == "high"

    response = await async_client.post(f"{url}/epics", headers=auth_headers)
    epics = response.json()["generated_content"]["epics"]
    assert epics

    response = await async_client.patch(
        f"{url}/epics/{epics[0]['id']}", json={"status": "approved"}, headers=auth_headers
    )
    assert response.json()["status"] == "approved"

    missing = await async_client.patch(f"{url}/epics/epic-nope", json={"title": "x"}, headers=auth_headers)
    assert missing.status_code == 404

    response = await async_client.post(f"{url}/regenerate", headers=auth_headers)
    assert response.json()["messages"][-1]["content"].startswith("🔄 **Content regenerated!**")


@pytest.mark.asyncio
async def test_null_edits_are_rejected(async_client: AsyncClient, auth_headers: dict[str, str]) -> None:
    proposal = await start(async_client, auth_headers)
    url = f"{BASE}/{proposal['id']}"
    await async_client.patch(f"{url}/extracted-information", json=KNOWLEDGE_BASE, headers=auth_headers)
    await async_client.post(f"{url}/transition", headers=auth_headers)
    stories = (await async_client.post(f"{url}/stories", headers=auth_headers)).json()["generated_content"][
        "user_stories"
    ]
    epics = (await async_client.post(f"{url}/epics", headers=auth_headers)).json()["generated_content"]["epics"]

    response = await async_client.patch(f"{url}/stories/{stories[0]['id']}", json={"title": None}, headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_REQUEST"

    response = await async_client.patch(f"{url}/epics/{epics[0]['id']}", json={"title": None}, headers=auth_headers)
    assert response.status_code == 400

    response = await async_client.get(url, headers=auth_headers)
    content = response.json()["generated_content"]
    assert content["user_stories"][0]["title"] == stories[0]["title"]
    assert content["epics"][0]["title"] == epics[0]["title"]


@pytest.mark.asyncio
async def test_reset_and_delete(async_client: AsyncClient, auth_headers: dict[str, str]) -> None:
    proposal = await start(async_client, auth_headers)
    url = f"{BASE}/{proposal['id']}"
    await async_client.post(f"{url}/respond", json={"content": "Hello"}, headers=auth_headers)

    response = await async_client.post(f"{url}/reset", headers=auth_headers)
    assert response.json()["id"] == proposal["id"]
    assert len(response.json()["messages"]) == 1

    response = await async_client.delete(url, headers=auth_headers)
    assert response.json()["status"] == "deleted"
    assert (await async_client.get(url, headers=auth_headers)).status_code == 404


@pytest.mark.asyncio
async def test_other_users_get_404(async_client: AsyncClient, signup) -> None:
    owner = await signup()
    other = await signup(email="babbage@example.com", first_name="Charles", last_name="Babbage")
    proposal = await start(async_client, owner)

    response = await async_client.post(
        f"{BASE}/{proposal['id']}/respond", json={"content": "Hi"}, headers=other
    )
    assert response.status_code == 404
