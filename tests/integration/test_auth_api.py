"""
Authentication API tests.
"""

import pytest
from httpx import AsyncClient

SIGNUP = {
    "email": "Grace@Example.com",
    "password": "hopper42",
    "first_name": " Grace ",
    "last_name": "Hopper",
}


@pytest.mark.asyncio
async def test_signup_returns_token_and_public_user(async_client: AsyncClient) -> None:
    response = await async_client.post("/api/auth/signup", json=SIGNUP)

    assert response.status_code == 201
    data = response.json()
    assert data["token"]
    assert data["message"] == "Account created successfully"
    assert data["user"]["email"] == "grace@example.com"
    assert data["user"]["first_name"] == "Grace"
    assert data["user"]["role"] == "user"
    assert "password" not in data["user"]


@pytest.mark.asyncio
async def test_signup_duplicate_email(async_client: AsyncClient) -> None:
    await async_client.post("/api/auth/signup", json=SIGNUP)
    response = await async_client.post("/api/auth/signup", json={**SIGNUP, "email": "grace@example.com"})

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "CONFLICT"


@pytest.mark.asyncio
async def test_signup_missing_fields(async_client: AsyncClient) -> None:
    response = await async_client.post("/api/auth/signup", json={"email": "x@example.com"})

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert error["message"] == "All fields are required"


@pytest.mark.asyncio
async def test_signin(async_client: AsyncClient) -> None:
    await async_client.post("/api/auth/signup", json=SIGNUP)

    response = await async_client.post(
        "/api/auth/signin", json={"email": "GRACE@example.com", "password": "hopper42"}
    )
    assert response.status_code == 200
    assert response.json()["message"] == "Signed in successfully"

    wrong = await async_client.post("/api/auth/signin", json={"email": "grace@example.com", "password": "nope123"})
    assert wrong.status_code == 401
    assert wrong.json()["error"]["code"] == "AUTHENTICATION_REQUIRED"


@pytest.mark.asyncio
async def test_me_requires_token(async_client: AsyncClient) -> None:
    response = await async_client.get("/api/auth/me")
    assert response.status_code == 401

    response = await async_client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_me_and_profile_update(async_client: AsyncClient, auth_headers: dict[str, str]) -> None:
    response = await async_client.get("/api/auth/me", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["user"]["email"] == "ada@example.com"

    response = await async_client.patch(
        "/api/auth/me", json={"first_name": "Augusta"}, headers=auth_headers
    )
    assert response.status_code == 200
    user = response.json()["user"]
    assert user["first_name"] == "Augusta"
    assert user["last_name"] == "Lovelace"


@pytest.mark.asyncio
async def test_change_password(async_client: AsyncClient, auth_headers: dict[str, str]) -> None:
    wrong = await async_client.post(
        "/api/auth/me/password",
        json={"current_password": "guess123", "new_password": "engine99"},
        headers=auth_headers,
    )
    assert wrong.status_code == 401

    response = await async_client.post(
        "/api/auth/me/password",
        json={"current_password": "secret123", "new_password": "engine99"},
        headers=auth_headers,
    )
    assert response.status_code == 200

    old = await async_client.post("/api/auth/signin", json={"email": "ada@example.com", "password": "secret123"})
    assert old.status_code == 401
    new = await async_client.post("/api/auth/signin", json={"email": "ada@example.com", "password": "engine99"})
    assert new.status_code == 200
