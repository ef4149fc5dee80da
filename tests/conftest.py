"""
Pytest configuration and fixtures.
"""

import os

# Settings are read at import time
os.environ.setdefault("DATABASE_BACKEND", "memory")
os.environ.setdefault("SECURITY_PASSWORD_HASH_ITERATIONS", "1000")
os.environ.setdefault("SECURITY_SECRET_KEY", "test-secret-key")

from typing import AsyncGenerator, Callable, Awaitable  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from storycraft.api.deps import container  # noqa: E402
from storycraft.main import app  # noqa: E402
from storycraft.repositories.enhanced_proposal_repo import InMemoryEnhancedProposalRepository  # noqa: E402
from storycraft.repositories.proposal_repo import InMemoryProposalRepository  # noqa: E402
from storycraft.repositories.user_repo import InMemoryUserRepository  # noqa: E402
from storycraft.services.auth_service import AuthService  # noqa: E402

SignupFn = Callable[..., Awaitable[dict[str, str]]]


@pytest.fixture(autouse=True)
def reset_container() -> None:
    """Every test starts with empty in-memory stores."""
    container.reset()


@pytest_asyncio.fixture
async def async_client() -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest.fixture
def signup(async_client: AsyncClient) -> SignupFn:
    """Sign up through the API and return bearer headers for the new account."""

    async def _signup(
        email: str = "ada@example.com",
        password: str = "secret123",
        first_name: str = "Ada",
        last_name: str = "Lovelace",
    ) -> dict[str, str]:
        response = await async_client.post(
            "/api/auth/signup",
            json={
                "email": email,
                "password": password,
                "first_name": first_name,
                "last_name": last_name,
            },
        )
        assert response.status_code == 201, response.text
        return {"Authorization": f"Bearer {response.json()['token']}"}

    return _signup


@pytest_asyncio.fixture
async def auth_headers(signup: SignupFn) -> dict[str, str]:
    """Bearer headers for a freshly signed-up user."""
    return await signup()


@pytest.fixture
def user_repository() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@pytest.fixture
def proposal_repository() -> InMemoryProposalRepository:
    return InMemoryProposalRepository()


@pytest.fixture
def enhanced_proposal_repository() -> InMemoryEnhancedProposalRepository:
    return InMemoryEnhancedProposalRepository()


@pytest.fixture
def auth_service(user_repository: InMemoryUserRepository) -> AuthService:
    return AuthService(user_repository)
