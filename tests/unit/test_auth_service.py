"""
Unit tests for sign-up, sign-in and token authentication.
"""

import threading

import pytest

from storycraft.api.deps import require_permissions, require_roles
from storycraft.core import security
from storycraft.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    InactiveAccountError,
    InvalidRequestError,
    UserAlreadyExistsError,
    UserNotFoundError,
)
from storycraft.core.security import create_access_token
from storycraft.repositories.user_repo import InMemoryUserRepository
from storycraft.services import auth_service as auth_module
from storycraft.services.auth_service import AuthService


async def register(auth_service: AuthService, email: str = "Ada@Example.com") -> str:
    result = await auth_service.signup(email, "secret123", "  Ada ", "Lovelace")
    return result.token


@pytest.mark.asyncio
async def test_signup_normalizes_and_issues_token(auth_service: AuthService) -> None:
    result = await auth_service.signup("Ada@Example.com", "secret123", "  Ada ", "Lovelace")

    assert result.message == "Account created successfully"
    assert result.user.email == "ada@example.com"
    assert result.user.first_name == "Ada"
    assert result.user.role == "user"
    assert result.user.id == 1
    assert result.token


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "email,password,first,last,message",
    [
        (None, "secret123", "Ada", "L", "All fields are required"),
        ("ada@example", "secret123", "Ada", "L", "Invalid email format"),
        ("ada@example.com", "short", "Ada", "L", "Password must be at least 6 characters long"),
        ("ada@example.com", "secret123", "   ", "L", "First name and last name must be between 1 and 100 characters"),
    ],
)
async def test_signup_validation(
    auth_service: AuthService, email, password, first, last, message: str
) -> None:
    with pytest.raises(InvalidRequestError) as exc_info:
        await auth_service.signup(email, password, first, last)
    assert exc_info.value.message == message


@pytest.mark.asyncio
async def test_duplicate_email_is_rejected(auth_service: AuthService) -> None:
    await register(auth_service)
    with pytest.raises(UserAlreadyExistsError):
        await register(auth_service, "ADA@example.com")


@pytest.mark.asyncio
async def test_signin(auth_service: AuthService) -> None:
    await register(auth_service)

    result = await auth_service.signin("ada@example.com", "secret123")
    assert result.message == "Signed in successfully"

    with pytest.raises(AuthenticationError) as exc_info:
        await auth_service.signin("ada@example.com", "wrong-password")
    assert exc_info.value.message == "Invalid email or password"

    with pytest.raises(AuthenticationError):
        await auth_service.signin("nobody@example.com", "secret123")


@pytest.mark.asyncio
async def test_password_hashing_runs_off_the_event_loop(
    auth_service: AuthService, monkeypatch: pytest.MonkeyPatch
) -> None:
    threads: list[int] = []

    def recording(func):
        def wrapper(*args):
            threads.append(threading.get_ident())
            return func(*args)

        return wrapper

    monkeypatch.setattr(auth_module, "hash_password", recording(security.hash_password))
    monkeypatch.setattr(auth_module, "verify_password", recording(security.verify_password))

    await register(auth_service)
    result = await auth_service.signin("ada@example.com", "secret123")

    assert result.user.email == "ada@example.com"
    assert len(threads) == 2
    assert threading.get_ident() not in threads


@pytest.mark.asyncio
async def test_unknown_email_still_checks_a_hash(
    auth_service: AuthService, monkeypatch: pytest.MonkeyPatch
) -> None:
    checked: list[str] = []

    def verify(password: str, stored_hash: str) -> bool:
        checked.append(stored_hash)
        return security.verify_password(password, stored_hash)

    monkeypatch.setattr(auth_module, "verify_password", verify)

    with pytest.raises(AuthenticationError) as exc_info:
        await auth_service.signin("nobody@example.com", "secret123")

    assert exc_info.value.message == "Invalid email or password"
    assert checked == [auth_module._unknown_user_hash()]


@pytest.mark.asyncio
async def test_inactive_account_is_checked_before_password(
    auth_service: AuthService, user_repository: InMemoryUserRepository
) -> None:
    await register(auth_service)
    user = await user_repository.get_by_email("ada@example.com")
    user.is_active = False
    await user_repository.save(user)

    with pytest.raises(InactiveAccountError) as exc_info:
        await auth_service.signin("ada@example.com", "wrong-password")
    assert exc_info.value.message == "Account is deactivated. Please contact support."


@pytest.mark.asyncio
async def test_authenticate(auth_service: AuthService) -> None:
    token = await register(auth_service)

    user = await auth_service.authenticate(token)
    assert user.email == "ada@example.com"

    with pytest.raises(AuthenticationError) as exc_info:
        await auth_service.authenticate(None)
    assert exc_info.value.message == "Authorization token required"

    with pytest.raises(AuthenticationError) as exc_info:
        await auth_service.authenticate("not-a-token")
    assert exc_info.value.message == "Invalid or expired token"

    with pytest.raises(UserNotFoundError):
        await auth_service.authenticate(create_access_token("missing-uuid", "ghost@example.com"))


@pytest.mark.asyncio
async def test_profile_and_password_changes(auth_service: AuthService) -> None:
    token = await register(auth_service)
    user = await auth_service.authenticate(token)

    updated = await auth_service.update_profile(user, last_name=" Byron ")
    assert updated.first_name == "Ada"
    assert updated.last_name == "Byron"

    with pytest.raises(AuthenticationError) as exc_info:
        await auth_service.change_password(user, "wrong", "another123")
    assert exc_info.value.message == "Current password is incorrect"

    await auth_service.change_password(user, "secret123", "another123")
    result = await auth_service.signin("ada@example.com", "another123")
    assert result.user.last_name == "Byron"


@pytest.mark.asyncio
async def test_me_hides_password_hash(auth_service: AuthService) -> None:
    token = await register(auth_service)

    public = await auth_service.me(token)

    assert public.email == "ada@example.com"
    assert "password" not in public.model_dump()


@pytest.mark.asyncio
async def test_role_guard(auth_service: AuthService) -> None:
    user = await auth_service.authenticate(await register(auth_service))

    assert await require_roles("user", "editor")(user=user) is user
    with pytest.raises(AuthorizationError):
        await require_roles("admin")(user=user)
    with pytest.raises(AuthorizationError):
        await require_permissions("users:manage")(user=user)
