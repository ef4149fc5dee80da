"""
Account sign-up, sign-in and profile management.
"""

import asyncio
from datetime import datetime
from functools import lru_cache
from typing import Optional

from pydantic import BaseModel

from storycraft.auth.user_utils import create_user_with_defaults
from storycraft.core.exceptions import (
    AuthenticationError,
    InactiveAccountError,
    InvalidRequestError,
    UserAlreadyExistsError,
    UserNotFoundError,
)
from storycraft.core.logging import get_logger
from storycraft.core.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    is_valid_email,
    is_valid_name,
    validate_password,
    verify_password,
)
from storycraft.domain.user import PublicUser, User
from storycraft.repositories.user_repo import UserRepository

logger = get_logger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"
INVALID_NAMES = "First name and last name must be between 1 and 100 characters"


@lru_cache(maxsize=1)
def _unknown_user_hash() -> str:
    """Hash checked against when the email matches no account."""
    return hash_password("storycraft-unknown-user")


def _verify_unknown_user(password: str) -> bool:
    return verify_password(password, _unknown_user_hash())


class AuthResult(BaseModel):
    """Signed-in user with a fresh access token."""

    user: PublicUser
    token: str
    message: str


class AuthService:
    """
    Handles account creation and token-based authentication.
    """

    def __init__(self, user_repository: UserRepository) -> None:
        self.user_repository = user_repository

    async def signup(
        self,
        email: Optional[str],
        password: Optional[str],
        first_name: Optional[str],
        last_name: Optional[str],
    ) -> AuthResult:
        """
        Register a new account.

        Raises:
            InvalidRequestError: Missing or malformed fields
            UserAlreadyExistsError: Email already registered
        """
        if not email or not password or not first_name or not last_name:
            raise InvalidRequestError("All fields are required")
        if not is_valid_email(email):
            raise InvalidRequestError("Invalid email format", field="email")

        valid, reason = validate_password(password)
        if not valid:
            raise InvalidRequestError(reason, field="password")
        if not is_valid_name(first_name) or not is_valid_name(last_name):
            raise InvalidRequestError(INVALID_NAMES)

        normalized_email = email.lower()
        if await self.user_repository.get_by_email(normalized_email):
            raise UserAlreadyExistsError(normalized_email)

        user = User(
            **create_user_with_defaults(normalized_email, first_name.strip(), last_name.strip()),
            password=await asyncio.to_thread(hash_password, password),
        )
        user = await self.user_repository.save(user)

        logger.info("User signed up", user_uuid=user.uuid)

        return AuthResult(
            user=user.to_public(),
            token=create_access_token(user.uuid, user.email),
            message="Account created successfully",
        )

    async def signin(self, email: Optional[str], password: Optional[str]) -> AuthResult:
        """
        Authenticate with email and password.

        The deactivation check runs before the password check.

        Raises:
            InvalidRequestError: Missing or malformed fields
            AuthenticationError: Unknown email or wrong password
            InactiveAccountError: Account deactivated
        """
        if not email or not password:
            raise InvalidRequestError("Email and password are required")
        if not is_valid_email(email):
            raise InvalidRequestError("Invalid email format", field="email")

        user = await self.user_repository.get_by_email(email.lower())
        if user is None:
            # Same hashing cost as a wrong password
            await asyncio.to_thread(_verify_unknown_user, password)
            raise AuthenticationError(INVALID_CREDENTIALS)
        if not user.is_active:
            raise InactiveAccountError("Account is deactivated. Please contact support.")
        if not await asyncio.to_thread(verify_password, password, user.password):
            logger.info("Sign-in rejected", user_uuid=user.uuid)
            raise AuthenticationError(INVALID_CREDENTIALS)

        logger.info("User signed in", user_uuid=user.uuid)

        return AuthResult(
            user=user.to_public(),
            token=create_access_token(user.uuid, user.email),
            message="Signed in successfully",
        )

    async def authenticate(self, token: Optional[str]) -> User:
        """
        Resolve the user behind an access token.

        Raises:
            AuthenticationError: Missing or invalid token
            UserNotFoundError: Token subject no longer exists
            InactiveAccountError: Account deactivated
        """
        if not token:
            raise AuthenticationError("Authorization token required")

        payload = decode_access_token(token)
        if payload is None:
            raise AuthenticationError("Invalid or expired token")

        user = await self.user_repository.get_by_uuid(payload["userId"])
        if user is None:
            raise UserNotFoundError(payload["userId"])
        if not user.is_active:
            raise InactiveAccountError()
        return user

    async def me(self, token: Optional[str]) -> PublicUser:
        user = await self.authenticate(token)
        return user.to_public()

    async def update_profile(
        self,
        user: User,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> PublicUser:
        """Change the display names; omitted names are kept."""
        new_first = first_name if first_name is not None else user.first_name
        new_last = last_name if last_name is not None else user.last_name
        if not is_valid_name(new_first) or not is_valid_name(new_last):
            raise InvalidRequestError(INVALID_NAMES)

        user.first_name = new_first.strip()
        user.last_name = new_last.strip()
        user.updated_at = datetime.utcnow()
        user = await self.user_repository.save(user)

        logger.info("Profile updated", user_uuid=user.uuid)
        return user.to_public()

    async def change_password(self, user: User, current_password: str, new_password: str) -> None:
        """
        Replace the password after verifying the current one.

        Raises:
            AuthenticationError: Current password does not match
            InvalidRequestError: New password too weak
        """
        if not await asyncio.to_thread(verify_password, current_password, user.password):
            raise AuthenticationError("Current password is incorrect")

        valid, reason = validate_password(new_password)
        if not valid:
            raise InvalidRequestError(reason, field="new_password")

        user.password = await asyncio.to_thread(hash_password, new_password)
        user.updated_at = datetime.utcnow()
        await self.user_repository.save(user)

        logger.info("Password changed", user_uuid=user.uuid)
