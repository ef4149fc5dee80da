"""
User administration: listing accounts, role assignment and activation.
"""

from datetime import datetime
from typing import Optional

from storycraft.auth.permissions import is_known_role
from storycraft.auth.user_utils import can_assign_role, downgrade_user_role, upgrade_user_role
from storycraft.core.exceptions import AuthorizationError, InvalidRequestError, UserNotFoundError
from storycraft.core.logging import get_logger
from storycraft.domain.user import PublicUser, User
from storycraft.repositories.user_repo import UserRepository

logger = get_logger(__name__)


class UserService:
    """
    Administrative operations on user accounts.
    """

    def __init__(self, user_repository: UserRepository) -> None:
        self.user_repository = user_repository

    async def list_users(
        self,
        is_active: Optional[bool] = None,
        role: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[PublicUser]:
        filters = {}
        if is_active is not None:
            filters["is_active"] = is_active
        if role:
            filters["role"] = role
        users = await self.user_repository.list(filters, limit=limit, offset=offset)
        return [user.to_public() for user in users]

    async def get_user(self, uuid: str) -> User:
        """
        Get a user by uuid.

        Raises:
            UserNotFoundError: If no user has that uuid
        """
        user = await self.user_repository.get_by_uuid(uuid)
        if user is None:
            raise UserNotFoundError(uuid)
        return user

    async def assign_role(self, assigner: PublicUser, uuid: str, role: str) -> PublicUser:
        """
        Grant ``role`` to a user and make it their primary role.

        Raises:
            InvalidRequestError: Unknown role
            AuthorizationError: Assigner may not grant this role
            UserNotFoundError: Unknown user
        """
        if not is_known_role(role):
            raise InvalidRequestError(f"Unknown role: {role}", field="role")
        if not can_assign_role(assigner, role):
            raise AuthorizationError(f"Not allowed to assign role '{role}'")

        user = upgrade_user_role(await self.get_user(uuid), role)
        user.updated_at = datetime.utcnow()
        await self.user_repository.save(user)

        logger.info("Role assigned", user_uuid=uuid, role=role, assigned_by=assigner.uuid)
        return user.to_public()

    async def remove_role(self, assigner: PublicUser, uuid: str, role: str) -> PublicUser:
        """Revoke ``role`` and the permissions it grants."""
        if not is_known_role(role):
            raise InvalidRequestError(f"Unknown role: {role}", field="role")
        if not can_assign_role(assigner, role):
            raise AuthorizationError(f"Not allowed to remove role '{role}'")

        user = downgrade_user_role(await self.get_user(uuid), role)
        user.updated_at = datetime.utcnow()
        await self.user_repository.save(user)

        logger.info("Role removed", user_uuid=uuid, role=role, removed_by=assigner.uuid)
        return user.to_public()

    async def set_active(self, uuid: str, is_active: bool) -> PublicUser:
        user = await self.get_user(uuid)
        user.is_active = is_active
        user.updated_at = datetime.utcnow()
        await self.user_repository.save(user)

        logger.info("User status changed", user_uuid=uuid, is_active=is_active)
        return user.to_public()
