"""
User administration endpoints. Every route requires the ``admin:access`` permission.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from storycraft.api.deps import get_user_service, require_permissions
from storycraft.core.logging import get_logger
from storycraft.domain.user import PublicUser, User
from storycraft.services.user_service import UserService

logger = get_logger(__name__)

require_admin = require_permissions("admin:access")

router = APIRouter(prefix="/admin", dependencies=[Depends(require_admin)])


# Request models
class AssignRoleRequest(BaseModel):
    role: str


class UpdateStatusRequest(BaseModel):
    is_active: bool


# Response models
class UserListResponse(BaseModel):
    """Response for user listing."""

    users: list[PublicUser]
    total: int


@router.get("/users", response_model=UserListResponse)
async def list_users(
    is_active: Optional[bool] = Query(default=None),
    role: Optional[str] = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    user_service: UserService = Depends(get_user_service),
) -> UserListResponse:
    """
    List user accounts, optionally filtered by status and role.
    """
    users = await user_service.list_users(is_active=is_active, role=role, limit=limit, offset=offset)
    return UserListResponse(users=users, total=len(users))


@router.get("/users/{user_uuid}", response_model=PublicUser)
async def get_user(
    user_uuid: str,
    user_service: UserService = Depends(get_user_service),
) -> PublicUser:
    user = await user_service.get_user(user_uuid)
    return user.to_public()


@router.post("/users/{user_uuid}/roles", response_model=PublicUser)
async def assign_role(
    user_uuid: str,
    request: AssignRoleRequest,
    admin: User = Depends(require_admin),
    user_service: UserService = Depends(get_user_service),
) -> PublicUser:
    """
    Grant a role and make it the user's primary role.
    """
    return await user_service.assign_role(admin, user_uuid, request.role)


@router.delete("/users/{user_uuid}/roles", response_model=PublicUser)
async def remove_role(
    user_uuid: str,
    role: str = Query(..., description="Role to revoke"),
    admin: User = Depends(require_admin),
    user_service: UserService = Depends(get_user_service),
) -> PublicUser:
    """
    Revoke a role and the permissions only it granted.
    """
    return await user_service.remove_role(admin, user_uuid, role)


@router.patch("/users/{user_uuid}/status", response_model=PublicUser)
async def update_status(
    user_uuid: str,
    request: UpdateStatusRequest,
    user_service: UserService = Depends(get_user_service),
) -> PublicUser:
    """
    Activate or deactivate an account. Deactivated users cannot sign in.
    """
    logger.info("Updating user status", user_uuid=user_uuid, is_active=request.is_active)
    return await user_service.set_active(user_uuid, request.is_active)
