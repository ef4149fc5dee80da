"""
Helpers for checking and changing a user's roles and permissions.

Every check accepts ``None`` for "no authenticated user" and returns False.
"""

from typing import Any, Optional, TypeVar

from storycraft.auth.permissions import (
    DEFAULT_USER_PERMISSIONS,
    DEFAULT_USER_ROLE,
    DEFAULT_USER_ROLES,
    get_role_permissions,
    is_known_role,
)
from storycraft.core.constants import UserRole
from storycraft.domain.user import PublicUser

UserT = TypeVar("UserT", bound=PublicUser)

# Highest first
ROLE_PRECEDENCE = [
    UserRole.ADMIN.value,
    UserRole.MODERATOR.value,
    UserRole.EDITOR.value,
    UserRole.VIEWER.value,
    UserRole.USER.value,
]

ROLE_DISPLAY_NAMES = {
    UserRole.USER.value: "User",
    UserRole.ADMIN.value: "Administrator",
    UserRole.MODERATOR.value: "Moderator",
    UserRole.EDITOR.value: "Editor",
    UserRole.VIEWER.value: "Viewer",
}

ROLE_COLORS = {
    UserRole.USER.value: "blue",
    UserRole.ADMIN.value: "red",
    UserRole.MODERATOR.value: "orange",
    UserRole.EDITOR.value: "green",
    UserRole.VIEWER.value: "gray",
}

MODERATOR_ASSIGNABLE_ROLES = {
    UserRole.USER.value,
    UserRole.VIEWER.value,
    UserRole.EDITOR.value,
}


def user_has_role(user: Optional[PublicUser], role: str) -> bool:
    if user is None:
        return False
    return user.role == role or role in user.roles


def user_has_any_role(user: Optional[PublicUser], roles: list[str]) -> bool:
    if user is None:
        return False
    return any(user_has_role(user, role) for role in roles)


def user_has_all_roles(user: Optional[PublicUser], roles: list[str]) -> bool:
    if user is None:
        return False
    return all(user_has_role(user, role) for role in roles)


def user_has_permission(user: Optional[PublicUser], permission: str) -> bool:
    """Check the user's direct permission list."""
    if user is None:
        return False
    return permission in user.permissions


def user_has_any_permission(user: Optional[PublicUser], permissions: list[str]) -> bool:
    if user is None:
        return False
    return any(user_has_permission(user, permission) for permission in permissions)


def user_has_all_permissions(user: Optional[PublicUser], permissions: list[str]) -> bool:
    if user is None:
        return False
    return all(user_has_permission(user, permission) for permission in permissions)


def get_user_effective_permissions(user: Optional[PublicUser]) -> list[str]:
    """Permissions granted by the user's known roles plus direct permissions."""
    if user is None:
        return []

    from_roles = [
        permission
        for role in user.roles
        if is_known_role(role)
        for permission in get_role_permissions(role)
    ]
    return list(dict.fromkeys([*from_roles, *user.permissions]))


def is_user_admin(user: Optional[PublicUser]) -> bool:
    return user_has_role(user, UserRole.ADMIN.value)


def is_user_moderator(user: Optional[PublicUser]) -> bool:
    """Moderators and admins."""
    return user_has_any_role(user, [UserRole.ADMIN.value, UserRole.MODERATOR.value])


def can_user_manage_users(user: Optional[PublicUser]) -> bool:
    return user_has_any_permission(user, ["users:manage", "users:write"]) or is_user_admin(user)


def can_user_manage_content(user: Optional[PublicUser]) -> bool:
    return user_has_any_permission(user, ["content:manage", "content:moderate"]) or is_user_moderator(user)


def can_user_access_admin(user: Optional[PublicUser]) -> bool:
    return user_has_permission(user, "admin:access") or is_user_admin(user)


def can_assign_role(assigner: Optional[PublicUser], target_role: str) -> bool:
    """
    Check whether ``assigner`` may grant ``target_role`` to someone.

    Only admins can assign the admin role. Admins can assign any role and
    moderators can assign user, viewer and editor.
    """
    if assigner is None:
        return False

    if target_role == UserRole.ADMIN.value:
        return is_user_admin(assigner)

    if is_user_admin(assigner):
        return True

    if is_user_moderator(assigner):
        return target_role in MODERATOR_ASSIGNABLE_ROLES

    return False


def get_role_display_name(role: str) -> str:
    return ROLE_DISPLAY_NAMES.get(role, role)


def get_role_color(role: str) -> str:
    return ROLE_COLORS.get(role, "gray")


def get_permission_display_name(permission: str) -> str:
    """Format ``users:read`` as ``Users: Read``."""
    resource, _, action = permission.partition(":")
    return f"{resource[:1].upper()}{resource[1:]}: {action[:1].upper()}{action[1:]}"


def group_permissions_by_resource(permissions: list[str]) -> dict[str, list[str]]:
    groups: dict[str, list[str]] = {}
    for permission in permissions:
        resource = permission.split(":", 1)[0]
        groups.setdefault(resource, []).append(permission)
    return groups


def initialize_user_roles(data: dict[str, Any]) -> dict[str, Any]:
    """Fill in missing or empty role fields with the defaults."""
    return {
        **data,
        "role": data.get("role") or DEFAULT_USER_ROLE,
        "roles": data.get("roles") or list(DEFAULT_USER_ROLES),
        "permissions": data.get("permissions") or list(DEFAULT_USER_PERMISSIONS),
    }


def sanitize_user(data: dict[str, Any]) -> PublicUser:
    """Build a PublicUser from raw user data, dropping the password."""
    public_data = {key: value for key, value in data.items() if key != "password"}
    return PublicUser(**initialize_user_roles(public_data))


def create_user_with_defaults(email: str, first_name: str, last_name: str) -> dict[str, Any]:
    """Field values for a new, active user holding the default role."""
    return {
        "email": email,
        "first_name": first_name,
        "last_name": last_name,
        "role": DEFAULT_USER_ROLE,
        "roles": list(DEFAULT_USER_ROLES),
        "permissions": list(DEFAULT_USER_PERMISSIONS),
        "is_active": True,
    }


def upgrade_user_role(user: UserT, new_role: str) -> UserT:
    """
    Grant a role and its permissions, making it the primary role.

    Returns:
        Updated copy of the user
    """
    roles = list(dict.fromkeys([*user.roles, new_role]))
    permissions = list(dict.fromkeys([*user.permissions, *get_role_permissions(new_role)]))
    return user.model_copy(update={"role": new_role, "roles": roles, "permissions": permissions})


def downgrade_user_role(user: UserT, role_to_remove: str) -> UserT:
    """
    Remove a role and the permissions it grants.

    The primary role becomes the highest remaining role. Empty role or
    permission lists fall back to the defaults.

    Returns:
        Updated copy of the user
    """
    remaining_roles = [role for role in user.roles if role != role_to_remove]
    removed_permissions = set(get_role_permissions(role_to_remove))
    remaining_permissions = [
        permission for permission in user.permissions if permission not in removed_permissions
    ]

    primary_role = next(
        (role for role in ROLE_PRECEDENCE if role in remaining_roles),
        DEFAULT_USER_ROLE,
    )

    return user.model_copy(
        update={
            "role": primary_role,
            "roles": remaining_roles or list(DEFAULT_USER_ROLES),
            "permissions": remaining_permissions or list(DEFAULT_USER_PERMISSIONS),
        }
    )
