"""
Role and permission definitions.

Permissions are ``resource:action`` strings. Each role grants a direct set of
permissions and inherits the direct permissions of the roles listed for it in
ROLE_HIERARCHY.
"""

from typing import Iterable, Optional

from storycraft.core.constants import UserRole

ALL_PERMISSIONS: list[str] = [
    # User management
    "users:read",
    "users:write",
    "users:delete",
    "users:manage",
    # Content management
    "content:read",
    "content:write",
    "content:delete",
    "content:publish",
    "content:moderate",
    "content:manage",
    # Story management
    "stories:read",
    "stories:write",
    "stories:delete",
    "stories:publish",
    "stories:manage",
    # Administration
    "admin:access",
    "admin:settings",
    "admin:logs",
    "admin:backup",
    # Moderation
    "moderation:reports",
    "moderation:users",
    "moderation:content",
    # Analytics
    "analytics:view",
    "analytics:export",
    # System
    "system:maintenance",
    "system:config",
]

ROLE_PERMISSIONS: dict[str, list[str]] = {
    UserRole.USER.value: [
        "stories:read",
        "stories:write",
        "content:read",
    ],
    UserRole.VIEWER.value: [
        "stories:read",
        "content:read",
    ],
    UserRole.EDITOR.value: [
        "stories:read",
        "stories:write",
        "stories:publish",
        "content:read",
        "content:write",
        "content:publish",
    ],
    UserRole.MODERATOR.value: [
        "stories:read",
        "stories:write",
        "stories:manage",
        "content:read",
        "content:write",
        "content:moderate",
        "users:read",
        "moderation:reports",
        "moderation:users",
        "moderation:content",
    ],
    UserRole.ADMIN.value: list(ALL_PERMISSIONS),
}

ROLE_HIERARCHY: dict[str, list[str]] = {
    UserRole.USER.value: [],
    UserRole.VIEWER.value: [],
    UserRole.EDITOR.value: [UserRole.USER.value],
    UserRole.MODERATOR.value: [UserRole.EDITOR.value, UserRole.USER.value],
    UserRole.ADMIN.value: [UserRole.MODERATOR.value, UserRole.EDITOR.value, UserRole.USER.value],
}

_ALL_ROLES = [
    UserRole.ADMIN.value,
    UserRole.MODERATOR.value,
    UserRole.EDITOR.value,
    UserRole.USER.value,
    UserRole.VIEWER.value,
]
_CONTRIBUTOR_ROLES = _ALL_ROLES[:-1]
_PUBLISHER_ROLES = _ALL_ROLES[:3]

# Page-level access by role
ROUTE_ACCESS_RULES: dict[str, list[str]] = {
    "/dashboard/admin": [UserRole.ADMIN.value],
    "/dashboard/admin/*": [UserRole.ADMIN.value],
    "/dashboard/moderation": [UserRole.ADMIN.value, UserRole.MODERATOR.value],
    "/dashboard/moderation/*": [UserRole.ADMIN.value, UserRole.MODERATOR.value],
    "/dashboard/stories/manage": _PUBLISHER_ROLES,
    "/dashboard/content/publish": _PUBLISHER_ROLES,
    "/dashboard": _ALL_ROLES,
    "/dashboard/profile": _ALL_ROLES,
    "/dashboard/stories": _CONTRIBUTOR_ROLES,
    "/dashboard/stories/new": _CONTRIBUTOR_ROLES,
}

# Finer-grained access by permission
PERMISSION_ACCESS_RULES: dict[str, list[str]] = {
    "/api/users": ["users:read"],
    "/api/users/create": ["users:write"],
    "/api/users/delete": ["users:delete"],
    "/api/stories": ["stories:read"],
    "/api/stories/create": ["stories:write"],
    "/api/stories/publish": ["stories:publish"],
    "/api/admin": ["admin:access"],
}


def is_known_role(role: str) -> bool:
    """Check whether a role name is defined."""
    return role in ROLE_PERMISSIONS


def _dedupe(items: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(items))


def get_role_permissions(role: str) -> list[str]:
    """Get all permissions for a role, including inherited ones."""
    direct = ROLE_PERMISSIONS.get(role, [])
    inherited = [
        permission
        for inherited_role in ROLE_HIERARCHY.get(role, [])
        for permission in ROLE_PERMISSIONS.get(inherited_role, [])
    ]
    return _dedupe([*direct, *inherited])


def role_has_permission(role: str, permission: str) -> bool:
    """Check if a role grants a permission, directly or through inheritance."""
    return permission in get_role_permissions(role)


def get_multiple_roles_permissions(roles: Iterable[str]) -> list[str]:
    """Get the combined permissions of several roles."""
    return _dedupe(permission for role in roles for permission in get_role_permissions(role))


def _match_rule(path: str, rules: dict[str, list[str]]) -> Optional[list[str]]:
    if path in rules:
        return rules[path]

    # Longest wildcard prefix wins
    wildcard_matches = [
        pattern
        for pattern in rules
        if pattern.endswith("/*") and path.startswith(pattern[:-1])
    ]
    if wildcard_matches:
        return rules[max(wildcard_matches, key=len)]
    return None


def roles_for_route(path: str) -> Optional[list[str]]:
    """
    Resolve the roles allowed to open a page.

    Returns:
        Allowed role names, or None when the path has no rule
    """
    return _match_rule(path, ROUTE_ACCESS_RULES)


def permissions_for_route(path: str) -> Optional[list[str]]:
    """Resolve the permissions required for an API path, or None without a rule."""
    return _match_rule(path, PERMISSION_ACCESS_RULES)


DEFAULT_USER_ROLE: str = UserRole.USER.value
DEFAULT_USER_ROLES: list[str] = [DEFAULT_USER_ROLE]
DEFAULT_USER_PERMISSIONS: list[str] = get_role_permissions(DEFAULT_USER_ROLE)
