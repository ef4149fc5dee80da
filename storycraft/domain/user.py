"""
User domain model.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from storycraft.auth.permissions import (
    DEFAULT_USER_PERMISSIONS,
    DEFAULT_USER_ROLE,
    DEFAULT_USER_ROLES,
)


class PublicUser(BaseModel):
    """User data safe to return to clients."""

    id: Optional[int] = Field(default=None, description="Numeric primary key")
    uuid: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Public identifier")
    email: str
    first_name: str
    last_name: str
    role: str = Field(default=DEFAULT_USER_ROLE, description="Primary role")
    roles: list[str] = Field(default_factory=lambda: list(DEFAULT_USER_ROLES))
    permissions: list[str] = Field(default_factory=lambda: list(DEFAULT_USER_PERMISSIONS))
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def full_name(self) -> str:
        """First and last name joined."""
        return f"{self.first_name} {self.last_name}".strip()


class User(PublicUser):
    """Stored user record, including the password hash."""

    password: str = Field(..., description="Password hash", repr=False)

    def to_public(self) -> PublicUser:
        """Strip the password hash."""
        return PublicUser(**self.model_dump(exclude={"password"}))

    def apply_roles(self, role: str, roles: list[str], permissions: list[str]) -> None:
        """Replace role assignments."""
        self.role = role
        self.roles = roles
        self.permissions = permissions
        self.updated_at = datetime.utcnow()
