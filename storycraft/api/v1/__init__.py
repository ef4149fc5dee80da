"""
API v1 routers.
"""

from storycraft.api.v1 import admin, auth, enhanced_proposals, health, proposals

__all__ = ["admin", "auth", "enhanced_proposals", "health", "proposals"]
