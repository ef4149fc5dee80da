"""
API dependencies for dependency injection.
"""

from typing import Awaitable, Callable, Optional

from fastapi import Depends, Header

from storycraft.auth.user_utils import user_has_all_permissions, user_has_any_role
from storycraft.core.config import settings
from storycraft.core.exceptions import AuthorizationError
from storycraft.core.logging import bind_context, get_logger
from storycraft.core.security import extract_token_from_header
from storycraft.db.database import get_session_factory
from storycraft.domain.user import User
from storycraft.repositories.enhanced_proposal_repo import (
    EnhancedProposalRepository,
    InMemoryEnhancedProposalRepository,
    SqlAlchemyEnhancedProposalRepository,
)
from storycraft.repositories.proposal_repo import (
    InMemoryProposalRepository,
    ProposalRepository,
    SqlAlchemyProposalRepository,
)
from storycraft.repositories.user_repo import (
    InMemoryUserRepository,
    SqlAlchemyUserRepository,
    UserRepository,
)
from storycraft.services.auth_service import AuthService
from storycraft.services.enhanced_proposal_service import EnhancedProposalService
from storycraft.services.proposal_service import ProposalService
from storycraft.services.user_service import UserService

logger = get_logger(__name__)


class ServiceContainer:
    """
    Container for all application services.
    Provides singleton instances of services.
    """

    _instance: Optional["ServiceContainer"] = None

    def __init__(self) -> None:
        self._initialized = False

    @classmethod
    def get_instance(cls) -> "ServiceContainer":
        """Get the singleton instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def initialize(self) -> None:
        """Initialize all services."""
        if self._initialized:
            return

        # Initialize repositories
        if settings.uses_sql_storage:
            session_factory = get_session_factory()
            self._user_repository: UserRepository = SqlAlchemyUserRepository(session_factory)
            self._proposal_repository: ProposalRepository = SqlAlchemyProposalRepository(session_factory)
            self._enhanced_proposal_repository: EnhancedProposalRepository = (
                SqlAlchemyEnhancedProposalRepository(session_factory)
            )
        else:
            self._user_repository = InMemoryUserRepository()
            self._proposal_repository = InMemoryProposalRepository()
            self._enhanced_proposal_repository = InMemoryEnhancedProposalRepository()

        # Initialize services
        self._auth_service = AuthService(self._user_repository)
        self._user_service = UserService(self._user_repository)
        self._proposal_service = ProposalService(
            proposal_repository=self._proposal_repository,
            enhanced_proposal_repository=self._enhanced_proposal_repository,
        )
        self._enhanced_proposal_service = EnhancedProposalService(
            repository=self._enhanced_proposal_repository,
        )

        logger.info("Services initialized", storage=settings.database.backend)
        self._initialized = True

    def reset(self) -> None:
        """Drop all service instances; the next access re-initializes them."""
        self._initialized = False

    @property
    def user_repository(self) -> UserRepository:
        """Get the user repository."""
        self.initialize()
        return self._user_repository

    @property
    def auth_service(self) -> AuthService:
        """Get the auth service."""
        self.initialize()
        return self._auth_service

    @property
    def user_service(self) -> UserService:
        """Get the user administration service."""
        self.initialize()
        return self._user_service

    @property
    def proposal_service(self) -> ProposalService:
        """Get the saved proposal service."""
        self.initialize()
        return self._proposal_service

    @property
    def enhanced_proposal_service(self) -> EnhancedProposalService:
        """Get the guided proposal service."""
        self.initialize()
        return self._enhanced_proposal_service


# Singleton container instance
container = ServiceContainer.get_instance()


# Dependency functions for FastAPI
def get_auth_service() -> AuthService:
    """Get the auth service instance."""
    return container.auth_service


def get_user_service() -> UserService:
    """Get the user administration service instance."""
    return container.user_service


def get_proposal_service() -> ProposalService:
    """Get the saved proposal service instance."""
    return container.proposal_service


def get_enhanced_proposal_service() -> EnhancedProposalService:
    """Get the guided proposal service instance."""
    return container.enhanced_proposal_service


async def get_current_user(
    authorization: Optional[str] = Header(default=None),
    auth_service: AuthService = Depends(get_auth_service),
) -> User:
    """
    Resolve the bearer token to an active user.

    Raises:
        AuthenticationError: Missing, invalid or expired token
        UserNotFoundError: Token subject no longer exists
        InactiveAccountError: Account deactivated
    """
    user = await auth_service.authenticate(extract_token_from_header(authorization))
    bind_context(user_uuid=user.uuid)
    return user


def require_permissions(*permissions: str) -> Callable[..., Awaitable[User]]:
    """Dependency factory: the current user must hold every listed permission."""
    required = list(permissions)

    async def dependency(user: User = Depends(get_current_user)) -> User:
        if not user_has_all_permissions(user, required):
            logger.info("Permission denied", user_uuid=user.uuid, required=required)
            raise AuthorizationError(required=required)
        return user

    return dependency


def require_roles(*roles: str) -> Callable[..., Awaitable[User]]:
    """Dependency factory: the current user must hold at least one listed role."""
    allowed = list(roles)

    async def dependency(user: User = Depends(get_current_user)) -> User:
        if not user_has_any_role(user, allowed):
            logger.info("Role denied", user_uuid=user.uuid, allowed=allowed)
            raise AuthorizationError(required=allowed)
        return user

    return dependency
