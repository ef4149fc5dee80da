"""
Repository implementations for data access.
"""

from storycraft.repositories.base import BaseRepository
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

__all__ = [
    "BaseRepository",
    "UserRepository",
    "InMemoryUserRepository",
    "SqlAlchemyUserRepository",
    "ProposalRepository",
    "InMemoryProposalRepository",
    "SqlAlchemyProposalRepository",
    "EnhancedProposalRepository",
    "InMemoryEnhancedProposalRepository",
    "SqlAlchemyEnhancedProposalRepository",
]
