"""
Service layer implementations.
"""

from storycraft.services.auth_service import AuthResult, AuthService
from storycraft.services.enhanced_proposal_service import EnhancedProposalService
from storycraft.services.information_extraction import InformationExtractionService
from storycraft.services.proposal_service import ProposalService
from storycraft.services.question_generation import QuestionGenerationService
from storycraft.services.story_epic_generation import StoryEpicGenerationService
from storycraft.services.user_service import UserService

__all__ = [
    "AuthResult",
    "AuthService",
    "UserService",
    "ProposalService",
    "EnhancedProposalService",
    "InformationExtractionService",
    "QuestionGenerationService",
    "StoryEpicGenerationService",
]
