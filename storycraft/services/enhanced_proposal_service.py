"""
Guided proposal workflow.

A guided proposal moves through four phases. During information gathering
every user message is mined for personas, context, goals, constraints and
assumptions, and the assistant replies with the next most useful question.
Once enough is known, stories and then epics are generated from the
knowledge base.
"""

from datetime import datetime
from typing import Any, Optional, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from storycraft.core.constants import (
    ProposalStatus,
    QuestionCategory,
    WorkflowPhaseId,
    WorkflowType,
)
from storycraft.core.exceptions import (
    EpicNotFoundError,
    InvalidRequestError,
    ProposalNotFoundError,
    UserStoryNotFoundError,
    WorkflowError,
)
from storycraft.core.logging import get_logger
from storycraft.core.security import generate_enhanced_proposal_id, generate_message_id
from storycraft.domain.enhanced_proposal import (
    EnhancedProposal,
    EnhancedProposalMessage,
    Epic,
    ExtractedInformation,
    GeneratedContent,
    InformationGatheringQuestion,
    PartialExtractedInformation,
    QuestionGenerationContext,
    UserStory,
    WorkflowProgress,
)
from storycraft.orchestration.state_machine import (
    StateMachine,
    advance_phases,
    create_proposal_state_machine,
    default_phases,
)
from storycraft.repositories.enhanced_proposal_repo import EnhancedProposalRepository
from storycraft.services.information_extraction import InformationExtractionService
from storycraft.services.question_generation import QuestionGenerationService
from storycraft.services.story_epic_generation import StoryEpicGenerationService

logger = get_logger(__name__)

WELCOME_MESSAGE = (
    "👋 **Welcome to your Enhanced Proposal Assistant!**\n\n"
    "I'm here to help you create a comprehensive proposal by gathering key information "
    "through our conversation. I'll ask you insightful questions to understand:\n\n"
    "✨ **What I'll help you discover:**\n"
    "• **User Personas** - Who will use or be affected by this\n"
    "• **Business Context** - The environment and situation\n"
    "• **Goals & Objectives** - What success looks like\n"
    "• **Constraints** - Limitations and boundaries\n"
    "• **Assumptions** - What we're taking for granted\n\n"
    "📊 **As we chat, I'll extract and organize this information in real-time**, showing "
    "you exactly what we've learned and what we still need to explore.\n\n"
    "Let's start! **What kind of project or initiative are you thinking about?**"
)

BANK_QUESTION_TEMPLATE = (
    "💡 **Great insight!** I'm extracting some valuable information from what you've "
    "shared.\n\n**Next, let's explore:** {question}"
)

STORY_FORMATION_START = (
    "🚀 **Ready to create user stories!**\n\n"
    "I'll analyze all the information we've gathered to create well-structured user "
    "stories. Each story will follow the format:\n\n"
    "• **As a** [persona]\n• **I want** [functionality]\n• **So that** [business value]\n\n"
    "Would you like me to generate the initial user stories based on our conversation?"
)
STORY_FORMATION_DONE = (
    "📝 **User stories generated!**\n\n"
    "I've created user stories based on our discussion. You can review them and let me "
    "know if you'd like me to:\n\n"
    "• Add more stories\n• Modify existing ones\n"
    "• Add more detailed acceptance criteria\n• Move on to organizing them into epics"
)
EPIC_CREATION_START = (
    "📚 **Time to organize into epics!**\n\n"
    "Now I'll group related user stories into coherent epics - larger themes that "
    "represent significant business capabilities.\n\n"
    "Would you like me to create epics from the user stories we've defined?"
)
EPIC_CREATION_DONE = (
    "🎯 **Epics created!**\n\n"
    "I've organized your user stories into epics. Each epic represents a major capability "
    "or theme. You can review the organization and let me know if you'd like any adjustments."
)
REFINEMENT_MESSAGE = (
    "✨ **Final refinement phase!**\n\n"
    "Let's polish the proposal by reviewing all content, ensuring completeness, and making "
    "any final adjustments before export."
)

STORIES_GENERATED_TEMPLATE = (
    "🎉 **Generated {count} user stories!**\n\n"
    "I've created user stories based on the personas, goals, and constraints we discussed. "
    "Each story follows the standard format and includes acceptance criteria. You can review "
    "them and let me know if you'd like any adjustments."
)
EPICS_GENERATED_TEMPLATE = (
    "📚 **Created {count} epics!**\n\n"
    "I've organized your user stories into meaningful epics that represent major business "
    "capabilities. Each epic groups related stories and includes business value, success "
    "metrics, and effort estimates."
)
CONTENT_REGENERATED_TEMPLATE = (
    "🔄 **Content regenerated!**\n\n"
    "I've recreated all user stories and epics based on the current extracted information. "
    "Generated {stories} stories organized into {epics} epics."
)

# Generated items keep these fields when edited
_IMMUTABLE_FIELDS = {"id"}

ModelT = TypeVar("ModelT", bound=BaseModel)


def _apply_changes(item: ModelT, updates: dict[str, Any]) -> ModelT:
    """Return a copy of ``item`` with ``updates`` applied and re-validated."""
    changes = {key: value for key, value in updates.items() if key not in _IMMUTABLE_FIELDS}
    try:
        return type(item).model_validate({**item.model_dump(), **changes})
    except PydanticValidationError as e:
        error = e.errors()[0]
        field = ".".join(str(part) for part in error["loc"]) or None
        raise InvalidRequestError(f"Invalid value for {field}: {error['msg']}", field=field) from e


class EnhancedProposalService:
    """
    Drives guided proposals through their workflow.
    """

    def __init__(
        self,
        repository: EnhancedProposalRepository,
        extraction_service: Optional[InformationExtractionService] = None,
        question_service: Optional[QuestionGenerationService] = None,
        generation_service: Optional[StoryEpicGenerationService] = None,
        state_machine: Optional[StateMachine] = None,
    ) -> None:
        """
        Initialize the workflow service.

        Args:
            repository: Guided proposal storage
            extraction_service: Knowledge base extraction
            question_service: Question selection and readiness scoring
            generation_service: Story and epic generation
            state_machine: Phase transition rules
        """
        self.repository = repository
        self.extraction_service = extraction_service or InformationExtractionService()
        self.question_service = question_service or QuestionGenerationService()
        self.generation_service = generation_service or StoryEpicGenerationService()
        self.state_machine = state_machine or create_proposal_state_machine()

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    @staticmethod
    def build_proposal(
        owner_id: Optional[str],
        workflow_type: WorkflowType,
        now: Optional[datetime] = None,
    ) -> EnhancedProposal:
        """Unsaved guided proposal opened with the welcome message."""
        now = now or datetime.utcnow()
        return EnhancedProposal(
            id=generate_enhanced_proposal_id(),
            owner_id=owner_id,
            title=f"New {workflow_type.value.capitalize()} Proposal",
            description="",
            messages=[
                EnhancedProposalMessage(
                    id=generate_message_id(is_user=False),
                    content=WELCOME_MESSAGE,
                    is_user=False,
                    timestamp=now,
                    phase=WorkflowPhaseId.INFORMATION_GATHERING,
                    question_category=QuestionCategory.CONTEXT,
                )
            ],
            extracted_information=ExtractedInformation(last_updated=now),
            generated_content=GeneratedContent(last_generated=now),
            current_phase=WorkflowPhaseId.INFORMATION_GATHERING,
            phases=default_phases(),
            workflow_type=workflow_type,
            completion_percentage=0,
            created_at=now,
            updated_at=now,
            tags=[workflow_type.value, "enhanced-workflow"],
            status=ProposalStatus.DRAFT,
        )

    async def create_proposal(
        self, owner_id: str, workflow_type: WorkflowType | str = WorkflowType.STORY
    ) -> EnhancedProposal:
        """Start a guided proposal with the welcome message."""
        workflow_type = WorkflowType(workflow_type)
        proposal = self.build_proposal(owner_id, workflow_type)
        await self.repository.save(proposal)

        logger.info(
            "Enhanced proposal created",
            proposal_id=proposal.id,
            owner_id=owner_id,
            workflow_type=workflow_type.value,
        )
        return proposal

    async def list_proposals(self, owner_id: str) -> list[EnhancedProposal]:
        return await self.repository.list_by_owner(owner_id)

    async def get_proposal(self, owner_id: str, proposal_id: str) -> EnhancedProposal:
        """
        Get a guided proposal owned by ``owner_id``.

        Raises:
            ProposalNotFoundError: Missing or owned by someone else
        """
        proposal = await self.repository.get(proposal_id)
        if proposal is None or proposal.owner_id != owner_id:
            raise ProposalNotFoundError(proposal_id)
        return proposal

    async def delete_proposal(self, owner_id: str, proposal_id: str) -> None:
        await self.get_proposal(owner_id, proposal_id)
        await self.repository.delete(proposal_id)
        logger.info("Enhanced proposal deleted", proposal_id=proposal_id, owner_id=owner_id)

    async def reset_proposal(self, owner_id: str, proposal_id: str) -> EnhancedProposal:
        """Discard the conversation, knowledge base and content, keeping identity and type."""
        proposal = await self.get_proposal(owner_id, proposal_id)
        fresh = self.build_proposal(owner_id, WorkflowType(proposal.workflow_type))

        reset = fresh.model_copy(
            update={
                "id": proposal.id,
                "title": proposal.title,
                "created_at": proposal.created_at,
            }
        )
        await self.repository.save(reset)
        logger.info("Enhanced proposal reset", proposal_id=proposal_id)
        return reset

    # -------------------------------------------------------------------------
    # Conversation
    # -------------------------------------------------------------------------

    async def add_message(
        self,
        owner_id: str,
        proposal_id: str,
        content: str,
        is_user: bool,
        question_category: Optional[QuestionCategory | str] = None,
    ) -> EnhancedProposalMessage:
        """
        Append a message to the conversation.

        User messages are run through extraction; failures there are logged
        and the message is stored regardless.
        """
        if not content or not content.strip():
            raise InvalidRequestError("Message content is required", field="content")

        proposal = await self.get_proposal(owner_id, proposal_id)
        message = self._append_message(proposal, content, is_user, question_category)

        if is_user:
            self._extract_into(proposal, message)

        await self.repository.save(proposal)
        return message

    def _append_message(
        self,
        proposal: EnhancedProposal,
        content: str,
        is_user: bool,
        question_category: Optional[QuestionCategory | str] = None,
    ) -> EnhancedProposalMessage:
        message = EnhancedProposalMessage(
            id=generate_message_id(is_user),
            content=content,
            is_user=is_user,
            phase=proposal.current_phase,
            question_category=question_category,
        )
        proposal.messages.append(message)
        proposal.touch()
        return message

    def _extract_into(self, proposal: EnhancedProposal, message: EnhancedProposalMessage) -> None:
        try:
            result = self.extraction_service.extract_information_from_message(
                message, proposal.extracted_information
            )
        except Exception:
            logger.exception("Information extraction failed", proposal_id=proposal.id, message_id=message.id)
            return

        if result.extracted.is_empty():
            return

        proposal.extracted_information = self.extraction_service.apply_extraction(
            proposal.extracted_information, result
        )
        proposal.completion_percentage = self.question_service.assess_readiness_for_next_phase(
            proposal.extracted_information
        ).completion_percentage
        message.extracted_info = result.extracted

        logger.info(
            "Knowledge base updated",
            proposal_id=proposal.id,
            completion=proposal.completion_percentage,
            confidence=round(result.confidence, 3),
        )

    async def respond(self, owner_id: str, proposal_id: str, content: str) -> EnhancedProposalMessage:
        """
        Handle a user turn: store the message and append the assistant's reply.

        Returns:
            The assistant reply
        """
        await self.add_message(owner_id, proposal_id, content, is_user=True)

        proposal = await self.get_proposal(owner_id, proposal_id)
        text, category = self.compose_response(proposal)
        reply = self._append_message(proposal, text, is_user=False, question_category=category)
        await self.repository.save(proposal)
        return reply

    # -------------------------------------------------------------------------
    # Progress and questions
    # -------------------------------------------------------------------------

    def progress_for(self, proposal: EnhancedProposal) -> WorkflowProgress:
        assessment = self.question_service.assess_readiness_for_next_phase(proposal.extracted_information)
        if assessment.ready:
            next_action = "Ready to move to story formation phase"
        else:
            next_action = f"Still need: {', '.join(assessment.missing_categories)}"

        return WorkflowProgress(
            current_phase=proposal.current_phase,
            completion_percentage=assessment.completion_percentage,
            ready_for_next_phase=assessment.ready,
            missing_information=assessment.missing_categories,
            next_suggested_action=next_action,
        )

    async def get_progress(self, owner_id: str, proposal_id: str) -> WorkflowProgress:
        return self.progress_for(await self.get_proposal(owner_id, proposal_id))

    def _question_context(self, proposal: EnhancedProposal) -> QuestionGenerationContext:
        return QuestionGenerationContext(
            existing_information=proposal.extracted_information,
            conversation_history=proposal.messages,
            current_focus=[],
            missing_information=self.progress_for(proposal).missing_information,
        )

    async def next_question(self, owner_id: str, proposal_id: str) -> Optional[InformationGatheringQuestion]:
        proposal = await self.get_proposal(owner_id, proposal_id)
        return self.question_service.generate_next_question(self._question_context(proposal))

    def compose_response(self, proposal: EnhancedProposal) -> tuple[str, Optional[str]]:
        """
        Assistant reply for the proposal's current phase.

        Returns:
            Tuple of (text, question category asked about, if any)
        """
        phase = proposal.current_phase
        content = proposal.generated_content

        if phase == WorkflowPhaseId.INFORMATION_GATHERING:
            progress = self.progress_for(proposal)
            if progress.ready_for_next_phase:
                text = self.question_service.generate_phase_transition_message(
                    progress.completion_percentage, progress.missing_information
                )
                return text, None

            context = self._question_context(proposal)
            question = self.question_service.generate_next_question(context)
            if question is not None:
                return BANK_QUESTION_TEMPLATE.format(question=question.question), question.category

            urgent = self.question_service.analyze_urgent_needs(proposal.extracted_information)
            return self.question_service.generate_smart_question(context), urgent[0] if urgent else None

        if phase == WorkflowPhaseId.STORY_FORMATION:
            return (STORY_FORMATION_DONE if content.user_stories else STORY_FORMATION_START), None

        if phase == WorkflowPhaseId.EPIC_CREATION:
            return (EPIC_CREATION_DONE if content.epics else EPIC_CREATION_START), None

        return REFINEMENT_MESSAGE, None

    async def smart_response(self, owner_id: str, proposal_id: str) -> str:
        proposal = await self.get_proposal(owner_id, proposal_id)
        text, _ = self.compose_response(proposal)
        return text

    # -------------------------------------------------------------------------
    # Phases
    # -------------------------------------------------------------------------

    async def transition_to_next_phase(self, owner_id: str, proposal_id: str) -> EnhancedProposal:
        """Advance one phase; at the final phase nothing changes."""
        proposal = await self.get_proposal(owner_id, proposal_id)
        previous = proposal.current_phase

        next_phase = advance_phases(self.state_machine, proposal.phases, previous)
        if next_phase is None:
            logger.debug("Already at final phase", proposal_id=proposal_id, phase=previous)
            return proposal

        proposal.current_phase = next_phase
        proposal.touch()
        await self.repository.save(proposal)

        logger.info("Phase transition", proposal_id=proposal_id, from_phase=previous, to_phase=next_phase)
        return proposal

    # -------------------------------------------------------------------------
    # Generated content
    # -------------------------------------------------------------------------

    async def generate_user_stories(self, owner_id: str, proposal_id: str) -> EnhancedProposal:
        proposal = await self.get_proposal(owner_id, proposal_id)
        stories = self.generation_service.generate_user_stories(proposal.extracted_information)

        content = proposal.generated_content
        proposal.generated_content = content.model_copy(
            update={
                "user_stories": stories,
                "last_generated": datetime.utcnow(),
                "generation_notes": [
                    *content.generation_notes,
                    f"Generated {len(stories)} user stories from extracted information",
                ],
            }
        )
        self._append_message(proposal, STORIES_GENERATED_TEMPLATE.format(count=len(stories)), is_user=False)
        await self.repository.save(proposal)

        logger.info("User stories generated", proposal_id=proposal_id, count=len(stories))
        return proposal

    async def generate_epics(self, owner_id: str, proposal_id: str) -> EnhancedProposal:
        """
        Group the current stories into epics.

        Raises:
            WorkflowError: No stories have been generated yet
        """
        proposal = await self.get_proposal(owner_id, proposal_id)
        content = proposal.generated_content
        if not content.user_stories:
            raise WorkflowError(
                workflow_name="enhanced-proposal",
                step="epic-creation",
                message="Generate user stories before creating epics",
            )

        epics = self.generation_service.generate_epics(content.user_stories, proposal.extracted_information)
        proposal.generated_content = content.model_copy(
            update={
                "epics": epics,
                "last_generated": datetime.utcnow(),
                "generation_notes": [
                    *content.generation_notes,
                    f"Generated {len(epics)} epics organizing {len(content.user_stories)} user stories",
                ],
            }
        )
        self._append_message(proposal, EPICS_GENERATED_TEMPLATE.format(count=len(epics)), is_user=False)
        await self.repository.save(proposal)

        logger.info("Epics generated", proposal_id=proposal_id, count=len(epics))
        return proposal

    async def regenerate_content(self, owner_id: str, proposal_id: str) -> EnhancedProposal:
        """Rebuild stories and epics from the current knowledge base."""
        proposal = await self.get_proposal(owner_id, proposal_id)
        content = self.generation_service.generate_content(proposal.extracted_information)
        proposal.generated_content = content

        self._append_message(
            proposal,
            CONTENT_REGENERATED_TEMPLATE.format(stories=len(content.user_stories), epics=len(content.epics)),
            is_user=False,
        )
        await self.repository.save(proposal)
        return proposal

    async def update_user_story(
        self, owner_id: str, proposal_id: str, story_id: str, updates: dict[str, Any]
    ) -> UserStory:
        """
        Apply field updates to a generated story.

        Raises:
            UserStoryNotFoundError: No story with that id
            InvalidRequestError: An update fails validation
        """
        proposal = await self.get_proposal(owner_id, proposal_id)
        stories = proposal.generated_content.user_stories

        index = next((i for i, story in enumerate(stories) if story.id == story_id), None)
        if index is None:
            raise UserStoryNotFoundError(story_id)

        stories[index] = _apply_changes(stories[index], updates)
        proposal.generated_content.last_generated = datetime.utcnow()
        proposal.touch()
        await self.repository.save(proposal)
        return stories[index]

    async def update_epic(
        self, owner_id: str, proposal_id: str, epic_id: str, updates: dict[str, Any]
    ) -> Epic:
        """
        Apply field updates to a generated epic.

        Raises:
            EpicNotFoundError: No epic with that id
            InvalidRequestError: An update fails validation
        """
        proposal = await self.get_proposal(owner_id, proposal_id)
        epics = proposal.generated_content.epics

        index = next((i for i, epic in enumerate(epics) if epic.id == epic_id), None)
        if index is None:
            raise EpicNotFoundError(epic_id)

        epics[index] = _apply_changes(epics[index], updates)
        proposal.generated_content.last_generated = datetime.utcnow()
        proposal.touch()
        await self.repository.save(proposal)
        return epics[index]

    async def update_extracted_information(
        self, owner_id: str, proposal_id: str, info: PartialExtractedInformation
    ) -> EnhancedProposal:
        """Replace the given knowledge base categories and rescore completion."""
        proposal = await self.get_proposal(owner_id, proposal_id)

        updates = {category: items for category, items in info if items is not None}
        proposal.extracted_information = proposal.extracted_information.model_copy(
            update={**updates, "last_updated": datetime.utcnow()}
        )
        proposal.completion_percentage = self.question_service.assess_readiness_for_next_phase(
            proposal.extracted_information
        ).completion_percentage
        proposal.touch()
        await self.repository.save(proposal)

        logger.info(
            "Knowledge base edited",
            proposal_id=proposal_id,
            categories=sorted(updates),
            completion=proposal.completion_percentage,
        )
        return proposal
