"""
Guided proposal endpoints.

Covers the conversation, workflow progress and the generated stories and epics.
"""

from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from storycraft.api.deps import get_current_user, get_enhanced_proposal_service
from storycraft.core.constants import (
    ContentStatus,
    EpicEffort,
    Level,
    QuestionCategory,
    StoryEffort,
    WorkflowType,
)
from storycraft.core.logging import get_logger
from storycraft.domain.enhanced_proposal import (
    AcceptanceCriteria,
    EnhancedProposal,
    EnhancedProposalMessage,
    Epic,
    InformationGatheringQuestion,
    PartialExtractedInformation,
    UserStory,
    WorkflowProgress,
)
from storycraft.domain.user import User
from storycraft.services.enhanced_proposal_service import EnhancedProposalService

logger = get_logger(__name__)

router = APIRouter(prefix="/enhanced-proposals")


# Request models
class CreateEnhancedProposalRequest(BaseModel):
    """Request to start a guided proposal."""

    workflow_type: WorkflowType = WorkflowType.STORY


class AddMessageRequest(BaseModel):
    """Message to append to the conversation."""

    content: str = ""
    is_user: bool = True
    question_category: Optional[QuestionCategory] = None


class RespondRequest(BaseModel):
    """User turn that expects an assistant reply."""

    content: str = ""


class UserStoryUpdate(BaseModel):
    """Editable user story fields. Unset fields are left alone."""

    title: Optional[str] = None
    description: Optional[str] = None
    as_a: Optional[str] = None
    i_want: Optional[str] = None
    so_that: Optional[str] = None
    acceptance_criteria: Optional[list[AcceptanceCriteria]] = None
    priority: Optional[Level] = None
    estimated_effort: Optional[StoryEffort] = None
    tags: Optional[list[str]] = None
    status: Optional[ContentStatus] = None


class EpicUpdate(BaseModel):
    """Editable epic fields. Unset fields are left alone."""

    title: Optional[str] = None
    description: Optional[str] = None
    goal: Optional[str] = None
    business_value: Optional[str] = None
    user_stories: Optional[list[str]] = None
    priority: Optional[Level] = None
    theme: Optional[str] = None
    estimated_effort: Optional[EpicEffort] = None
    success_metrics: Optional[list[str]] = None
    status: Optional[ContentStatus] = None


# Response models
class EnhancedProposalListResponse(BaseModel):
    """Response for guided proposal listing."""

    proposals: list[EnhancedProposal]
    total: int


class RespondResponse(BaseModel):
    """Assistant reply with the updated workflow progress."""

    reply: EnhancedProposalMessage
    progress: WorkflowProgress


class NextQuestionResponse(BaseModel):
    question: Optional[InformationGatheringQuestion] = None
    message: str


@router.post("", response_model=EnhancedProposal, status_code=status.HTTP_201_CREATED)
async def create_enhanced_proposal(
    request: Optional[CreateEnhancedProposalRequest] = None,
    user: User = Depends(get_current_user),
    service: EnhancedProposalService = Depends(get_enhanced_proposal_service),
) -> EnhancedProposal:
    """
    Start a guided proposal. The conversation opens with the welcome message.
    """
    workflow_type = request.workflow_type if request else WorkflowType.STORY
    return await service.create_proposal(user.uuid, workflow_type)


@router.get("", response_model=EnhancedProposalListResponse)
async def list_enhanced_proposals(
    user: User = Depends(get_current_user),
    service: EnhancedProposalService = Depends(get_enhanced_proposal_service),
) -> EnhancedProposalListResponse:
    proposals = await service.list_proposals(user.uuid)
    return EnhancedProposalListResponse(proposals=proposals, total=len(proposals))


@router.get("/{proposal_id}", response_model=EnhancedProposal)
async def get_enhanced_proposal(
    proposal_id: str,
    user: User = Depends(get_current_user),
    service: EnhancedProposalService = Depends(get_enhanced_proposal_service),
) -> EnhancedProposal:
    return await service.get_proposal(user.uuid, proposal_id)


@router.delete("/{proposal_id}")
async def delete_enhanced_proposal(
    proposal_id: str,
    user: User = Depends(get_current_user),
    service: EnhancedProposalService = Depends(get_enhanced_proposal_service),
) -> dict[str, str]:
    await service.delete_proposal(user.uuid, proposal_id)
    return {"status": "deleted", "proposal_id": proposal_id}


@router.post("/{proposal_id}/messages", response_model=EnhancedProposalMessage)
async def add_message(
    proposal_id: str,
    request: AddMessageRequest,
    user: User = Depends(get_current_user),
    service: EnhancedProposalService = Depends(get_enhanced_proposal_service),
) -> EnhancedProposalMessage:
    """
    Append a message. User messages update the knowledge base.
    """
    return await service.add_message(
        user.uuid,
        proposal_id,
        request.content,
        is_user=request.is_user,
        question_category=request.question_category,
    )


@router.post("/{proposal_id}/respond", response_model=RespondResponse)
async def respond(
    proposal_id: str,
    request: RespondRequest,
    user: User = Depends(get_current_user),
    service: EnhancedProposalService = Depends(get_enhanced_proposal_service),
) -> RespondResponse:
    """
    Send a user message and get the assistant's next question or phase guidance.
    """
    reply = await service.respond(user.uuid, proposal_id, request.content)
    progress = await service.get_progress(user.uuid, proposal_id)
    return RespondResponse(reply=reply, progress=progress)


@router.get("/{proposal_id}/progress", response_model=WorkflowProgress)
async def get_progress(
    proposal_id: str,
    user: User = Depends(get_current_user),
    service: EnhancedProposalService = Depends(get_enhanced_proposal_service),
) -> WorkflowProgress:
    return await service.get_progress(user.uuid, proposal_id)


@router.get("/{proposal_id}/next-question", response_model=NextQuestionResponse)
async def get_next_question(
    proposal_id: str,
    user: User = Depends(get_current_user),
    service: EnhancedProposalService = Depends(get_enhanced_proposal_service),
) -> NextQuestionResponse:
    """
    Highest priority question still worth asking, plus the reply the assistant would give now.
    """
    question = await service.next_question(user.uuid, proposal_id)
    message = await service.smart_response(user.uuid, proposal_id)
    return NextQuestionResponse(question=question, message=message)


@router.post("/{proposal_id}/transition", response_model=EnhancedProposal)
async def transition_phase(
    proposal_id: str,
    user: User = Depends(get_current_user),
    service: EnhancedProposalService = Depends(get_enhanced_proposal_service),
) -> EnhancedProposal:
    """
    Move to the next workflow phase. No-op at the final phase.
    """
    return await service.transition_to_next_phase(user.uuid, proposal_id)


@router.post("/{proposal_id}/stories", response_model=EnhancedProposal)
async def generate_stories(
    proposal_id: str,
    user: User = Depends(get_current_user),
    service: EnhancedProposalService = Depends(get_enhanced_proposal_service),
) -> EnhancedProposal:
    return await service.generate_user_stories(user.uuid, proposal_id)


@router.post("/{proposal_id}/epics", response_model=EnhancedProposal)
async def generate_epics(
    proposal_id: str,
    user: User = Depends(get_current_user),
    service: EnhancedProposalService = Depends(get_enhanced_proposal_service),
) -> EnhancedProposal:
    """
    Group the generated stories into epics. Stories must exist first.
    """
    return await service.generate_epics(user.uuid, proposal_id)


@router.post("/{proposal_id}/regenerate", response_model=EnhancedProposal)
async def regenerate_content(
    proposal_id: str,
    user: User = Depends(get_current_user),
    service: EnhancedProposalService = Depends(get_enhanced_proposal_service),
) -> EnhancedProposal:
    return await service.regenerate_content(user.uuid, proposal_id)


@router.post("/{proposal_id}/reset", response_model=EnhancedProposal)
async def reset_proposal(
    proposal_id: str,
    user: User = Depends(get_current_user),
    service: EnhancedProposalService = Depends(get_enhanced_proposal_service),
) -> EnhancedProposal:
    """
    Start the conversation over, keeping the proposal's id and title.
    """
    logger.info("Resetting enhanced proposal", proposal_id=proposal_id)
    return await service.reset_proposal(user.uuid, proposal_id)


@router.patch("/{proposal_id}/stories/{story_id}", response_model=UserStory)
async def update_story(
    proposal_id: str,
    story_id: str,
    request: UserStoryUpdate,
    user: User = Depends(get_current_user),
    service: EnhancedProposalService = Depends(get_enhanced_proposal_service),
) -> UserStory:
    return await service.update_user_story(
        user.uuid, proposal_id, story_id, request.model_dump(exclude_unset=True)
    )


@router.patch("/{proposal_id}/epics/{epic_id}", response_model=Epic)
async def update_epic(
    proposal_id: str,
    epic_id: str,
    request: EpicUpdate,
    user: User = Depends(get_current_user),
    service: EnhancedProposalService = Depends(get_enhanced_proposal_service),
) -> Epic:
    return await service.update_epic(
        user.uuid, proposal_id, epic_id, request.model_dump(exclude_unset=True)
    )


@router.patch("/{proposal_id}/extracted-information", response_model=EnhancedProposal)
async def update_extracted_information(
    proposal_id: str,
    request: PartialExtractedInformation,
    user: User = Depends(get_current_user),
    service: EnhancedProposalService = Depends(get_enhanced_proposal_service),
) -> EnhancedProposal:
    """
    Replace whole knowledge base categories with hand-edited lists.
    """
    return await service.update_extracted_information(user.uuid, proposal_id, request)
