"""
Domain models for guided proposals.

A guided proposal carries the conversation, the knowledge base extracted from
it, the user stories and epics generated from that knowledge base and the
state of the four-phase workflow.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from storycraft.core.constants import (
    AssumptionCategory,
    ConstraintType,
    ContentStatus,
    ContextCategory,
    CriteriaPriority,
    EpicEffort,
    GoalType,
    Level,
    PhaseStatus,
    ProposalStatus,
    QuestionCategory,
    Severity,
    StoryEffort,
    WorkflowPhaseId,
    WorkflowType,
)


class _Model(BaseModel):
    model_config = ConfigDict(use_enum_values=True)


# =============================================================================
# Extracted information
# =============================================================================


class UserPersona(_Model):
    """A type of user mentioned in the conversation."""

    id: str
    name: str
    role: str
    description: str
    pain_points: list[str] = Field(default_factory=list)
    goals: list[str] = Field(default_factory=list)
    behaviors: list[str] = Field(default_factory=list)
    extracted_from: list[str] = Field(default_factory=list, description="Source message IDs")


class BusinessContext(_Model):
    """Environmental fact about the business, market or organization."""

    id: str
    category: ContextCategory
    title: str
    description: str
    impact: Level = Level.LOW
    extracted_from: list[str] = Field(default_factory=list)


class ProjectGoal(_Model):
    """Desired outcome of the project."""

    id: str
    type: GoalType
    description: str
    priority: Level = Level.LOW
    measurable: bool = False
    metrics: list[str] = Field(default_factory=list)
    extracted_from: list[str] = Field(default_factory=list)


class Constraint(_Model):
    """Limitation the solution must respect."""

    id: str
    type: ConstraintType
    description: str
    severity: Severity = Severity.MINOR
    workaround: Optional[str] = None
    extracted_from: list[str] = Field(default_factory=list)


class Assumption(_Model):
    """Belief the proposal relies on."""

    id: str
    category: AssumptionCategory
    description: str
    confidence: Level = Level.LOW
    needs_validation: bool = False
    extracted_from: list[str] = Field(default_factory=list)


class ExtractedInformation(_Model):
    """Knowledge base accumulated from user messages."""

    personas: list[UserPersona] = Field(default_factory=list)
    contexts: list[BusinessContext] = Field(default_factory=list)
    goals: list[ProjectGoal] = Field(default_factory=list)
    constraints: list[Constraint] = Field(default_factory=list)
    assumptions: list[Assumption] = Field(default_factory=list)
    last_updated: datetime = Field(default_factory=datetime.utcnow)


class PartialExtractedInformation(_Model):
    """Subset of a knowledge base; unset categories are None."""

    personas: Optional[list[UserPersona]] = None
    contexts: Optional[list[BusinessContext]] = None
    goals: Optional[list[ProjectGoal]] = None
    constraints: Optional[list[Constraint]] = None
    assumptions: Optional[list[Assumption]] = None

    def is_empty(self) -> bool:
        return not self.model_dump(exclude_none=True)


class InformationExtractionResult(_Model):
    """Outcome of extracting one message."""

    extracted: PartialExtractedInformation = Field(default_factory=PartialExtractedInformation)
    confidence: float = 0.0
    suggested_questions: list[str] = Field(default_factory=list)


# =============================================================================
# Generated content
# =============================================================================


class AcceptanceCriteria(_Model):
    id: str
    description: str
    priority: CriteriaPriority = CriteriaPriority.SHOULD
    testable: bool = True


class UserStory(_Model):
    """Story in "As a / I want / So that" form."""

    id: str
    title: str
    description: str
    as_a: str
    i_want: str
    so_that: str
    acceptance_criteria: list[AcceptanceCriteria] = Field(default_factory=list)
    priority: Level = Level.MEDIUM
    estimated_effort: StoryEffort = StoryEffort.M
    tags: list[str] = Field(default_factory=list)
    related_personas: list[str] = Field(default_factory=list)
    related_goals: list[str] = Field(default_factory=list)
    constraints: list[str] = Field(default_factory=list)
    created_from: list[str] = Field(default_factory=list)
    status: ContentStatus = ContentStatus.DRAFT


class Epic(_Model):
    """Group of related user stories delivering a business capability."""

    id: str
    title: str
    description: str
    goal: str
    business_value: str
    user_stories: list[str] = Field(default_factory=list)
    priority: Level = Level.MEDIUM
    theme: str
    estimated_effort: EpicEffort = EpicEffort.SMALL
    related_personas: list[str] = Field(default_factory=list)
    related_goals: list[str] = Field(default_factory=list)
    constraints: list[str] = Field(default_factory=list)
    assumptions: list[str] = Field(default_factory=list)
    success_metrics: list[str] = Field(default_factory=list)
    created_from: list[str] = Field(default_factory=list)
    status: ContentStatus = ContentStatus.DRAFT


class GeneratedContent(_Model):
    user_stories: list[UserStory] = Field(default_factory=list)
    epics: list[Epic] = Field(default_factory=list)
    last_generated: datetime = Field(default_factory=datetime.utcnow)
    generation_notes: list[str] = Field(default_factory=list)


# =============================================================================
# Questions
# =============================================================================


class InformationGatheringQuestion(_Model):
    """Entry of the question bank."""

    id: str
    category: QuestionCategory
    question: str
    follow_up_questions: list[str] = Field(default_factory=list)
    priority: int
    prerequisite_categories: list[QuestionCategory] = Field(default_factory=list)


# =============================================================================
# Workflow
# =============================================================================


class ProposalWorkflowPhase(_Model):
    id: WorkflowPhaseId
    name: str
    description: str
    status: PhaseStatus = PhaseStatus.NOT_STARTED
    completed_at: Optional[datetime] = None


class EnhancedProposalMessage(_Model):
    """Conversation message tagged with the workflow phase it belongs to."""

    id: str
    content: str
    is_user: bool
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    phase: WorkflowPhaseId = WorkflowPhaseId.INFORMATION_GATHERING
    extracted_info: Optional[PartialExtractedInformation] = None
    question_category: Optional[QuestionCategory] = None


class QuestionGenerationContext(_Model):
    """Inputs for choosing the next question."""

    existing_information: ExtractedInformation
    conversation_history: list[EnhancedProposalMessage] = Field(default_factory=list)
    current_focus: list[str] = Field(default_factory=list)
    missing_information: list[str] = Field(default_factory=list)


class ReadinessAssessment(_Model):
    ready: bool
    completion_percentage: int
    missing_categories: list[str] = Field(default_factory=list)


class WorkflowProgress(_Model):
    current_phase: WorkflowPhaseId
    completion_percentage: int
    ready_for_next_phase: bool
    missing_information: list[str] = Field(default_factory=list)
    next_suggested_action: str


class EnhancedProposal(_Model):
    """Guided proposal with its workflow state."""

    id: str
    owner_id: Optional[str] = None
    title: str
    description: str = ""
    messages: list[EnhancedProposalMessage] = Field(default_factory=list)
    extracted_information: ExtractedInformation = Field(default_factory=ExtractedInformation)
    generated_content: GeneratedContent = Field(default_factory=GeneratedContent)
    current_phase: WorkflowPhaseId = WorkflowPhaseId.INFORMATION_GATHERING
    phases: list[ProposalWorkflowPhase] = Field(default_factory=list)
    workflow_type: WorkflowType
    completion_percentage: int = 0
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    tags: list[str] = Field(default_factory=list)
    status: ProposalStatus = ProposalStatus.DRAFT

    def get_phase(self, phase_id: str) -> Optional[ProposalWorkflowPhase]:
        return next((phase for phase in self.phases if phase.id == phase_id), None)

    def touch(self) -> None:
        self.updated_at = datetime.utcnow()
