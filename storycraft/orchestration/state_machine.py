"""
State machine for the guided proposal workflow.
"""

from datetime import datetime
from typing import Optional

from storycraft.core.constants import PhaseStatus, WorkflowPhaseId
from storycraft.core.logging import get_logger
from storycraft.domain.enhanced_proposal import ProposalWorkflowPhase

logger = get_logger(__name__)


class StateTransitionError(Exception):
    """Invalid state transition."""


class StateMachine:
    """
    Generic state machine over named states.
    """

    def __init__(
        self,
        states: list[str],
        initial_state: str,
        final_states: list[str],
        transitions: dict[str, list[str]],
    ) -> None:
        """
        Initialize the state machine.

        Args:
            states: List of valid states
            initial_state: Starting state
            final_states: Terminal states
            transitions: Valid transitions {from_state: [to_states]}
        """
        self.states = list(states)
        self.initial_state = initial_state
        self.final_states = set(final_states)
        self.transitions = transitions

        if initial_state not in self.states:
            raise ValueError(f"Initial state '{initial_state}' not in states")
        for final in final_states:
            if final not in self.states:
                raise ValueError(f"Final state '{final}' not in states")

    def can_transition(self, from_state: str, to_state: str) -> bool:
        """Check if transition is valid."""
        return to_state in self.transitions.get(from_state, [])

    def get_next_states(self, current_state: str) -> list[str]:
        """Get valid next states from current state."""
        return self.transitions.get(current_state, [])

    def is_final(self, state: str) -> bool:
        """Check if state is a final state."""
        return state in self.final_states

    def transition(self, from_state: str, to_state: str) -> str:
        """
        Validate a transition and return the new state.

        Raises:
            StateTransitionError: If the transition is not allowed
        """
        if not self.can_transition(from_state, to_state):
            raise StateTransitionError(f"Cannot transition from '{from_state}' to '{to_state}'")
        logger.debug("State transition", from_state=from_state, to_state=to_state)
        return to_state


# Phases are walked forward one step at a time
PROPOSAL_WORKFLOW_STATES = [phase.value for phase in WorkflowPhaseId]

PROPOSAL_WORKFLOW_TRANSITIONS = {
    WorkflowPhaseId.INFORMATION_GATHERING.value: [WorkflowPhaseId.STORY_FORMATION.value],
    WorkflowPhaseId.STORY_FORMATION.value: [WorkflowPhaseId.EPIC_CREATION.value],
    WorkflowPhaseId.EPIC_CREATION.value: [WorkflowPhaseId.REFINEMENT.value],
    WorkflowPhaseId.REFINEMENT.value: [],
}

PHASE_DETAILS = {
    WorkflowPhaseId.INFORMATION_GATHERING.value: (
        "Information Gathering",
        "Collecting key information about users, goals, and constraints",
    ),
    WorkflowPhaseId.STORY_FORMATION.value: (
        "Story Formation",
        "Creating user stories based on gathered information",
    ),
    WorkflowPhaseId.EPIC_CREATION.value: (
        "Epic Creation",
        "Organizing stories into meaningful epics",
    ),
    WorkflowPhaseId.REFINEMENT.value: (
        "Refinement",
        "Polishing and finalizing the proposal",
    ),
}


def create_proposal_state_machine() -> StateMachine:
    """Create state machine for the guided proposal workflow."""
    return StateMachine(
        states=PROPOSAL_WORKFLOW_STATES,
        initial_state=WorkflowPhaseId.INFORMATION_GATHERING.value,
        final_states=[WorkflowPhaseId.REFINEMENT.value],
        transitions=PROPOSAL_WORKFLOW_TRANSITIONS,
    )


def default_phases() -> list[ProposalWorkflowPhase]:
    """Fresh phase list with the first phase in progress."""
    initial = WorkflowPhaseId.INFORMATION_GATHERING.value
    return [
        ProposalWorkflowPhase(
            id=phase_id,
            name=name,
            description=description,
            status=PhaseStatus.IN_PROGRESS if phase_id == initial else PhaseStatus.NOT_STARTED,
        )
        for phase_id, (name, description) in PHASE_DETAILS.items()
    ]


def advance_phases(
    machine: StateMachine,
    phases: list[ProposalWorkflowPhase],
    current_phase: str,
    completed_at: Optional[datetime] = None,
) -> Optional[str]:
    """
    Move the workflow one phase forward.

    The current phase is marked completed and the next one in progress.

    Returns:
        The new current phase, or None when already at the final phase
    """
    next_states = machine.get_next_states(current_phase)
    if machine.is_final(current_phase) or not next_states:
        return None

    next_phase = machine.transition(current_phase, next_states[0])
    for phase in phases:
        if phase.id == current_phase:
            phase.status = PhaseStatus.COMPLETED
            phase.completed_at = completed_at or datetime.utcnow()
        elif phase.id == next_phase:
            phase.status = PhaseStatus.IN_PROGRESS

    return next_phase
