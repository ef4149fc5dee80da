"""
Orchestration module for the guided proposal workflow.
"""

from storycraft.orchestration.state_machine import (
    StateMachine,
    StateTransitionError,
    advance_phases,
    create_proposal_state_machine,
    default_phases,
)

__all__ = [
    "StateMachine",
    "StateTransitionError",
    "advance_phases",
    "create_proposal_state_machine",
    "default_phases",
]
