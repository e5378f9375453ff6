"""
Pipeline states.

Explicit state enumeration for the pipeline state machine.
"""

from enum import Enum, auto
from typing import Optional


class PipelineState(Enum):
    """
    All possible states in the pipeline execution.

    Each stage of the pipeline is a state; the chain is strictly linear
    and any state can fall into FAILED.
    """

    # Initial state
    IDLE = auto()

    # Anchor resolution
    RESOLVING_BASE = auto()

    # Primary workspace
    BUILD = auto()
    PRIMARY_TESTS = auto()

    # Sub-project
    ENTER_SUBPROJECT = auto()
    SECONDARY_INSTALL = auto()
    SECONDARY_TESTS = auto()

    # Terminal states
    COMPLETED = auto()
    FAILED = auto()

    def is_terminal(self) -> bool:
        """Check if this is a terminal state."""
        return self in (PipelineState.COMPLETED, PipelineState.FAILED)

    def __str__(self) -> str:
        """String representation of state."""
        return self.name


# Stage name (as in config) -> state that runs it
STAGE_STATES = {
    "build": PipelineState.BUILD,
    "primary_tests": PipelineState.PRIMARY_TESTS,
    "enter_subproject": PipelineState.ENTER_SUBPROJECT,
    "secondary_install": PipelineState.SECONDARY_INSTALL,
    "secondary_tests": PipelineState.SECONDARY_TESTS,
}

# Golden path
STATE_ORDER = (
    PipelineState.IDLE,
    PipelineState.RESOLVING_BASE,
    PipelineState.BUILD,
    PipelineState.PRIMARY_TESTS,
    PipelineState.ENTER_SUBPROJECT,
    PipelineState.SECONDARY_INSTALL,
    PipelineState.SECONDARY_TESTS,
    PipelineState.COMPLETED,
)

# Valid state transitions
VALID_TRANSITIONS = {
    PipelineState.IDLE: {PipelineState.RESOLVING_BASE, PipelineState.FAILED},
    PipelineState.RESOLVING_BASE: {PipelineState.BUILD, PipelineState.FAILED},
    PipelineState.BUILD: {PipelineState.PRIMARY_TESTS, PipelineState.FAILED},
    PipelineState.PRIMARY_TESTS: {PipelineState.ENTER_SUBPROJECT, PipelineState.FAILED},
    PipelineState.ENTER_SUBPROJECT: {PipelineState.SECONDARY_INSTALL, PipelineState.FAILED},
    PipelineState.SECONDARY_INSTALL: {PipelineState.SECONDARY_TESTS, PipelineState.FAILED},
    PipelineState.SECONDARY_TESTS: {PipelineState.COMPLETED, PipelineState.FAILED},
    PipelineState.COMPLETED: set(),  # Terminal
    PipelineState.FAILED: set(),     # Terminal
}


def next_state(state: PipelineState) -> Optional[PipelineState]:
    """
    Next state on the golden path.

    Returns:
        Following state, or None for terminal states
    """
    if state.is_terminal():
        return None
    return STATE_ORDER[STATE_ORDER.index(state) + 1]


def is_valid_transition(from_state: PipelineState, to_state: PipelineState) -> bool:
    """
    Check if a state transition is valid.

    Args:
        from_state: Current state
        to_state: Target state

    Returns:
        True if transition is valid
    """
    return to_state in VALID_TRANSITIONS.get(from_state, set())
