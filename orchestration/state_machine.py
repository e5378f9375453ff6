"""
State machine for pipeline execution.

Orchestrates state transitions and handler execution.
"""

import logging
from typing import Dict

from domain.errors import PipelineError
from .context import PipelineContext
from .states import PipelineState, STAGE_STATES, is_valid_transition, next_state
from .handlers.base import StateHandler


class StateMachine:
    """
    State machine for orchestrating pipeline execution.

    Manages state transitions and delegates work to state handlers.
    The first failure moves the context to FAILED and nothing else runs.
    """

    def __init__(self, handlers: Dict[PipelineState, StateHandler]):
        """
        Initialize state machine.

        Args:
            handlers: Dict mapping states to their handlers
        """
        self.handlers = handlers
        self.logger = logging.getLogger(self.__class__.__name__)

        # Validate that all non-terminal states have handlers
        self._validate_handlers()

    def _validate_handlers(self):
        """Validate that all necessary handlers are provided."""
        required_states = {PipelineState.RESOLVING_BASE, *STAGE_STATES.values()}

        missing = required_states - set(self.handlers.keys())
        if missing:
            self.logger.warning(
                f"Missing handlers for states: {sorted(str(s) for s in missing)}"
            )

    def run(self, initial_context: PipelineContext) -> PipelineContext:
        """
        Run the state machine until a terminal state is reached.

        Args:
            initial_context: Initial pipeline context

        Returns:
            Final pipeline context
        """
        context = initial_context
        iteration = 0
        max_iterations = 100  # Safety limit

        self.logger.info("=" * 60)
        self.logger.info(f"Starting pipeline execution: {context.config.run_name}")
        self.logger.info("=" * 60)

        while not context.is_terminal and iteration < max_iterations:
            iteration += 1

            try:
                context = self._execute_state(context)
            except PipelineError as e:
                self.logger.error(f"Error in state {context.current_state}: {e}")
                context = context.with_error(
                    message=str(e),
                    exit_code=e.exit_code,
                    details={"state": str(context.current_state), "error_type": type(e).__name__}
                )
            except Exception as e:
                self.logger.error(f"Error in state {context.current_state}: {e}", exc_info=True)
                context = context.with_error(
                    message=f"Error in {context.current_state}: {str(e)}",
                    details={"iteration": iteration, "state": str(context.current_state)}
                )

        if iteration >= max_iterations and not context.is_terminal:
            self.logger.error("State machine exceeded maximum iterations")
            context = context.with_error(
                message="Pipeline exceeded maximum iterations",
                details={"iterations": iteration}
            )

        self._log_final_state(context)
        return context

    def _execute_state(self, context: PipelineContext) -> PipelineContext:
        """
        Execute the current state's handler.

        Args:
            context: Current pipeline context

        Returns:
            Updated pipeline context
        """
        current_state = context.current_state

        self.logger.info(f"Current state: {current_state}")

        handler = self.handlers.get(current_state)

        if handler is None:
            following = next_state(current_state)
            self.logger.warning(f"No handler for state {current_state}, skipping to {following}")
            return context.with_state(following)

        updated_context, following = handler.handle(context)

        if following == PipelineState.FAILED:
            if updated_context.has_error:
                return updated_context
            return updated_context.with_error(
                message=f"{current_state} failed",
                exit_code=updated_context.exit_code or 1
            )

        # Validate transition
        if not is_valid_transition(current_state, following):
            self.logger.error(
                f"Invalid transition: {current_state} → {following}"
            )
            return context.with_error(
                message=f"Invalid state transition: {current_state} → {following}"
            )

        self.logger.info(f"Transition: {current_state} → {following}")
        return updated_context.with_state(following)

    def _log_final_state(self, context: PipelineContext):
        """Log final pipeline state."""
        self.logger.info("=" * 60)

        if context.is_successful:
            self.logger.info("✓ Pipeline completed successfully")
        elif context.has_error:
            self.logger.error(f"✗ Pipeline failed: {context.error_message}")
        else:
            self.logger.warning(f"Pipeline completed with exit code {context.exit_code}")

        self.logger.info(f"Final state: {context.current_state}")
        self.logger.info(f"Elapsed time: {context.elapsed_time:.1f}s")

        self.logger.info("=" * 60)
