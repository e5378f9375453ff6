"""
ResolveBaseHandler - Handles anchor resolution state.

Anchors the execution context one level above the pipeline definition.
"""

import shlex
from typing import Optional

from orchestration.context import PipelineContext
from orchestration.states import PipelineState
from services.commands.trace import trace
from utils.paths import resolve_anchor_dir
from .base import StateHandler


class ResolveBaseHandler(StateHandler):
    """
    Handler for RESOLVING_BASE state.

    Resolves the definition's real location and moves the execution
    context to the anchor directory. Failure raises ResolutionError.
    """

    def __init__(self, definition_path: Optional[str]):
        """
        Initialize handler.

        Args:
            definition_path: Pipeline definition file, or main.py for the built-in definition
        """
        super().__init__()
        self.definition_path = definition_path

    def handle(self, context: PipelineContext) -> tuple[PipelineContext, PipelineState]:
        self._log_state_entry(context)

        anchor = resolve_anchor_dir(self.definition_path, context.config.anchor_levels_up)

        if context.config.flags.xtrace:
            trace(f"cd {shlex.quote(str(anchor))}")

        execution = context.execution.change_directory(str(anchor))
        self.logger.info(f"Anchored at {anchor} (definition: {self.definition_path})")

        updated = context.with_execution(execution)
        next_state = self._determine_next_state(updated)
        self._log_state_exit(context, next_state)
        return updated, next_state
