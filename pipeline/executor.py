"""
PipelineExecutor - High-level pipeline orchestrator.

Wires together the command runner, the state handlers and the state
machine, runs the fixed stage sequence and exposes the exit status:

  RESOLVING_BASE → BUILD → PRIMARY_TESTS → ENTER_SUBPROJECT
                 → SECONDARY_INSTALL → SECONDARY_TESTS → COMPLETED

Any failure short-circuits to FAILED and its status becomes the
pipeline's exit status.
"""

import logging
from typing import Optional

from domain.config import PipelineConfig
from domain.execution import ExecutionContext
from orchestration import PipelineState, PipelineContext, StateMachine
from orchestration.handlers import ResolveBaseHandler, StageHandler
from orchestration.states import STAGE_STATES
from services.commands.runner import CommandRunner, SubprocessRunner
from utils.paths import resolve_anchor_dir


class PipelineExecutor:
    """
    High-level pipeline executor.

    Responsible for:
    1. Creating the command runner (unless one is injected)
    2. Building the state machine with handlers
    3. Running the pipeline
    4. Returning results
    """

    def __init__(
        self,
        config: PipelineConfig,
        runner: Optional[CommandRunner] = None,
        execution: Optional[ExecutionContext] = None
    ):
        """
        Initialize executor.

        Args:
            config: Validated pipeline configuration
            runner: Command runner (default: SubprocessRunner honoring pipefail)
            execution: Initial execution context (default: snapshot of this process)
        """
        self.config = config
        self.logger = logging.getLogger(self.__class__.__name__)
        self.runner = runner or SubprocessRunner(pipefail=config.flags.pipefail)
        self.execution = execution or ExecutionContext.from_environment()
        self.definition_path = config.definition_path
        self.state_machine = self._build_state_machine()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(self) -> PipelineContext:
        """Execute the pipeline and return final context."""
        self.logger.info("Initializing pipeline execution")
        initial_context = self._create_initial_context()
        final_context = self.state_machine.run(initial_context)
        self._log_results(final_context)
        return final_context

    def run_and_get_exit_code(self) -> int:
        """Execute the pipeline and return the process exit status."""
        return self.run().exit_code

    def plan(self) -> list[dict]:
        """
        Describe what a run would do without executing anything.

        Resolves the anchor (so a bad definition location fails here too)
        and lists every stage with its directory change and commands.

        Returns:
            List of dicts with stage, state, directory and commands
        """
        anchor = resolve_anchor_dir(self.definition_path, self.config.anchor_levels_up)
        steps = [{
            "stage": "resolve_base",
            "state": str(PipelineState.RESOLVING_BASE),
            "directory": str(anchor),
            "commands": [],
        }]
        for stage in self.config.stages:
            steps.append({
                "stage": stage.name,
                "state": str(STAGE_STATES[stage.name]),
                "directory": stage.directory,
                "commands": list(stage.commands),
            })
        return steps

    # ------------------------------------------------------------------
    # Pipeline internals
    # ------------------------------------------------------------------

    def _create_initial_context(self) -> PipelineContext:
        initial_state = PipelineState.RESOLVING_BASE
        self.logger.info(f"Starting state: {initial_state}")
        return PipelineContext(
            config=self.config,
            current_state=initial_state,
            execution=self.execution,
        )

    def _build_state_machine(self) -> StateMachine:
        self.logger.info("Building state machine with handlers")
        return StateMachine(self._create_handlers())

    def _create_handlers(self) -> dict:
        handlers = {
            PipelineState.RESOLVING_BASE: ResolveBaseHandler(self.definition_path),
        }
        for stage in self.config.stages:
            handlers[STAGE_STATES[stage.name]] = StageHandler(stage, self.runner)
        return handlers

    def _log_results(self, context: PipelineContext):
        self.logger.info("=" * 60)
        self.logger.info("Pipeline Execution Summary")
        self.logger.info("=" * 60)

        summary = context.get_summary()
        for key, value in summary.items():
            self.logger.info(f"{key:30s}: {value}")

        if context.stage_results:
            self.logger.info("Stages:")
            for result in context.stage_results:
                status = "ok" if result.succeeded else f"exit {result.exit_code}"
                self.logger.info(f"  {result.stage_name:28s}: {status} ({result.cwd})")

        self.logger.info("=" * 60)
