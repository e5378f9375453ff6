"""
Pipeline context.

Immutable context object passed between state handlers.
"""

from dataclasses import dataclass, field, replace
from typing import Optional
from datetime import datetime

from domain.config import PipelineConfig
from domain.execution import ExecutionContext
from domain.results import StageResult
from .states import PipelineState


@dataclass(frozen=True)
class PipelineContext:
    """
    Immutable context for pipeline execution.

    Contains all state needed for pipeline execution.
    Each state handler returns a new context with updated fields.
    """

    # Configuration
    config: PipelineConfig

    # Current state
    current_state: PipelineState

    # Working directory + environment, threaded through every stage
    execution: ExecutionContext

    # Execution metadata
    start_time: datetime = field(default_factory=datetime.now)

    # Stages run so far, in order
    stage_results: tuple[StageResult, ...] = field(default_factory=tuple)

    # Status of the last command run (pipeline status on completion)
    exit_code: int = 0

    # Error tracking
    error_message: Optional[str] = None
    error_details: Optional[dict] = None

    def with_state(self, new_state: PipelineState) -> 'PipelineContext':
        """
        Return new context with updated state.

        Args:
            new_state: New pipeline state

        Returns:
            New PipelineContext with updated state
        """
        return replace(self, current_state=new_state)

    def with_execution(self, execution: ExecutionContext) -> 'PipelineContext':
        """
        Return new context with an updated execution context.

        Args:
            execution: Execution context after a stage (possibly a new cwd)

        Returns:
            New PipelineContext with execution context
        """
        return replace(self, execution=execution)

    def with_stage_result(self, result: StageResult) -> 'PipelineContext':
        """
        Return new context with a stage result appended.

        Args:
            result: Result of the stage that just ran

        Returns:
            New PipelineContext with the result recorded
        """
        return replace(self, stage_results=self.stage_results + (result,))

    def with_exit_code(self, exit_code: int) -> 'PipelineContext':
        return replace(self, exit_code=exit_code)

    def with_error(
        self,
        message: str,
        exit_code: int = 1,
        details: Optional[dict] = None
    ) -> 'PipelineContext':
        """
        Return new context with error information.

        Args:
            message: Error message
            exit_code: Status the pipeline exits with
            details: Optional error details dict

        Returns:
            New PipelineContext in FAILED state
        """
        return replace(
            self,
            current_state=PipelineState.FAILED,
            exit_code=exit_code,
            error_message=message,
            error_details=details or {}
        )

    @property
    def elapsed_time(self) -> float:
        """Get elapsed time in seconds."""
        return (datetime.now() - self.start_time).total_seconds()

    @property
    def is_terminal(self) -> bool:
        """Check if current state is terminal."""
        return self.current_state.is_terminal()

    @property
    def is_successful(self) -> bool:
        """Check if pipeline completed with status zero."""
        return self.current_state == PipelineState.COMPLETED and self.exit_code == 0

    @property
    def has_error(self) -> bool:
        """Check if pipeline failed."""
        return self.current_state == PipelineState.FAILED

    @property
    def stages_run(self) -> list[str]:
        return [result.stage_name for result in self.stage_results]

    def get_summary(self) -> dict:
        """
        Get summary of pipeline execution.

        Returns:
            Dict with execution summary
        """
        return {
            "state": str(self.current_state),
            "run_name": self.config.run_name,
            "elapsed_time_sec": self.elapsed_time,
            "start_time": self.start_time.isoformat(),
            "cwd": str(self.execution.cwd),
            "stages_run": self.stages_run,
            "exit_code": self.exit_code,
            "has_error": self.has_error,
            "error_message": self.error_message,
            "is_successful": self.is_successful,
        }
