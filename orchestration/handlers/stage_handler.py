"""
StageHandler - Handles one pipeline stage.

Applies the stage's directory change, then runs its commands through the
command runner, stopping at the first failure.
"""

from domain.config import StageConfig
from domain.errors import DirectoryChangeError
from domain.execution import ExecutionContext
from domain.results import CommandResult, StageResult
from orchestration.context import PipelineContext
from orchestration.states import PipelineState
from services.commands.parser import ParsedCommand, parse_command_line
from services.commands.runner import CommandRunner
from services.commands.trace import trace
from .base import StateHandler


class StageHandler(StateHandler):
    """
    Handler for a stage state (BUILD, PRIMARY_TESTS, ...).

    A stage's ``directory`` runs as a leading ``cd`` step. The resulting
    working directory is handed on to every later stage.
    """

    def __init__(self, stage: StageConfig, runner: CommandRunner):
        """
        Initialize handler.

        Args:
            stage: Stage definition
            runner: Runner used for external commands
        """
        super().__init__()
        self.stage = stage
        self.runner = runner

    def steps(self) -> list[str]:
        """Command lines this stage runs, in order."""
        steps = []
        if self.stage.directory is not None:
            # Double quotes: variables still expand, spaces stay in one word
            directory = self.stage.directory.replace("\\", "\\\\").replace('"', '\\"')
            steps.append(f'cd "{directory}"')
        steps.extend(self.stage.commands)
        return steps

    def handle(self, context: PipelineContext) -> tuple[PipelineContext, PipelineState]:
        self._log_state_entry(context)

        flags = context.config.flags
        execution = context.execution
        results = []

        for line in self.steps():
            # UndefinedVariableError / CommandSyntaxError propagate to the state machine
            command = parse_command_line(line, execution.env, nounset=flags.nounset)

            if flags.xtrace:
                trace(command)

            if command.is_directory_change:
                result, execution = self._change_directory(command, execution)
            else:
                result = self.runner.run(command, execution)

            results.append(result)

            if result.succeeded:
                continue

            if flags.errexit:
                stage_result = StageResult(self.stage.name, execution.cwd, tuple(results))
                self.logger.error(
                    f"Stage '{self.stage.name}' failed: '{result.command}' "
                    f"exited with status {result.exit_code}"
                )
                failed = (
                    context.with_execution(execution)
                    .with_stage_result(stage_result)
                    .with_error(
                        message=f"'{result.command}' exited with status {result.exit_code}",
                        exit_code=result.exit_code,
                        details={"stage": self.stage.name, "cwd": str(execution.cwd)}
                    )
                )
                return failed, PipelineState.FAILED

            self.logger.warning(
                f"'{result.command}' exited with status {result.exit_code}, continuing (errexit off)"
            )

        stage_result = StageResult(self.stage.name, execution.cwd, tuple(results))
        self.logger.info(f"Stage '{self.stage.name}' finished in {execution.cwd}")

        updated = (
            context.with_execution(execution)
            .with_stage_result(stage_result)
            .with_exit_code(results[-1].exit_code if results else context.exit_code)
        )
        next_state = self._determine_next_state(updated)
        self._log_state_exit(context, next_state)
        return updated, next_state

    def _change_directory(
        self,
        command: ParsedCommand,
        execution: ExecutionContext
    ) -> tuple[CommandResult, ExecutionContext]:
        """
        Run the ``cd`` builtin against the execution context.

        Returns:
            (result, execution) where execution is unchanged on failure
        """
        try:
            target = command.directory_target(execution.env)
            execution = execution.change_directory(target)
        except DirectoryChangeError as e:
            self.logger.error(str(e))
            return CommandResult(command=str(command), exit_code=e.exit_code), execution

        return CommandResult(command=str(command), exit_code=0), execution
