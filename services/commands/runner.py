"""
Command runners.

Single responsibility: Execute a parsed command in an execution context and
report its exit status. Runners never decide whether the pipeline continues.
"""

import logging
import subprocess
import time
from abc import ABC, abstractmethod
from typing import Optional

from domain.execution import ExecutionContext
from domain.results import CommandResult
from .parser import ParsedCommand


# Shell-compatible statuses for commands that never started
COMMAND_NOT_FOUND = 127
COMMAND_NOT_EXECUTABLE = 126


class CommandRunner(ABC):
    """
    Capability interface for executing external commands.

    Stages, tests and alternate toolchains substitute their own runner
    without touching the orchestration layer.
    """

    @abstractmethod
    def run(self, command: ParsedCommand, execution: ExecutionContext) -> CommandResult:
        """
        Run a command to completion.

        Args:
            command: Parsed command (one or more pipe segments)
            execution: Working directory and environment to run in

        Returns:
            CommandResult with the command's exit status
        """
        pass


class SubprocessRunner(CommandRunner):
    """
    Runs commands as child processes and blocks until they exit.

    stdout/stderr are inherited so tool output streams in real time. There
    is no timeout.
    """

    def __init__(self, pipefail: bool = True, capture_output: bool = False):
        """
        Initialize subprocess runner.

        Args:
            pipefail: A failing segment fails the whole pipe
            capture_output: Capture the last segment's stdout into the result
        """
        self.pipefail = pipefail
        self.capture_output = capture_output
        self.logger = logging.getLogger(self.__class__.__name__)

    def run(self, command: ParsedCommand, execution: ExecutionContext) -> CommandResult:
        start = time.monotonic()
        statuses, output = self._run_segments(command, execution)
        exit_code = self.pipeline_status(statuses, self.pipefail)

        return CommandResult(
            command=str(command),
            exit_code=exit_code,
            output=output,
            duration_sec=time.monotonic() - start,
        )

    @staticmethod
    def pipeline_status(statuses: list[int], pipefail: bool = True) -> int:
        """
        Combine per-segment statuses into the pipe's status.

        With pipefail the rightmost non-zero status wins; without it only
        the last segment counts.
        """
        if not pipefail:
            return statuses[-1]
        for status in reversed(statuses):
            if status != 0:
                return status
        return 0

    @staticmethod
    def normalize_returncode(returncode: int) -> int:
        """Map a signal death (negative returncode) to 128 + signal number."""
        if returncode < 0:
            return 128 - returncode
        return returncode

    def _run_segments(
        self,
        command: ParsedCommand,
        execution: ExecutionContext
    ) -> tuple[list[int], Optional[str]]:
        processes: list[Optional[subprocess.Popen]] = []
        statuses: list[Optional[int]] = []
        upstream = None  # first segment inherits stdin
        last_index = len(command.segments) - 1

        try:
            for index, argv in enumerate(command.segments):
                is_last = index == last_index
                stdout = subprocess.PIPE if (not is_last or self.capture_output) else None

                try:
                    process = subprocess.Popen(
                        list(argv),
                        cwd=str(execution.cwd),
                        env=dict(execution.env),
                        stdin=upstream,
                        stdout=stdout,
                        text=True,
                    )
                    status = None
                except FileNotFoundError:
                    self.logger.error(f"{argv[0]}: command not found")
                    process, status = None, COMMAND_NOT_FOUND
                except PermissionError:
                    self.logger.error(f"{argv[0]}: permission denied")
                    process, status = None, COMMAND_NOT_EXECUTABLE
                except OSError as e:
                    self.logger.error(f"{argv[0]}: {e}")
                    process, status = None, COMMAND_NOT_EXECUTABLE

                # Close our copy so an upstream writer sees SIGPIPE if the reader exits
                if upstream not in (None, subprocess.DEVNULL):
                    upstream.close()

                if is_last:
                    upstream = None
                elif process is not None:
                    upstream = process.stdout
                else:
                    upstream = subprocess.DEVNULL

                processes.append(process)
                statuses.append(status)

            output = None
            last = processes[-1]
            if self.capture_output and last is not None:
                output, _ = last.communicate()

            for index, process in enumerate(processes):
                if process is not None:
                    statuses[index] = self.normalize_returncode(process.wait())
        finally:
            self._reap(processes)

        return statuses, output

    def _reap(self, processes: list[Optional[subprocess.Popen]]):
        """Kill and wait for segments still running, e.g. after Ctrl-C."""
        for process in processes:
            if process is not None and process.poll() is None:
                self.logger.warning(f"Killing unfinished process {process.pid}")
                process.kill()
                process.wait()
