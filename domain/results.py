"""
Result domain models.

Immutable outcomes of executed commands and stages.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class CommandResult:
    """Exit status and optional output of one executed command."""

    command: str
    exit_code: int
    output: Optional[str] = None
    duration_sec: float = 0.0

    def __post_init__(self):
        """Validate command result."""
        if self.duration_sec < 0:
            raise ValueError(f"duration_sec must be non-negative, got {self.duration_sec}")

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0


@dataclass(frozen=True)
class StageResult:
    """
    Outcome of a single stage.

    Holds the directory the stage ran in and its command results in order.
    """

    stage_name: str
    cwd: Path
    command_results: tuple[CommandResult, ...] = field(default_factory=tuple)

    @property
    def succeeded(self) -> bool:
        """True when every command exited zero."""
        return all(result.succeeded for result in self.command_results)

    @property
    def exit_code(self) -> int:
        """Status of the first failing command, or 0."""
        for result in self.command_results:
            if not result.succeeded:
                return result.exit_code
        return 0

    def to_dict(self) -> dict:
        return {
            "stage": self.stage_name,
            "cwd": str(self.cwd),
            "commands": [r.command for r in self.command_results],
            "exit_code": self.exit_code,
        }
