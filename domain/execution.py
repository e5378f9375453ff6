"""
Execution context domain model.

Working directory and environment snapshot threaded through every stage.
"""

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional

from .errors import DirectoryChangeError


@dataclass(frozen=True)
class ExecutionContext:
    """
    Immutable process-wide execution state.

    Directory changes return a new context; the change is cumulative for
    every later command that receives the new context and is never undone.
    """

    cwd: Path
    env: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        """Freeze the environment snapshot."""
        object.__setattr__(self, "cwd", Path(self.cwd))
        object.__setattr__(self, "env", MappingProxyType(dict(self.env)))

    @classmethod
    def from_environment(cls, cwd: Optional[Path] = None) -> 'ExecutionContext':
        """Snapshot the invoking process's working directory and environment."""
        return cls(cwd=Path(cwd) if cwd is not None else Path.cwd(), env=dict(os.environ))

    def change_directory(self, directory: str) -> 'ExecutionContext':
        """
        Return a new context whose cwd is ``directory`` resolved against this one.

        Args:
            directory: Relative or absolute target directory

        Returns:
            New ExecutionContext

        Raises:
            DirectoryChangeError: If the target is missing or not a directory
        """
        target = self.cwd / directory
        if not target.exists():
            raise DirectoryChangeError(directory, "No such file or directory")
        if not target.is_dir():
            raise DirectoryChangeError(directory, "Not a directory")
        return replace(self, cwd=target.resolve())

    def lookup(self, name: str) -> Optional[str]:
        """Return the value of an environment variable, or None if unset."""
        return self.env.get(name)
