"""
Domain models for the workspace CI pipeline.

Pure data structures with validation, no business logic.
"""

from .config import (
    STAGE_ORDER,
    ExecutionFlags,
    StageConfig,
    PipelineConfig,
    default_stages,
)
from .errors import (
    PipelineError,
    ResolutionError,
    DirectoryChangeError,
    UndefinedVariableError,
    CommandSyntaxError,
)
from .execution import ExecutionContext
from .results import CommandResult, StageResult

__all__ = [
    "STAGE_ORDER",
    "ExecutionFlags",
    "StageConfig",
    "PipelineConfig",
    "default_stages",
    "PipelineError",
    "ResolutionError",
    "DirectoryChangeError",
    "UndefinedVariableError",
    "CommandSyntaxError",
    "ExecutionContext",
    "CommandResult",
    "StageResult",
]
