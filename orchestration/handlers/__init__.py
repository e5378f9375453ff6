"""
State handlers for pipeline execution.

Each handler implements logic for a specific pipeline state.
"""

from .base import StateHandler
from .resolve_base_handler import ResolveBaseHandler
from .stage_handler import StageHandler

__all__ = [
    "StateHandler",
    "ResolveBaseHandler",
    "StageHandler",
]
