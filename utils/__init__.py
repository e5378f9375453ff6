"""
Utility modules for pipeline.
"""

from .paths import resolve_anchor_dir

__all__ = [
    "resolve_anchor_dir",
]
