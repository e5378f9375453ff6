"""
Path utilities for pipeline.

Handles anchor directory resolution.
"""

from pathlib import Path
from typing import Optional

from domain.errors import ResolutionError


def resolve_anchor_dir(definition_path: Optional[str], levels_up: int = 1) -> Path:
    """
    Resolve the directory the pipeline runs from.

    The definition's real location is used (symlinks followed), so the
    anchor is the same whatever the caller's working directory.

    Args:
        definition_path: Path of the pipeline definition (YAML file or script)
        levels_up: How many parents above the definition's directory to go

    Returns:
        Absolute anchor directory

    Example:
        resolve_anchor_dir("/repo/ci/test.py")  -> Path("/repo")
    """
    if not definition_path:
        raise ResolutionError("Pipeline definition location is unknown")

    path = Path(definition_path).expanduser()
    if not path.exists():
        raise ResolutionError(f"Pipeline definition not found: {definition_path}")

    anchor = path.resolve().parent
    for _ in range(levels_up):
        anchor = anchor.parent

    if not anchor.is_dir():
        raise ResolutionError(f"Anchor directory does not exist: {anchor}")

    return anchor
