"""
Configuration domain models.

Validated configuration objects for the pipeline.
"""

from dataclasses import dataclass, field, replace
from typing import Optional


# Fixed stage order. YAML can override what a stage runs, never where it sits.
STAGE_ORDER = (
    "build",
    "primary_tests",
    "enter_subproject",
    "secondary_install",
    "secondary_tests",
)


@dataclass(frozen=True)
class ExecutionFlags:
    """Strict-failure switches, equivalent to ``set -euxo pipefail``."""

    errexit: bool = True
    nounset: bool = True
    pipefail: bool = True
    xtrace: bool = True

    @classmethod
    def from_dict(cls, flags_dict: dict) -> 'ExecutionFlags':
        if not isinstance(flags_dict, dict):
            raise ValueError(f"execution must be a mapping of flags, got {flags_dict!r}")
        unknown = set(flags_dict) - {"errexit", "nounset", "pipefail", "xtrace"}
        if unknown:
            raise ValueError(f"Unknown execution flags: {sorted(unknown)}")
        for key, value in flags_dict.items():
            if not isinstance(value, bool):
                raise ValueError(f"execution.{key} must be true or false, got {value!r}")
        return cls(**flags_dict)


@dataclass(frozen=True)
class StageConfig:
    """
    A named unit of work.

    An optional working-directory change (relative to the current context)
    followed by zero or more command lines run in that context.
    """

    name: str
    commands: tuple[str, ...] = field(default_factory=tuple)
    directory: Optional[str] = None

    def __post_init__(self):
        """Validate stage configuration."""
        if self.name not in STAGE_ORDER:
            raise ValueError(f"Unknown stage '{self.name}', expected one of {list(STAGE_ORDER)}")
        if not self.commands and self.directory is None:
            raise ValueError(f"Stage '{self.name}' must define commands or a directory")
        if self.directory is not None and not isinstance(self.directory, str):
            raise ValueError(f"Stage '{self.name}' directory must be a string, got {self.directory!r}")
        if self.directory is not None and not self.directory.strip():
            raise ValueError(f"Stage '{self.name}' directory cannot be empty")
        for command in self.commands:
            if not isinstance(command, str):
                raise ValueError(f"Stage '{self.name}' command must be a string, got {command!r}")
            if not command.strip():
                raise ValueError(f"Stage '{self.name}' has an empty command")

    def describe(self) -> str:
        """One-line description used in plans and logs."""
        parts = []
        if self.directory is not None:
            parts.append(f"cd {self.directory}")
        parts.extend(self.commands)
        return " && ".join(parts)


def default_stages() -> tuple[StageConfig, ...]:
    """Built-in pipeline definition: cargo workspace, then the yarn sub-project."""
    return (
        StageConfig(name="build", commands=("cargo build --verbose --all",)),
        StageConfig(name="primary_tests", commands=("cargo test --verbose --all",)),
        StageConfig(name="enter_subproject", directory="test"),
        StageConfig(name="secondary_install", commands=("yarn install",)),
        StageConfig(name="secondary_tests", commands=("yarn test",)),
    )


@dataclass(frozen=True)
class PipelineConfig:
    """
    Complete pipeline configuration.

    Immutable configuration object validated at creation.
    """

    # Stages, always in STAGE_ORDER
    stages: tuple[StageConfig, ...] = field(default_factory=default_stages)

    # Execution mode
    flags: ExecutionFlags = field(default_factory=ExecutionFlags)

    # Anchor = directory holding the definition, this many parents up
    anchor_levels_up: int = 1

    # Location of the pipeline definition (None = unknown; resolution fails)
    definition_path: Optional[str] = None

    # Run metadata
    run_name: str = "workspace_ci"

    def __post_init__(self):
        """Validate pipeline configuration."""
        names = tuple(stage.name for stage in self.stages)
        if names != STAGE_ORDER:
            raise ValueError(f"stages must be exactly {list(STAGE_ORDER)} in order, got {list(names)}")
        if not isinstance(self.anchor_levels_up, int) or isinstance(self.anchor_levels_up, bool):
            raise ValueError(f"anchor_levels_up must be an integer, got {self.anchor_levels_up!r}")
        if self.anchor_levels_up < 0:
            raise ValueError(f"anchor_levels_up must be non-negative, got {self.anchor_levels_up}")
        if not isinstance(self.run_name, str) or not self.run_name:
            raise ValueError(f"run_name must be a non-empty string, got {self.run_name!r}")

    def get_stage(self, name: str) -> StageConfig:
        """Return the stage with the given name."""
        for stage in self.stages:
            if stage.name == name:
                return stage
        raise KeyError(name)

    def with_definition_path(self, path: str) -> 'PipelineConfig':
        return replace(self, definition_path=path)

    @classmethod
    def default(cls) -> 'PipelineConfig':
        """The built-in definition with every flag enabled."""
        return cls()

    @classmethod
    def from_dict(cls, config_dict: Optional[dict], definition_path: Optional[str] = None) -> 'PipelineConfig':
        """
        Create PipelineConfig from a dictionary (e.g., loaded from YAML).

        Stages named in the dictionary override the built-in ones; stages
        not named keep their defaults.

        Args:
            config_dict: Dictionary with configuration values
            definition_path: Path of the file the dictionary was loaded from

        Returns:
            Validated PipelineConfig instance
        """
        config_dict = _section(config_dict, "pipeline definition")

        # Parse execution flags
        flags = ExecutionFlags.from_dict(_section(config_dict.get("execution"), "execution"))

        # Parse stage overrides
        stages_dict = _section(config_dict.get("stages"), "stages")
        unknown = set(stages_dict) - set(STAGE_ORDER)
        if unknown:
            raise ValueError(f"Unknown stages in config: {sorted(unknown)}")

        stages = []
        for default_stage in default_stages():
            override = stages_dict.get(default_stage.name)
            if override is None:
                stages.append(default_stage)
                continue
            if not isinstance(override, dict):
                # Shorthand: `build: cargo build` or `build: [a, b]`
                override = {"commands": override}
            commands = override.get("commands", list(default_stage.commands))
            if isinstance(commands, str):
                commands = [commands]
            elif commands is None:
                commands = []
            elif not isinstance(commands, list):
                raise ValueError(
                    f"stages.{default_stage.name}.commands must be a string or a list of strings, "
                    f"got {commands!r}"
                )
            stages.append(StageConfig(
                name=default_stage.name,
                commands=tuple(commands),
                directory=override.get("directory", default_stage.directory),
            ))

        # Parse anchor and run metadata
        anchor = _section(config_dict.get("anchor"), "anchor")
        run_metadata = _section(config_dict.get("run_metadata"), "run_metadata")

        return cls(
            stages=tuple(stages),
            flags=flags,
            anchor_levels_up=anchor.get("levels_up", 1),
            definition_path=definition_path,
            run_name=run_metadata.get("run_name", "workspace_ci"),
        )


def _section(value, name: str) -> dict:
    """A YAML mapping section; a missing or empty section is an empty mapping."""
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"{name} must be a mapping, got {value!r}")
    return value
