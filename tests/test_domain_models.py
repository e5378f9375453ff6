"""
Unit tests for domain models.

Tests that all domain models validate correctly and are immutable.
"""

import pytest
from pathlib import Path

from domain import (
    STAGE_ORDER,
    CommandResult,
    DirectoryChangeError,
    ExecutionContext,
    ExecutionFlags,
    PipelineConfig,
    StageConfig,
    StageResult,
)


class TestStageConfig:
    """Tests for StageConfig domain model."""

    def test_create_command_stage(self):
        """Test creating a stage with commands only."""
        stage = StageConfig(name="build", commands=("cargo build --verbose --all",))
        assert stage.directory is None
        assert stage.describe() == "cargo build --verbose --all"

    def test_create_directory_stage(self):
        """Test creating a stage that only changes directory."""
        stage = StageConfig(name="enter_subproject", directory="test")
        assert stage.commands == ()
        assert stage.describe() == "cd test"

    def test_unknown_stage_name_fails(self):
        """Test that a stage outside the fixed sequence is rejected."""
        with pytest.raises(ValueError, match="Unknown stage 'deploy'"):
            StageConfig(name="deploy", commands=("make deploy",))

    def test_empty_stage_fails(self):
        """Test that a stage with nothing to do is rejected."""
        with pytest.raises(ValueError, match="must define commands or a directory"):
            StageConfig(name="build")

    def test_blank_command_fails(self):
        """Test that blank command lines are rejected."""
        with pytest.raises(ValueError, match="empty command"):
            StageConfig(name="build", commands=("   ",))

    def test_stage_is_immutable(self):
        """Test that StageConfig is immutable."""
        stage = StageConfig(name="build", commands=("cargo build",))
        with pytest.raises(Exception):  # FrozenInstanceError
            stage.name = "primary_tests"


class TestPipelineConfig:
    """Tests for PipelineConfig domain model."""

    def test_default_definition(self):
        """Test the built-in five-stage definition."""
        config = PipelineConfig.default()

        assert tuple(s.name for s in config.stages) == STAGE_ORDER
        assert config.get_stage("build").commands == ("cargo build --verbose --all",)
        assert config.get_stage("primary_tests").commands == ("cargo test --verbose --all",)
        assert config.get_stage("enter_subproject").directory == "test"
        assert config.get_stage("secondary_install").commands == ("yarn install",)
        assert config.get_stage("secondary_tests").commands == ("yarn test",)
        assert config.anchor_levels_up == 1
        assert config.flags == ExecutionFlags(errexit=True, nounset=True, pipefail=True, xtrace=True)

    def test_stages_out_of_order_fail(self):
        """Test that the fixed order cannot be changed."""
        stages = tuple(reversed(PipelineConfig.default().stages))
        with pytest.raises(ValueError, match="stages must be exactly"):
            PipelineConfig(stages=stages)

    def test_negative_anchor_levels_fail(self):
        """Test that a negative anchor offset is rejected."""
        with pytest.raises(ValueError, match="anchor_levels_up must be non-negative"):
            PipelineConfig(anchor_levels_up=-1)

    def test_from_empty_dict_is_default(self):
        """Test that an empty YAML document yields the built-in definition."""
        assert PipelineConfig.from_dict(None) == PipelineConfig.default()
        assert PipelineConfig.from_dict({}) == PipelineConfig.default()

    def test_from_dict_overrides_stage(self):
        """Test overriding one stage keeps the others."""
        config = PipelineConfig.from_dict(
            {
                "stages": {
                    "build": {"commands": "cargo build --release"},
                    "enter_subproject": {"directory": "js"},
                },
                "anchor": {"levels_up": 2},
                "run_metadata": {"run_name": "nightly"},
            },
            definition_path="/repo/ci/pipeline.yaml",
        )

        assert config.get_stage("build").commands == ("cargo build --release",)
        assert config.get_stage("enter_subproject").directory == "js"
        assert config.get_stage("secondary_tests").commands == ("yarn test",)
        assert config.anchor_levels_up == 2
        assert config.run_name == "nightly"
        assert config.definition_path == "/repo/ci/pipeline.yaml"

    def test_from_dict_shorthand_commands(self):
        """Test `stage: command` and `stage: [commands]` shorthands."""
        config = PipelineConfig.from_dict({
            "stages": {
                "build": "cargo build",
                "secondary_tests": ["yarn lint", "yarn test"],
            }
        })
        assert config.get_stage("build").commands == ("cargo build",)
        assert config.get_stage("secondary_tests").commands == ("yarn lint", "yarn test")

    def test_from_dict_execution_flags(self):
        """Test that execution flags are read from YAML."""
        config = PipelineConfig.from_dict({"execution": {"errexit": False, "xtrace": False}})
        assert config.flags.errexit is False
        assert config.flags.xtrace is False
        assert config.flags.nounset is True
        assert config.flags.pipefail is True

    def test_from_dict_unknown_flag_fails(self):
        """Test that misspelled flags are rejected."""
        with pytest.raises(ValueError, match="Unknown execution flags"):
            PipelineConfig.from_dict({"execution": {"pipe_fail": True}})

    def test_from_dict_unknown_stage_fails(self):
        """Test that stages outside the fixed sequence are rejected."""
        with pytest.raises(ValueError, match="Unknown stages in config"):
            PipelineConfig.from_dict({"stages": {"deploy": {"commands": ["make deploy"]}}})

    @pytest.mark.parametrize("config_dict, match", [
        (["build"], "pipeline definition must be a mapping"),
        ({"stages": ["build"]}, "stages must be a mapping"),
        ({"execution": ["errexit"]}, "execution must be a mapping"),
        ({"execution": {"errexit": "yes"}}, "execution.errexit must be true or false"),
        ({"anchor": {"levels_up": "2"}}, "anchor_levels_up must be an integer"),
        ({"anchor": {"levels_up": True}}, "anchor_levels_up must be an integer"),
        ({"stages": {"enter_subproject": {"directory": 5}}}, "directory must be a string"),
        ({"stages": {"build": {"commands": 5}}}, "commands must be a string or a list"),
        ({"stages": {"build": [["cargo", "build"]]}}, "command must be a string"),
        ({"run_metadata": "nightly"}, "run_metadata must be a mapping"),
        ({"run_metadata": {"run_name": 7}}, "run_name must be a non-empty string"),
    ])
    def test_from_dict_wrong_shape_fails(self, config_dict, match):
        """Test that mistyped YAML values are rejected with the offending value."""
        with pytest.raises(ValueError, match=match):
            PipelineConfig.from_dict(config_dict)

    def test_get_unknown_stage_raises(self):
        with pytest.raises(KeyError):
            PipelineConfig.default().get_stage("deploy")


class TestExecutionContext:
    """Tests for ExecutionContext domain model."""

    def test_change_directory_is_cumulative(self, tmp_path):
        """Test that directory changes stack on top of each other."""
        (tmp_path / "a" / "b").mkdir(parents=True)
        root = ExecutionContext(cwd=tmp_path, env={})

        inner = root.change_directory("a").change_directory("b")

        assert inner.cwd == (tmp_path / "a" / "b").resolve()
        assert root.cwd == tmp_path  # original untouched

    def test_change_directory_absolute(self, tmp_path):
        """Test that absolute targets replace the cwd."""
        context = ExecutionContext(cwd=Path("/"), env={})
        assert context.change_directory(str(tmp_path)).cwd == tmp_path.resolve()

    def test_change_to_missing_directory_fails(self, tmp_path):
        """Test that a missing directory raises DirectoryChangeError."""
        context = ExecutionContext(cwd=tmp_path, env={})
        with pytest.raises(DirectoryChangeError, match="cd: test: No such file or directory") as exc:
            context.change_directory("test")
        assert exc.value.exit_code == 1

    def test_change_to_file_fails(self, tmp_path):
        """Test that a regular file is not a valid target."""
        (tmp_path / "test").write_text("")
        context = ExecutionContext(cwd=tmp_path, env={})
        with pytest.raises(DirectoryChangeError, match="Not a directory"):
            context.change_directory("test")

    def test_environment_snapshot_is_read_only(self, tmp_path):
        """Test that the environment cannot be mutated in place."""
        env = {"HOME": "/home/ci"}
        context = ExecutionContext(cwd=tmp_path, env=env)
        env["HOME"] = "/changed"

        assert context.lookup("HOME") == "/home/ci"
        assert context.lookup("MISSING") is None
        with pytest.raises(TypeError):
            context.env["HOME"] = "/tmp"

    def test_from_environment(self, monkeypatch, tmp_path):
        """Test snapshotting the invoking process."""
        monkeypatch.setenv("CI", "true")
        context = ExecutionContext.from_environment(cwd=tmp_path)
        assert context.cwd == tmp_path
        assert context.lookup("CI") == "true"


class TestResults:
    """Tests for CommandResult and StageResult."""

    def test_command_result_success(self):
        assert CommandResult(command="true", exit_code=0).succeeded
        assert not CommandResult(command="false", exit_code=1).succeeded

    def test_command_result_negative_duration_fails(self):
        """Test that negative duration raises ValueError."""
        with pytest.raises(ValueError, match="duration_sec must be non-negative"):
            CommandResult(command="true", exit_code=0, duration_sec=-1.0)

    def test_stage_result_reports_first_failure(self):
        """Test that a stage's status is its first failing command's status."""
        result = StageResult(
            stage_name="build",
            cwd=Path("/repo"),
            command_results=(
                CommandResult(command="a", exit_code=0),
                CommandResult(command="b", exit_code=3),
                CommandResult(command="c", exit_code=4),
            ),
        )
        assert not result.succeeded
        assert result.exit_code == 3
        assert result.to_dict() == {
            "stage": "build",
            "cwd": "/repo",
            "commands": ["a", "b", "c"],
            "exit_code": 3,
        }

    def test_empty_stage_result_succeeds(self):
        result = StageResult(stage_name="enter_subproject", cwd=Path("/repo/test"))
        assert result.succeeded
        assert result.exit_code == 0
