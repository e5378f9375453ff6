"""
Shared fixtures for pipeline tests.
"""

import logging

import pytest

from domain.config import PipelineConfig
from domain.execution import ExecutionContext
from domain.results import CommandResult
from services.commands.runner import CommandRunner
from services.commands.trace import XTRACE_LOGGER_NAME


class ScriptedRunner(CommandRunner):
    """Records every command and answers with scripted exit codes."""

    def __init__(self, statuses=None):
        self.statuses = statuses or {}
        self.calls = []

    def run(self, command, execution):
        text = str(command)
        self.calls.append((text, execution.cwd))
        return CommandResult(command=text, exit_code=self.statuses.get(text, 0))

    @property
    def commands(self):
        return [text for text, _ in self.calls]


@pytest.fixture(autouse=True)
def reset_trace_logger():
    """Undo configure_trace_logging so traces reach caplog."""
    yield
    logger = logging.getLogger(XTRACE_LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def workspace(tmp_path):
    """
    A workspace with a primary tree and a ``test`` sub-project.

    Layout:
        <tmp>/ci/pipeline.yaml
        <tmp>/test/
    """
    (tmp_path / "ci").mkdir()
    (tmp_path / "ci" / "pipeline.yaml").write_text("{}\n")
    (tmp_path / "test").mkdir()
    return tmp_path


@pytest.fixture
def definition(workspace):
    return str(workspace / "ci" / "pipeline.yaml")


@pytest.fixture
def config(definition):
    return PipelineConfig.default().with_definition_path(definition)


@pytest.fixture
def execution(tmp_path):
    """Execution context started away from the workspace, with a fixed env."""
    elsewhere = tmp_path / "elsewhere"
    elsewhere.mkdir()
    return ExecutionContext(cwd=elsewhere, env={"HOME": str(tmp_path), "PATH": "/usr/bin:/bin"})


@pytest.fixture
def runner():
    return ScriptedRunner()
