"""
Pipeline error taxonomy.

Every error carries the exit status the pipeline terminates with.
"""


class PipelineError(Exception):
    """Base class for errors that abort the pipeline."""

    exit_code = 1

    def __init__(self, message: str, exit_code: int = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ResolutionError(PipelineError):
    """Raised when the pipeline's own location or anchor cannot be determined."""


class DirectoryChangeError(PipelineError):
    """Raised when a working-directory change fails."""

    def __init__(self, directory: str, reason: str):
        self.directory = directory
        super().__init__(f"cd: {directory}: {reason}")


class UndefinedVariableError(PipelineError):
    """Raised when a command line references an unset variable."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"{name}: unbound variable")


class CommandSyntaxError(PipelineError):
    """Raised for malformed command lines."""

    exit_code = 2
