"""
Command services.

Services for parsing, tracing and executing external commands.
"""

from .parser import ParsedCommand, parse_command_line
from .runner import CommandRunner, SubprocessRunner
from .trace import XTRACE_LOGGER_NAME, configure_trace_logging, trace

__all__ = [
    "ParsedCommand",
    "parse_command_line",
    "CommandRunner",
    "SubprocessRunner",
    "XTRACE_LOGGER_NAME",
    "configure_trace_logging",
    "trace",
]
