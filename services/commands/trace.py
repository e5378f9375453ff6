"""
Command tracing.

Echoes every command to diagnostic output before it runs, the way
``set -x`` does.
"""

import logging
import sys


XTRACE_LOGGER_NAME = "xtrace"


def configure_trace_logging(stream=None) -> logging.Logger:
    """
    Send traced commands to stderr as bare ``+ command`` lines.

    Args:
        stream: Output stream (default: sys.stderr)

    Returns:
        The configured trace logger
    """
    logger = logging.getLogger(XTRACE_LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    logger.propagate = False
    return logger


def trace(command) -> None:
    """Echo a command (anything with a shell-like ``str``) before it runs."""
    logging.getLogger(XTRACE_LOGGER_NAME).info(f"+ {command}")
