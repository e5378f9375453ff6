#!/usr/bin/env python3
"""
Main entry point for the workspace CI pipeline.

Runs the fixed stage sequence against the workspace the pipeline
definition lives in:

  cargo build --verbose --all
  cargo test --verbose --all
  cd test
  yarn install
  yarn test

The run is anchored one level above the definition's location: the YAML
file given with --config, or, for the built-in definition, this file
itself. A copy kept at <workspace>/ci/main.py therefore runs against
<workspace> with no arguments. The installed workspace-ci command has no
fixed place inside a workspace and requires --config.

Every command is traced to stderr before it runs; the first failing
command's exit status becomes this process's exit status.
"""

import sys
import logging
import argparse
from pathlib import Path
from typing import Optional

import yaml

from domain.config import PipelineConfig
from domain.errors import PipelineError, ResolutionError
from pipeline.executor import PipelineExecutor
from services.commands.trace import configure_trace_logging


# Location the built-in definition is anchored to
BUILTIN_DEFINITION = str(Path(__file__))


def setup_logging(level: str = "INFO"):
    """Setup logging configuration."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)]
    )
    configure_trace_logging(sys.stderr)


def load_config(config_path: str) -> dict:
    """Load configuration from YAML file."""
    with open(config_path, 'r') as f:
        return yaml.safe_load(f)


def build_config(config_path: Optional[str], builtin_definition: Optional[str] = None) -> PipelineConfig:
    """
    Build the pipeline configuration.

    With a config file, the file both overrides the stages and anchors the
    run. Without one, the built-in definition is used and anchored at
    ``builtin_definition``.

    Raises:
        ResolutionError: If there is neither a config file nor a built-in anchor
    """
    if config_path is not None:
        return PipelineConfig.from_dict(load_config(config_path), definition_path=config_path)
    if builtin_definition is None:
        raise ResolutionError("No pipeline definition given: pass --config <workspace>/ci/pipeline.yaml")
    return PipelineConfig.default().with_definition_path(builtin_definition)


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Workspace CI pipeline - build, test, then test the sub-project",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Built-in definition; ci/main.py anchors the run at the workspace root
  python ci/main.py

  # Custom definition; the run is anchored one level above the YAML file
  workspace-ci --config ci/pipeline.yaml

  # Show the plan without running anything
  workspace-ci --config ci/pipeline.yaml --dry-run
        """
    )

    parser.add_argument(
        "--config", type=str, default=None,
        help="Path to a YAML pipeline definition (default: built-in definition, "
             "anchored at this script)"
    )
    parser.add_argument(
        "--log-level", type=str, default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)"
    )
    parser.add_argument(
        "--dry-run", action="store_true",
        help="Validate the definition and print the plan without running it"
    )

    return parser.parse_args(argv)


def main(argv=None, allow_builtin: bool = True) -> int:
    """
    Main entry point.

    Args:
        argv: Command line arguments (default: sys.argv[1:])
        allow_builtin: Anchor the built-in definition at this file when
            --config is not given
    """
    args = parse_args(argv)
    setup_logging(args.log_level)
    logger = logging.getLogger(__name__)

    try:
        config = build_config(args.config, BUILTIN_DEFINITION if allow_builtin else None)
        logger.info("Configuration loaded and validated successfully")
        logger.info(f"Pipeline definition: {config.definition_path}")

        executor = PipelineExecutor(config)

        if args.dry_run:
            logger.info("Dry run mode - configuration is valid, exiting")
            for step in executor.plan():
                directory = f" cd {step['directory']}" if step["directory"] else ""
                commands = "; ".join(step["commands"])
                logger.info(f"  {step['state']:20s}:{directory} {commands}".rstrip())
            return 0

        final_context = executor.run()

        if final_context.is_successful:
            logger.info(f"✓ Pipeline completed successfully: {config.run_name}")
        else:
            logger.error(f"✗ Pipeline exited with status {final_context.exit_code}")
        return final_context.exit_code

    except KeyboardInterrupt:
        logger.error("Interrupted")
        return 130
    except PipelineError as e:
        logger.error(f"Fatal error: {e}")
        return e.exit_code
    except (ValueError, OSError, yaml.YAMLError) as e:
        logger.error(f"Invalid configuration: {e}")
        return 1


def cli():
    """Installed console script: the definition must be given with --config."""
    sys.exit(main(allow_builtin=False))


if __name__ == "__main__":
    sys.exit(main())
