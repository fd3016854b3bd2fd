"""
fast-deploy CLI entry point.

Usage:
    fast-deploy init                    Write a template configuration
    fast-deploy --config                Deploy using ./fast-deploy.config.yaml
    fast-deploy --config <path>         Deploy using a custom configuration
    fast-deploy --version               Show version
"""

import argparse
import sys
from pathlib import Path
from typing import Optional, Sequence

from fastdeploy import __version__
from fastdeploy.config.loader import (
    DEFAULT_CONFIG_NAME,
    ConfigError,
    create_template_config,
    load_targets,
    resolve_config_path,
)
from fastdeploy.deploy.batch import BatchDispatcher
from fastdeploy.deploy.orchestrator import Deployer
from fastdeploy.telemetry.logger import setup_logging
from fastdeploy.utils.ux import print_error, print_success, print_warning

_USE_DEFAULT_CONFIG = "__default__"


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="fast-deploy",
        description="Deploy static build artifacts to remote hosts over SSH",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  fast-deploy init              Create fast-deploy.config.yaml
  fast-deploy -c                Deploy with fast-deploy.config.yaml
  fast-deploy --config prod.yaml --workers 4
        """,
    )

    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "-c",
        "--config",
        nargs="?",
        const=_USE_DEFAULT_CONFIG,
        default=None,
        metavar="PATH",
        help=f"Deploy using a configuration file (default: {DEFAULT_CONFIG_NAME})",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Log level (targets with debug: true always log at DEBUG)",
    )

    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit logs as JSON",
    )

    parser.add_argument(
        "--workers",
        type=int,
        default=1,
        metavar="N",
        help="Deploy up to N targets at once (default: 1, sequential)",
    )

    parser.add_argument(
        "--timeout",
        type=float,
        default=30.0,
        metavar="SECONDS",
        help="SSH connection timeout",
    )

    parser.add_argument(
        "--strict-exit",
        action="store_true",
        help="Exit with status 1 if any target fails",
    )

    parser.add_argument(
        "command",
        nargs="?",
        choices=["init"],
        help="init: write a template configuration file",
    )

    return parser


def cmd_init(cwd: Optional[Path] = None) -> int:
    """Write a template configuration, never overwriting an existing one."""
    path, existed = create_template_config(cwd)
    if existed:
        print_warning(f"{DEFAULT_CONFIG_NAME} already exists")
    print_success(f"Created {path.name}")
    return 0


def cmd_deploy(
    config: str,
    workers: int = 1,
    timeout: float = 30.0,
    strict_exit: bool = False,
) -> int:
    """Deploy every target in a configuration file."""
    config_path = resolve_config_path(None if config == _USE_DEFAULT_CONFIG else Path(config))
    try:
        targets = load_targets(config_path)
    except ConfigError as e:
        print_error(str(e))
        return 1

    dispatcher = BatchDispatcher(Deployer(timeout=timeout), max_workers=workers)

    print_success("Deploy started!")
    print()
    result = dispatcher.run_all(targets)
    for error in result:
        if error:
            print_error(str(error))
            print()
    print_success("Deploy finished!")

    if strict_exit and not result.ok:
        return 1
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.workers < 1:
        parser.error("--workers must be at least 1")

    setup_logging(args.log_level, json_format=args.json_logs)

    if args.command == "init":
        return cmd_init()

    if args.config is not None:
        return cmd_deploy(
            args.config,
            workers=args.workers,
            timeout=args.timeout,
            strict_exit=args.strict_exit,
        )

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
