# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
CLI entrypoint for shipyard.

This is the single root command. Every operation is a subcommand of
`shipyard`. No separate executables, no interactive prompts.

The global options (--config, --log-level, --dry-run) are inherited by every
subcommand through argparse's parent parser mechanism.

Usage:
    shipyard build [--context DIR] [--builder-image IMAGE] [--image REPO] [--tag TAG]
    shipyard dockerfile [--output PATH]
    shipyard lint [--workspace DIR]
    shipyard rules
    shipyard info
"""

import argparse
import sys

from shipyard.cli.commands import (
    handle_build,
    handle_dockerfile,
    handle_info,
    handle_lint,
    handle_rules,
)
from shipyard.cli.exit_codes import USER_ERROR


def _build_global_parser() -> argparse.ArgumentParser:
    """
    Build the parent parser with global options.

    These options get inherited by every subcommand. We use a separate parent
    parser (with add_help=False) so that help text doesn't collide between the
    parent and the subcommand parsers.
    """
    parent = argparse.ArgumentParser(add_help=False)
    parent.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to YAML configuration file.",
    )
    parent.add_argument(
        "--log-level",
        type=str,
        default=None,
        dest="log_level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set the logging verbosity level (overrides the config file).",
    )
    parent.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        dest="dry_run",
        help="Show what would run without invoking docker or cargo.",
    )
    return parent


def _register_subcommands(
    subparsers: argparse._SubParsersAction,  # type: ignore[type-arg]
    parent: argparse.ArgumentParser,
) -> None:
    """
    Register all subcommands with their handler functions.

    Each subcommand gets the global options from the parent parser and sets
    its handler function via set_defaults(func=...).
    """
    commands = [
        ("build", "Build the minimal runtime release image.", handle_build),
        ("dockerfile", "Write the multi-stage build recipe as a Dockerfile.", handle_dockerfile),
        ("lint", "Auto-fix lint violations, then format the workspace.", handle_lint),
        ("rules", "List the lint rule table.", handle_rules),
        ("info", "Display environment and tool availability.", handle_info),
    ]

    for name, help_text, handler in commands:
        parser = subparsers.add_parser(name, parents=[parent], help=help_text)
        parser.set_defaults(func=handler)

    build_parser = subparsers.choices["build"]
    build_parser.add_argument(
        "--context",
        type=str,
        default=".",
        help="Source tree to build (default: current directory).",
    )
    build_parser.add_argument(
        "--builder-image",
        type=str,
        default=None,
        dest="builder_image",
        help="Override the toolchain image used by the compile stage.",
    )
    build_parser.add_argument(
        "--image",
        type=str,
        default=None,
        help="Repository name for the finished image.",
    )
    build_parser.add_argument(
        "--tag",
        type=str,
        default=None,
        help="Tag for the finished image (default: the resolved version).",
    )

    dockerfile_parser = subparsers.choices["dockerfile"]
    dockerfile_parser.add_argument(
        "--builder-image",
        type=str,
        default=None,
        dest="builder_image",
        help="Default builder image baked into the Dockerfile.",
    )
    dockerfile_parser.add_argument(
        "--output",
        type=str,
        default="Dockerfile",
        help="Where to write the Dockerfile (default: ./Dockerfile).",
    )

    lint_parser = subparsers.choices["lint"]
    lint_parser.add_argument(
        "--workspace",
        type=str,
        default=None,
        help=(
            "Cargo workspace root. Without it the workspace is found by walking up "
            "from the current directory, which must then be inside the workspace."
        ),
    )


def main() -> None:
    """
    Main CLI entrypoint. This is what pyproject.toml's [project.scripts] points to.

    If no subcommand is given, we show help and exit with USER_ERROR.
    """
    parent = _build_global_parser()

    root_parser = argparse.ArgumentParser(
        prog="shipyard",
        description="shipyard: release image builder and lint remediation for a cargo workspace.",
        parents=[parent],
    )
    subparsers = root_parser.add_subparsers(dest="command")
    _register_subcommands(subparsers, parent)

    args = root_parser.parse_args()

    if not hasattr(args, "func") or args.func is None:
        root_parser.print_help()
        sys.exit(USER_ERROR)

    exit_code = args.func(args)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
