# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Subcommand handlers for the shipyard CLI.

Each function here corresponds to one CLI subcommand and returns an exit
code. Pipeline errors are caught here, logged together with the failing
tool's own diagnostics, and turned into the matching exit code. Nothing is
retried.

No print() calls. Everything goes through the structured logger.
"""

import argparse
import logging
from pathlib import Path
from typing import Optional

from shipyard.cli.exit_codes import (
    CONFIG_ERROR,
    RUNTIME_ERROR,
    SUCCESS,
    USER_ERROR,
    VALIDATION_ERROR,
)
from shipyard.config.exceptions import ConfigError
from shipyard.config.loader import load_config
from shipyard.config.schema import BuildConfig, ShipyardConfig
from shipyard.exceptions import (
    ConfigurationError,
    ImageVerificationError,
    PipelineError,
    UnfixableLintViolation,
    WorkspaceNotFoundError,
)
from shipyard.logging.logger import configure_logging, get_logger
from shipyard.runtime.environment import check_minimum_python


def _load_and_configure(
    args: argparse.Namespace,
    command_name: str,
) -> tuple[int, Optional[ShipyardConfig], logging.Logger]:
    """
    The shared setup every command needs: load config, set up logging,
    check the interpreter.

    --log-level beats the config file, which beats the INFO default.
    Returns (exit_code, config, logger). If exit_code is not SUCCESS the
    caller returns it immediately.
    """
    logger_name = f"shipyard.cli.{command_name}"
    logger = get_logger(logger_name, log_level=args.log_level or "INFO")

    config = None
    if args.config is not None:
        try:
            config = load_config(Path(args.config))
        except ConfigError as err:
            logger.error(
                "Configuration error",
                extra={"command": command_name, "error": str(err)},
            )
            return CONFIG_ERROR, None, logger

    level = args.log_level or (config.global_config.log_level if config else "INFO")
    log_file = None
    if config is not None and config.global_config.log_file:
        log_file = Path(config.global_config.log_file)

    configure_logging(level, log_file)
    logger = get_logger(logger_name)

    try:
        check_minimum_python()
    except RuntimeError as err:
        logger.error("Unsupported environment", extra={"error": str(err)})
        return RUNTIME_ERROR, None, logger

    if config is None:
        logger.debug(
            "No config provided, running with defaults",
            extra={"command": command_name},
        )

    return SUCCESS, config, logger


def _exit_code_for(err: PipelineError) -> int:
    if isinstance(err, ConfigurationError):
        return CONFIG_ERROR
    if isinstance(err, WorkspaceNotFoundError):
        return USER_ERROR
    if isinstance(err, (UnfixableLintViolation, ImageVerificationError)):
        return VALIDATION_ERROR
    return RUNTIME_ERROR


def _report_failure(
    logger: logging.Logger, command_name: str, err: PipelineError
) -> int:
    logger.error(
        "Command failed",
        extra={
            "command": command_name,
            "error_type": type(err).__name__,
            "error": str(err),
            "diagnostics": err.diagnostics,
        },
    )
    return _exit_code_for(err)


def _build_settings(config: Optional[ShipyardConfig]) -> BuildConfig:
    return config.build if config is not None else BuildConfig()


def handle_build(args: argparse.Namespace) -> int:
    """Compile the workspace and assemble the release image."""
    exit_code, config, logger = _load_and_configure(args, "build")
    if exit_code != SUCCESS:
        return exit_code

    from shipyard.build.builder import ReleaseBuilder
    from shipyard.build.context import create_build_context, validate_image_repository

    settings = _build_settings(config)
    builder_image = args.builder_image if args.builder_image is not None else settings.builder_image

    try:
        context = create_build_context(Path(args.context), builder_image)
        repository = settings.image_repository
        if args.image is not None:
            repository = validate_image_repository(args.image)

        builder = ReleaseBuilder(
            context,
            image_repository=repository,
            image_tag=args.tag or settings.image_tag,
        )

        if args.dry_run:
            plan = builder.plan()
            logger.info(
                "Dry run: build plan",
                extra={
                    "build_id": plan.build_id,
                    "version": plan.version.value,
                    "builder_image": plan.builder_image,
                    "image": plan.image_reference,
                    "compile_recipe": plan.compile_recipe,
                    "runtime_recipe": plan.runtime_recipe,
                },
            )
            return SUCCESS

        image = builder.build()
        logger.info(
            "Release image ready",
            extra={
                "image": image.reference,
                "version": image.version.value,
                "user": image.user,
                "ports": list(image.exposed_ports),
                "command": list(image.command),
            },
        )
        return SUCCESS

    except PipelineError as err:
        return _report_failure(logger, "build", err)
    except Exception as err:
        logger.error("Build failed", extra={"error": str(err)}, exc_info=True)
        return RUNTIME_ERROR


def handle_dockerfile(args: argparse.Namespace) -> int:
    """Write the full multi-stage build recipe as a standalone Dockerfile."""
    exit_code, config, logger = _load_and_configure(args, "dockerfile")
    if exit_code != SUCCESS:
        return exit_code

    from shipyard.build.context import validate_image_reference
    from shipyard.build.dockerfile import render_dockerfile
    from shipyard.build.recipe import DEFAULT_RECIPE
    from shipyard.utils.filesystem import atomic_write

    settings = _build_settings(config)

    try:
        builder_image = settings.builder_image
        if args.builder_image is not None:
            builder_image = validate_image_reference(args.builder_image)

        content = render_dockerfile(DEFAULT_RECIPE, builder_image)
        output = Path(args.output)

        if args.dry_run:
            logger.info(
                "Dry run: would write Dockerfile",
                extra={"output": str(output), "dockerfile": content},
            )
            return SUCCESS

        atomic_write(output, content)
        logger.info(
            "Dockerfile written",
            extra={"output": str(output), "builder_image": builder_image},
        )
        return SUCCESS

    except PipelineError as err:
        return _report_failure(logger, "dockerfile", err)
    except OSError as err:
        logger.error("Cannot write Dockerfile", extra={"error": str(err)})
        return RUNTIME_ERROR


def handle_lint(args: argparse.Namespace) -> int:
    """Auto-fix lint violations across the workspace, then format it."""
    exit_code, _config, logger = _load_and_configure(args, "lint")
    if exit_code != SUCCESS:
        return exit_code

    from shipyard.lint.remediator import LintRemediator
    from shipyard.lint.workspace import resolve_workspace_root

    try:
        explicit = Path(args.workspace) if args.workspace is not None else None
        workspace = resolve_workspace_root(Path.cwd(), explicit=explicit)
        remediator = LintRemediator(workspace)

        if args.dry_run:
            logger.info(
                "Dry run: would run",
                extra={
                    "workspace": str(workspace),
                    "fix_command": remediator.analyzer_command(),
                    "format_command": remediator.formatter_command(),
                },
            )
            return SUCCESS

        report = remediator.run()
        logger.info(
            "Workspace is clean" if report.is_clean else "Workspace remediated",
            extra={
                "workspace": str(report.workspace),
                "fixed_files": list(report.fixed_files),
                "formatted_files": list(report.formatted_files),
            },
        )
        return SUCCESS

    except PipelineError as err:
        return _report_failure(logger, "lint", err)
    except Exception as err:
        logger.error("Lint failed", extra={"error": str(err)}, exc_info=True)
        return RUNTIME_ERROR


def handle_rules(args: argparse.Namespace) -> int:
    """List the compiled-in lint rule table."""
    exit_code, _config, logger = _load_and_configure(args, "rules")
    if exit_code != SUCCESS:
        return exit_code

    from shipyard.lint.rules import DEFAULT_RULE_SET

    for position, rule in enumerate(DEFAULT_RULE_SET, start=1):
        logger.info(
            "Rule",
            extra={
                "position": position,
                "rule": rule.name,
                "level": rule.level.value,
                "description": rule.description,
            },
        )
    logger.info(
        "Rule table",
        extra={
            "denied": len(DEFAULT_RULE_SET.denied),
            "allowed": len(DEFAULT_RULE_SET.allowed),
            "flags": DEFAULT_RULE_SET.analyzer_flags(),
        },
    )
    return SUCCESS


def handle_info(args: argparse.Namespace) -> int:
    """Report the environment and which external tools are available."""
    exit_code, config, logger = _load_and_configure(args, "info")
    if exit_code != SUCCESS:
        return exit_code

    from shipyard.runtime.environment import check_tools, get_system_info

    info = get_system_info()
    logger.info(
        "System info",
        extra={
            "python_version": info.python_version,
            "platform": info.platform,
            "architecture": info.architecture,
            "hostname": info.hostname,
        },
    )

    for tool in check_tools():
        log = logger.info if tool.available else logger.warning
        log(
            "Tool available" if tool.available else "Tool missing",
            extra={"tool": tool.name, "path": tool.path, "needed_by": list(tool.needed_by)},
        )

    if config is not None:
        logger.info(
            "Config loaded",
            extra={
                "project": config.global_config.project_name,
                "builder_image": config.build.builder_image,
                "image_repository": config.build.image_repository,
            },
        )
    return SUCCESS
