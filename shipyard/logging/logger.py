# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Structured JSON logger for shipyard.

Every log entry is a single JSON line: timestamped, leveled, and tagged with
the source module. Both pipelines run unattended in CI most of the time, so the
output has to be machine-parseable. print() is not used anywhere.

How this works:
  - We use Python's standard `logging` module under the hood, but replace the
    default formatter with JsonFormatter, which serializes every log record
    into a single JSON line.
  - stdout always gets a handler; a file handler is attached when a log file
    is configured.
  - `get_logger` is the only way to create loggers. `configure_logging` lets
    the CLI apply --log-level and the configured log file to every shipyard
    logger, including the module loggers created at import time.

The JSON structure looks like:
  {"ts": "2026-...", "level": "INFO", "module": "shipyard.build.builder", "msg": "Stage started", ...}
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

ROOT_LOGGER_NAME = "shipyard"


class JsonFormatter(logging.Formatter):
    """
    Formats log records as single-line JSON objects.

    Each log entry contains four mandatory fields:
      ts: ISO 8601 UTC timestamp
      level: log level name
      module: the logger name (usually the Python module path)
      msg: the formatted message string

    If the log call includes `extra` keyword args, those get merged into the
    JSON object as additional context fields. This is how the pipelines attach
    structured data like build states, image references or tool diagnostics.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "ts": datetime.now(tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "module": record.name,
            "msg": record.getMessage(),
        }

        # Merge any extra fields the caller passed via the `extra` kwarg.
        # Internal LogRecord attributes are skipped.
        standard_attrs = {
            "name",
            "msg",
            "args",
            "created",
            "relativeCreated",
            "exc_info",
            "exc_text",
            "stack_info",
            "lineno",
            "funcName",
            "pathname",
            "filename",
            "module",
            "levelno",
            "levelname",
            "processName",
            "process",
            "threadName",
            "thread",
            "message",
            "msecs",
            "taskName",
        }
        for key, value in record.__dict__.items():
            if key not in standard_attrs and not key.startswith("_"):
                entry[key] = value

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _resolve_log_level(level_name: str) -> int:
    """Turn a level name string into the corresponding logging constant."""
    upper = level_name.upper()
    if upper not in _VALID_LOG_LEVELS:
        raise ValueError(
            f"Invalid log level '{level_name}'. Must be one of: {', '.join(sorted(_VALID_LOG_LEVELS))}"
        )
    return getattr(logging, upper)


# Process-wide defaults for loggers created after configure_logging ran.
# Handlers import their workflow modules lazily, so those loggers are created
# after the CLI has read --log-level and the config file.
_default_level = "INFO"
_default_log_file: Optional[Path] = None


def _attach_file_handler(logger: logging.Logger, log_file: Path, level: int) -> None:
    """Add a JSON file handler for `log_file` unless the logger already has one."""
    target = os.path.abspath(str(log_file))
    for handler in logger.handlers:
        if isinstance(handler, logging.FileHandler) and handler.baseFilename == target:
            handler.setLevel(level)
            return

    log_file.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(target, encoding="utf-8")
    file_handler.setLevel(level)
    file_handler.setFormatter(JsonFormatter())
    logger.addHandler(file_handler)


def get_logger(
    name: str,
    log_level: Optional[str] = None,
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """
    Create a structured JSON logger.

    This is the only sanctioned way to get a logger in shipyard. Every module
    calls this once at the top and uses the returned logger instance.

    Args:
        name: Logger name, typically __name__ of the calling module.
        log_level: One of DEBUG, INFO, WARNING, ERROR, CRITICAL. Defaults to
                   the level set by configure_logging (INFO until then).
        log_file: Optional path to a log file. If provided, logs go to both
                  stdout and the file. Defaults to the file set by
                  configure_logging.

    Returns:
        A configured logging.Logger that outputs structured JSON.
    """
    logger = logging.getLogger(name)
    level = _resolve_log_level(log_level or _default_level)
    if log_file is None:
        log_file = _default_log_file
    logger.setLevel(level)

    # Avoid stacking handlers if get_logger is called multiple times for the
    # same name (happens in tests and in every CLI command). A log file asked
    # for later still gets attached.
    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(level)
        if log_file is not None:
            _attach_file_handler(logger, log_file, level)
        return logger

    stdout_handler = logging.StreamHandler(stream=sys.stdout)
    stdout_handler.setLevel(level)
    stdout_handler.setFormatter(JsonFormatter())
    logger.addHandler(stdout_handler)

    if log_file is not None:
        _attach_file_handler(logger, log_file, level)

    # Output is handled here, never by the root logger.
    logger.propagate = False

    return logger


def configure_logging(log_level: str, log_file: Optional[Path] = None) -> None:
    """
    Apply a level and an optional log file to every shipyard logger.

    Module-level loggers are created at import time with the default level,
    before the CLI knows what the operator asked for. Existing loggers are
    retuned here; loggers created afterwards pick the settings up from
    get_logger's defaults.
    """
    global _default_level, _default_log_file

    level = _resolve_log_level(log_level)
    _default_level = log_level.upper()
    _default_log_file = log_file

    for name in list(logging.Logger.manager.loggerDict):
        if name != ROOT_LOGGER_NAME and not name.startswith(f"{ROOT_LOGGER_NAME}."):
            continue
        logger = logging.getLogger(name)
        # Only loggers built by get_logger carry handlers.
        if not logger.handlers:
            continue
        logger.setLevel(level)
        for handler in logger.handlers:
            handler.setLevel(level)
        if log_file is not None:
            _attach_file_handler(logger, log_file, level)
