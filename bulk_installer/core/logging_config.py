"""Logging configuration for the Bulk Plugin Installer.

Two rotating log files are written under the logs directory:

    main.log     everything logged below the ``bulk_installer`` logger
    actions.log  one line per processed plugin and per batch rollback

The actions logger does not propagate, so per-item outcomes are kept out
of main.log and off the console.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

DETAILED_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(filename)s:%(lineno)d | %(message)s"
SIMPLE_FORMAT = "%(levelname)s: %(message)s"
ACTION_FORMAT = "%(asctime)s | %(levelname)-8s | ACTION | %(message)s"

DEFAULT_LOG_LEVEL = logging.INFO
DEFAULT_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
DEFAULT_BACKUP_COUNT = 5

ROOT_LOGGER_NAME = "bulk_installer"
ACTIONS_LOGGER_NAME = f"{ROOT_LOGGER_NAME}.activity"

# Outcome statuses and the level their action line is written at
_STATUS_LEVELS = {
    "success": logging.INFO,
    "pending": logging.INFO,
    "skipped": logging.INFO,
    "incompatible": logging.WARNING,
    "partial": logging.WARNING,
    "failed": logging.ERROR,
}


def _rotating_handler(log_path: Path, format_string: str, log_level: int) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        log_path,
        maxBytes=DEFAULT_MAX_BYTES,
        backupCount=DEFAULT_BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setLevel(log_level)
    handler.setFormatter(logging.Formatter(format_string))
    return handler


def _reset_handlers(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


def setup_logging(
    logs_dir: Path,
    log_level: int = DEFAULT_LOG_LEVEL,
    console_output: bool = True,
) -> None:
    """Initialize the logging system.

    Safe to call more than once; handlers from an earlier call are closed
    and replaced.

    Args:
        logs_dir: Directory for main.log and actions.log
        log_level: Logging level (default: INFO)
        console_output: Also log to stderr, which keeps --json output on
            stdout parseable
    """
    logs_dir.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(log_level)
    _reset_handlers(root_logger)
    root_logger.addHandler(_rotating_handler(logs_dir / "main.log", DETAILED_FORMAT, log_level))

    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(log_level)
        console_handler.setFormatter(logging.Formatter(SIMPLE_FORMAT))
        root_logger.addHandler(console_handler)

    # Item outcomes are always recorded, whatever the console verbosity
    actions_logger = logging.getLogger(ACTIONS_LOGGER_NAME)
    actions_logger.setLevel(logging.INFO)
    actions_logger.propagate = False
    _reset_handlers(actions_logger)
    actions_logger.addHandler(
        _rotating_handler(logs_dir / "actions.log", ACTION_FORMAT, logging.INFO)
    )


def get_logger(name: str = "main") -> logging.Logger:
    """Get a logger below the package logger.

    Args:
        name: "main" for the package logger, "activity" for the actions
            log, or a dotted child name such as "core.store"
    """
    if name == "main":
        return logging.getLogger(ROOT_LOGGER_NAME)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def format_action(
    action: str,
    target: str,
    status: str,
    batch_id: str = "",
    from_version: str = "",
    to_version: str = "",
    is_dry_run: bool = False,
    message: str = "",
) -> str:
    """Build one actions.log line.

    Example:
        UPDATE | akismet | FAILED | batch=bpi_1 | 5.2 -> 5.3 | Download failed.
    """
    parts = [action.upper(), target or "-", status.upper()]
    if batch_id:
        parts.append(f"batch={batch_id}")
    if from_version or to_version:
        parts.append(f"{from_version or '-'} -> {to_version or '-'}")
    if is_dry_run:
        parts.append("dry-run")
    if message:
        parts.append(message)
    return " | ".join(parts)


def log_action(
    action: str,
    target: str,
    status: str,
    batch_id: str = "",
    from_version: str = "",
    to_version: str = "",
    is_dry_run: bool = False,
    message: str = "",
) -> None:
    """Write one processed plugin or batch rollback to actions.log.

    Args:
        action: install, update or batch_rollback
        target: Plugin slug, or the batch id for batch-level records
        status: Outcome status (success, failed, incompatible, partial, ...)
        batch_id: Batch the record belongs to
        from_version: Version before the operation
        to_version: Version after the operation
        is_dry_run: Whether the operation was simulated
        message: Human-readable outcome
    """
    level = _STATUS_LEVELS.get(status.lower(), logging.WARNING)
    get_logger("activity").log(
        level,
        format_action(
            action,
            target,
            status,
            batch_id=batch_id,
            from_version=from_version,
            to_version=to_version,
            is_dry_run=is_dry_run,
            message=message,
        ),
    )
