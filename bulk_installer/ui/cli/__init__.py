"""CLI module for the Bulk Plugin Installer."""

from .commands import (
    build_engine,
    build_items,
    load_items,
    load_profile_items,
    run_backups_command,
    run_batches_command,
    run_cleanup_command,
    run_install_command,
    run_log_command,
    run_profiles_command,
    run_rollback_command,
)
from .formatters import JsonFormatter, TableFormatter, TextFormatter, get_formatter

__all__ = [
    # Formatters
    "TextFormatter",
    "JsonFormatter",
    "TableFormatter",
    "get_formatter",
    # Commands
    "build_engine",
    "build_items",
    "load_items",
    "load_profile_items",
    "run_install_command",
    "run_batches_command",
    "run_rollback_command",
    "run_cleanup_command",
    "run_backups_command",
    "run_log_command",
    "run_profiles_command",
]
