#!/usr/bin/env python3
"""Bulk Plugin Installer - Batch install, update and roll back plugins.

Entry point for the command-line interface.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from bulk_installer.core.config import Config, load_config, save_config, validate_config
from bulk_installer.core.logging_config import setup_logging
from bulk_installer.ui.cli.commands import (
    run_backups_command,
    run_batches_command,
    run_cleanup_command,
    run_install_command,
    run_log_command,
    run_profiles_command,
    run_rollback_command,
)


def create_argument_parser() -> argparse.ArgumentParser:
    """Create the command-line argument parser."""
    parser = argparse.ArgumentParser(
        prog="bulkpi",
        description="Bulk install and update plugins with batch rollback",
        epilog="For more information, see the documentation.",
    )

    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 0.1.0",
    )

    parser.add_argument(
        "--config",
        type=Path,
        help="Path to configuration file",
    )

    parser.add_argument(
        "--verbose", "-v",
        action="count",
        default=0,
        help="Increase verbosity (use -vv for debug)",
    )

    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress console logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Install command
    install_parser = subparsers.add_parser("install", help="Install or update plugins")
    install_parser.add_argument(
        "items_file",
        type=Path,
        nargs="?",
        help="JSON file listing the plugins",
    )
    install_parser.add_argument(
        "--profile",
        help="Install the plugins saved in a profile instead of an items file",
    )
    install_parser.add_argument(
        "--source-dir",
        type=Path,
        help="Directory holding <slug>.zip archives for --profile (default: current directory)",
    )
    install_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Simulate installation without making changes",
    )
    install_parser.add_argument(
        "--yes", "-y",
        action="store_true",
        help="Skip confirmation prompt",
    )
    install_parser.add_argument(
        "--json",
        action="store_true",
        help="Output results as JSON",
    )

    # Batch commands
    batches_parser = subparsers.add_parser("batches", help="List batches that can be rolled back")
    batches_parser.add_argument("--json", action="store_true", help="Output as JSON")

    rollback_parser = subparsers.add_parser("rollback", help="Roll back a batch")
    rollback_parser.add_argument("batch_id", help="Batch ID to roll back")
    rollback_parser.add_argument(
        "--yes", "-y",
        action="store_true",
        help="Skip confirmation prompt",
    )
    rollback_parser.add_argument("--json", action="store_true", help="Output as JSON")

    subparsers.add_parser("cleanup", help="Remove expired batches and their backups")

    backups_parser = subparsers.add_parser("backups", help="List backups kept on disk")
    backups_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # Log command
    log_parser = subparsers.add_parser("log", help="Show recent activity")
    log_parser.add_argument("--limit", type=int, default=50, help="Entries to show")
    log_parser.add_argument("--offset", type=int, default=0, help="Entries to skip")
    log_parser.add_argument("--clear", action="store_true", help="Delete every log entry")
    log_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # Profiles command
    profiles_parser = subparsers.add_parser("profiles", help="Manage saved plugin profiles")
    profile_commands = profiles_parser.add_subparsers(dest="profile_command")

    profile_list = profile_commands.add_parser("list", help="List saved profiles")
    profile_list.add_argument("--json", action="store_true", help="Output as JSON")

    profile_save = profile_commands.add_parser("save", help="Save an items file as a profile")
    profile_save.add_argument("name", help="Profile name")
    profile_save.add_argument("items_file", type=Path, help="JSON file listing the plugins")

    profile_delete = profile_commands.add_parser("delete", help="Delete a profile")
    profile_delete.add_argument("profile_id", type=int, help="Profile ID")

    profile_export = profile_commands.add_parser("export", help="Export a profile as JSON")
    profile_export.add_argument("profile_id", type=int, help="Profile ID")
    profile_export.add_argument("--output", "-o", type=Path, help="Write to a file instead of stdout")

    profile_import = profile_commands.add_parser("import", help="Import a profile from JSON")
    profile_import.add_argument("file", type=Path, help="Exported profile JSON")

    # Config command
    config_parser = subparsers.add_parser("config", help="Manage configuration")
    config_parser.add_argument(
        "--init",
        action="store_true",
        help="Create default configuration file",
    )
    config_parser.add_argument(
        "--show",
        action="store_true",
        help="Show current configuration",
    )

    return parser


def get_log_level(verbose: int) -> int:
    """Get logging level from verbosity count."""
    if verbose >= 2:
        return logging.DEBUG
    elif verbose >= 1:
        return logging.INFO
    return logging.WARNING


def run_config(args: argparse.Namespace, config: Config, config_path: Path | None = None) -> int:
    """Execute the config command."""
    if args.init:
        save_config(config, config_path)
        print(f"Configuration saved to {config_path or config.config_dir / 'config.json'}")
        return 0

    if args.show:
        print(json.dumps(config.to_dict(), indent=2))
        problems = validate_config(config)
        for problem in problems:
            print(f"Warning: {problem}")
        return 0 if not problems else 1

    print("Use --init to create config or --show to display current config")
    return 1


COMMANDS = {
    "install": run_install_command,
    "batches": run_batches_command,
    "rollback": run_rollback_command,
    "cleanup": run_cleanup_command,
    "backups": run_backups_command,
    "log": run_log_command,
    "profiles": run_profiles_command,
}


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    config = load_config(args.config) if args.config else load_config()

    setup_logging(
        config.logs_dir,
        log_level=get_log_level(args.verbose),
        console_output=not args.quiet,
    )

    config.ensure_directories()

    if args.command == "config":
        return run_config(args, config, args.config)
    elif args.command in COMMANDS:
        return COMMANDS[args.command](args, config)
    elif args.command is None:
        parser.print_help()
        return 0
    else:
        print(f"Unknown command '{args.command}'")
        return 1


if __name__ == "__main__":
    sys.exit(main())
