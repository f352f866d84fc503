"""CLI command implementations.

This module provides the command handlers for all CLI commands.
"""

import argparse
import getpass
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from bulk_installer.actions.batch import EXIT_FAILURE, BatchProcessor
from bulk_installer.actions.installer import ActivationRegistry, DirectoryInstaller
from bulk_installer.actions.processor import ItemProcessor
from bulk_installer.analysis.compatibility import CompatibilityChecker
from bulk_installer.core.activity_log import ActivityLog
from bulk_installer.core.backup import BackupStore, create_backup_store
from bulk_installer.core.config import Config
from bulk_installer.core.errors import BulkInstallerError, ProfileError
from bulk_installer.core.manifest import BatchManifestStore, create_manifest_store
from bulk_installer.core.models import ItemAction, PackageItem
from bulk_installer.core.notifications import NotificationManager
from bulk_installer.core.profiles import Profile, ProfileManager

from .formatters import get_formatter

logger = logging.getLogger("bulk_installer.ui.cli.commands")


@dataclass
class Engine:
    """Wired-up collaborators shared by the CLI commands."""

    config: Config
    user_id: str
    backup_store: BackupStore
    activity_log: ActivityLog
    notifier: NotificationManager
    manifest_store: BatchManifestStore
    batch_processor: BatchProcessor


def current_user() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return "unknown"


def build_engine(config: Config, user_id: str | None = None, progress_callback=None) -> Engine:
    """Create the batch processor and its collaborators from configuration."""
    user_id = user_id or current_user()
    backup_store = create_backup_store(config)
    activity_log = ActivityLog(config)
    notifier = NotificationManager(config)
    manifest_store = create_manifest_store(
        config,
        backup_store=backup_store,
        activity_log=activity_log,
        notifier=notifier,
    )
    processor = ItemProcessor(
        DirectoryInstaller(config),
        ActivationRegistry(config),
        config=config,
        backup_store=backup_store,
    )
    batch_processor = BatchProcessor(
        processor,
        activity_log=activity_log,
        config=config,
        manifest_store=manifest_store,
        notifier=notifier,
        user_id=user_id,
        progress_callback=progress_callback,
    )
    return Engine(
        config, user_id, backup_store, activity_log, notifier, manifest_store, batch_processor
    )


def build_items(entries: list[Any], base_dir: Path, config: Config) -> list[PackageItem]:
    """Turn raw plugin entries into package items.

    Relative source paths resolve against base_dir. Entries without an
    explicit action become updates when the plugin is already installed.
    A "version" key is accepted as the target version, which is how
    profiles store it.

    Raises:
        ValueError: an entry is not an object or is not a valid item
    """
    items = []
    for raw in entries:
        if not isinstance(raw, dict):
            raise ValueError(f"Invalid plugin entry: {raw!r}")
        raw = dict(raw)
        source = raw.get("source_path")
        if source and not Path(source).is_absolute():
            raw["source_path"] = str(base_dir / source)
        if "target_version" not in raw and raw.get("version"):
            raw["target_version"] = raw["version"]
        if "action" not in raw and raw.get("slug"):
            installed = (config.plugins_dir / raw["slug"]).is_dir()
            raw["action"] = ItemAction.UPDATE.value if installed else ItemAction.INSTALL.value
        items.append(PackageItem.from_dict(raw))
    return items


def load_items(path: Path, config: Config) -> list[PackageItem]:
    """Read package items from a JSON file.

    The file holds either a list of items or an object with a "plugins"
    list. Relative source paths resolve against the file's directory.

    Raises:
        FileNotFoundError: path does not exist
        ValueError: the file is not a valid item list
    """
    with open(path, encoding="utf-8") as f:
        data: Any = json.load(f)

    if isinstance(data, dict):
        data = data.get("plugins", [])
    if not isinstance(data, list):
        raise ValueError("Items file must contain a list of plugins")

    return build_items(data, path.parent, config)


def load_profile_items(profile: Profile, source_dir: Path, config: Config) -> list[PackageItem]:
    """Package items for every plugin saved in a profile.

    Plugins without a source_path are looked up as ``<slug>.zip`` in
    source_dir.
    """
    entries = []
    for plugin in profile.plugins:
        plugin = dict(plugin)
        if not plugin.get("source_path") and plugin.get("slug"):
            plugin["source_path"] = f"{plugin['slug']}.zip"
        entries.append(plugin)
    return build_items(entries, source_dir, config)


def _resolve_install_items(args: argparse.Namespace, config: Config) -> list[PackageItem] | None:
    """Items for the install command, or None after printing an error."""
    profile_name = getattr(args, "profile", None)

    if profile_name:
        profile = ProfileManager(config).find_by_name(profile_name)
        if profile is None:
            print(f"Error: Profile '{profile_name}' not found.")
            return None
        if not profile.plugins:
            print(f"Error: Profile '{profile_name}' contains no plugins.")
            return None
        source_dir = Path(getattr(args, "source_dir", None) or Path.cwd())
        try:
            items = load_profile_items(profile, source_dir, config)
        except ValueError as e:
            print(f"Error: Invalid plugin in profile '{profile_name}': {e}")
            return None
        if not getattr(args, "json", False):
            print(f'Loaded {len(items)} plugin(s) from profile "{profile_name}".')
        return items

    if not args.items_file:
        print("Error: Give an items file or --profile NAME.")
        return None

    try:
        return load_items(Path(args.items_file), config)
    except FileNotFoundError:
        print(f"Error: Items file not found: {args.items_file}")
    except (ValueError, json.JSONDecodeError) as e:
        print(f"Error: Could not read items file: {e}")
    return None


def run_install_command(args: argparse.Namespace, config: Config) -> int:
    """Execute the install command.

    Args:
        args: Command-line arguments
        config: Configuration object

    Returns:
        Exit code (0 all succeeded, 1 partial, 2 nothing succeeded)
    """
    as_json = getattr(args, "json", False)
    verbose = getattr(args, "verbose", 0) > 0
    formatter = get_formatter(as_json, verbose)

    items = _resolve_install_items(args, config)
    if items is None:
        return EXIT_FAILURE

    if not items:
        print("Error: No valid plugins to process.")
        return EXIT_FAILURE

    items = CompatibilityChecker(config).check_all(items)

    if not args.yes and not args.dry_run:
        print(formatter.format_preview(items))
        if not as_json:
            print(f"\nAbout to process {len(items)} plugin(s).")
            print("Use --yes to skip this prompt.")
        return 0

    if not as_json:
        print(formatter.format_preview(items))
        if args.dry_run:
            print("\nRunning in dry-run mode. No changes will be made.")
        print()

    def report_progress(message: str, percent: float) -> None:
        print(f"  [{percent:3.0f}%] {message}")

    engine = build_engine(config, progress_callback=report_progress if verbose and not as_json else None)
    try:
        run = engine.batch_processor.process_batch(items, dry_run=args.dry_run)
    except BulkInstallerError as e:
        print(f"Error: {e.message}")
        return EXIT_FAILURE

    print(formatter.format_batch_run(run))

    if not as_json:
        for notice in engine.notifier.pop_notices(engine.user_id):
            print(formatter.format_notice(notice))

    return run.exit_code


def run_batches_command(args: argparse.Namespace, config: Config) -> int:
    """Execute the batches command (list batches that can be rolled back)."""
    engine = build_engine(config)
    manifests = engine.manifest_store.get_active_batches()
    formatter = get_formatter(getattr(args, "json", False))
    print(formatter.format_batch_list(manifests))
    return 0


def run_rollback_command(args: argparse.Namespace, config: Config) -> int:
    """Execute the rollback command.

    Args:
        args: Command-line arguments
        config: Configuration object

    Returns:
        Exit code (0 on a clean rollback, 1 otherwise)
    """
    engine = build_engine(config)
    manifest = engine.manifest_store.get_batch_manifest(args.batch_id)
    if manifest is None:
        print(f"Batch not found or expired: {args.batch_id}")
        return 1

    if not args.yes:
        print(f"\nBatch: {manifest.batch_id}")
        print(f"Created: {manifest.created_at} by {manifest.user_id or 'unknown'}")
        print(f"Plugins to roll back: {len(manifest.plugins)}")
        for entry in manifest.plugins:
            print(f"  - {entry.action}: {entry.slug} [{entry.status}]")

        response = input("\nProceed with rollback? [y/N] ").strip().lower()
        if response != "y":
            print("Cancelled.")
            return 0

    result = engine.manifest_store.rollback_batch(args.batch_id)

    as_json = getattr(args, "json", False)
    print(get_formatter(as_json).format_rollback_result(result))

    if not as_json:
        if result.success:
            print("\nBatch rollback complete.")
        else:
            print("\nBatch rollback had failures.")

    return 0 if result.success else 1


def run_cleanup_command(args: argparse.Namespace, config: Config) -> int:
    """Execute the cleanup command (expire old batches and their backups)."""
    engine = build_engine(config)
    removed = engine.manifest_store.cleanup_expired()
    print(f"Removed {removed} expired batch(es).")
    return 0


def run_backups_command(args: argparse.Namespace, config: Config) -> int:
    """Execute the backups command (list backups kept on disk)."""
    backups = create_backup_store(config).list_backups()
    formatter = get_formatter(getattr(args, "json", False))
    print(formatter.format_backups(backups))
    return 0


def run_log_command(args: argparse.Namespace, config: Config) -> int:
    """Execute the log command (show or clear recent activity)."""
    activity_log = ActivityLog(config)

    if getattr(args, "clear", False):
        removed = activity_log.clear()
        print(f"Cleared {removed} log entries.")
        return 0

    entries = activity_log.query(limit=args.limit, offset=args.offset)
    formatter = get_formatter(getattr(args, "json", False))
    print(formatter.format_log(entries, total=activity_log.count(), offset=args.offset))
    return 0


def run_profiles_command(args: argparse.Namespace, config: Config) -> int:
    """Execute the profiles command.

    Subcommands: list, save NAME ITEMS_FILE, delete ID, export ID, import FILE.

    Returns:
        Exit code (0 on success, 1 on a missing or invalid profile)
    """
    profiles = ProfileManager(config)
    action = getattr(args, "profile_command", None) or "list"

    if action == "list":
        formatter = get_formatter(getattr(args, "json", False))
        print(formatter.format_profiles(profiles.get_all_profiles()))
        return 0

    try:
        if action == "save":
            with open(args.items_file, encoding="utf-8") as f:
                data = json.load(f)
            if isinstance(data, dict):
                data = data.get("plugins", [])
            profile_id = profiles.save_profile(args.name, data)
            print(f"Saved profile '{args.name}' as #{profile_id}.")

        elif action == "delete":
            if not profiles.delete_profile(args.profile_id):
                print(f"Profile #{args.profile_id} not found.")
                return 1
            print(f"Deleted profile #{args.profile_id}.")

        elif action == "export":
            exported = profiles.export_profile(args.profile_id)
            if args.output:
                Path(args.output).write_text(exported + "\n", encoding="utf-8")
                print(f"Exported profile #{args.profile_id} to {args.output}")
            else:
                print(exported)

        elif action == "import":
            profile_id = profiles.import_profile(Path(args.file).read_text(encoding="utf-8"))
            print(f"Imported profile as #{profile_id}.")

    except ProfileError as e:
        print(f"Error: {e.message}")
        return 1
    except (OSError, json.JSONDecodeError) as e:
        print(f"Error: {e}")
        return 1

    return 0
