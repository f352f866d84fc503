"""Item Processor - Installs, updates and activates a single package.

Updates are protected by a backup of the installed directory: if the
installer fails the backup is restored. Failed new installs have any
partially written directory removed.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from bulk_installer.actions.installer import Activation, Installer
from bulk_installer.core.backup import BackupStore
from bulk_installer.core.config import Config, get_default_config
from bulk_installer.core.errors import (
    ActivationFailure,
    BackupError,
    InstallerFailure,
    RestoreError,
)
from bulk_installer.core.models import ItemAction, ItemStatus, PackageItem, ProcessResult

logger = logging.getLogger("bulk_installer.actions.processor")


@dataclass
class _ResultDraft:
    """Mutable working copy of a ProcessResult while an item is processed."""

    item: PackageItem
    is_dry_run: bool = False
    status: ItemStatus = ItemStatus.PENDING
    activated: bool = False
    rolled_back: bool = False
    backup_path: str = ""
    messages: list[str] = field(default_factory=list)

    def freeze(self) -> ProcessResult:
        return ProcessResult(
            slug=self.item.slug,
            name=self.item.display_name,
            action=self.item.action,
            status=self.status,
            activated=self.activated,
            rolled_back=self.rolled_back,
            is_dry_run=self.is_dry_run,
            messages=tuple(self.messages),
            previous_version=self.item.installed_version or "",
            new_version=self.item.target_version,
            backup_path=self.backup_path,
            package_descriptor=self.item.package_descriptor,
        )


class ItemProcessor:
    """Processor for one install/update/activate operation.

    Example:
        processor = ItemProcessor(installer, activation, config=config)
        result = processor.process(item)
        if result.status == ItemStatus.FAILED and result.rolled_back:
            print("Update failed, previous version restored")
    """

    def __init__(
        self,
        installer: Installer,
        activation: Activation,
        config: Optional[Config] = None,
        backup_store: Optional[BackupStore] = None,
    ) -> None:
        """Initialize the item processor.

        Args:
            installer: Installer primitive
            activation: Activation primitive
            config: Configuration object
            backup_store: Backup store (defaults to one built from config)
        """
        self.installer = installer
        self.activation = activation
        self.config = config or get_default_config()
        self.backup_store = backup_store or BackupStore(self.config)

    def install_dir(self, item: PackageItem) -> Path:
        return self.config.plugins_dir / item.slug

    def should_activate(self, item: PackageItem) -> bool:
        """Per-item toggle wins; unset defers to auto_activate."""
        if item.activate is not None:
            return bool(item.activate)
        return bool(self.config.installer.auto_activate)

    def process(
        self,
        item: PackageItem,
        dry_run: bool = False,
        retain_backup: bool = False,
    ) -> ProcessResult:
        """Process one package item.

        Never raises for per-item failures; they are reported in the result.

        Args:
            item: Package to install or update
            dry_run: Describe what would happen without touching the filesystem
            retain_backup: Keep the backup of a successful update and report it
                in backup_path so the batch can be rolled back later

        Returns:
            Immutable ProcessResult
        """
        draft = _ResultDraft(item=item, is_dry_run=dry_run)

        if item.compatibility_issues:
            return self._skip_incompatible(draft)

        if dry_run:
            return self._simulate(draft)

        return self._execute(draft, retain_backup)

    def _skip_incompatible(self, draft: _ResultDraft) -> ProcessResult:
        item = draft.item
        draft.status = ItemStatus.INCOMPATIBLE
        draft.messages.append(f'Skipped "{item.display_name}" due to compatibility issues.')
        draft.messages.extend(issue.message for issue in item.compatibility_issues)
        if draft.is_dry_run:
            draft.messages.append("No changes were made.")
        logger.info(f"Skipping incompatible package: {item.slug}")
        return draft.freeze()

    def _simulate(self, draft: _ResultDraft) -> ProcessResult:
        item = draft.item
        draft.status = ItemStatus.SUCCESS
        draft.messages.append(f'Dry run: would {item.action.value} "{item.display_name}".')
        if self.should_activate(item):
            draft.messages.append(f'Would activate "{item.display_name}" after installation.')
        draft.messages.append("No changes were made.")
        logger.info(f"[DRY RUN] Would {item.action.value}: {item.slug}")
        return draft.freeze()

    def _execute(self, draft: _ResultDraft, retain_backup: bool) -> ProcessResult:
        item = draft.item
        install_dir = self.install_dir(item)
        backup_path: Path | None = None
        preexisting = install_dir.exists()

        draft.status = ItemStatus.INSTALLING

        if item.action == ItemAction.UPDATE:
            try:
                backup_path = self.backup_store.create_backup(install_dir)
            except BackupError as e:
                draft.status = ItemStatus.FAILED
                draft.messages.append(
                    f'Failed to create backup for "{item.display_name}": {e.message}'
                )
                logger.error(f"Backup failed for {item.slug}: {e.message}")
                return draft.freeze()

        try:
            self._run_installer(item)
        except InstallerFailure as e:
            return self._handle_install_failure(
                draft, e, install_dir, backup_path, preexisting
            )

        if backup_path is not None:
            if retain_backup:
                draft.backup_path = str(backup_path)
            else:
                self.backup_store.cleanup_backup(backup_path)

        draft.status = ItemStatus.SUCCESS
        verb = "updated" if item.action == ItemAction.UPDATE else "installed"
        draft.messages.append(f'Successfully {verb} "{item.display_name}".')
        logger.info(f"Successfully {verb} {item.slug}")

        self._handle_activation(draft)
        return draft.freeze()

    def _run_installer(self, item: PackageItem) -> None:
        try:
            if item.action == ItemAction.UPDATE:
                self.installer.update(item.source_path, item.package_descriptor)
            else:
                self.installer.install(item.source_path, item.package_descriptor)
        except InstallerFailure:
            raise
        except Exception as e:
            logger.exception(f"Installer raised unexpectedly for {item.slug}")
            raise InstallerFailure(str(e) or e.__class__.__name__) from e

    def _handle_install_failure(
        self,
        draft: _ResultDraft,
        error: InstallerFailure,
        install_dir: Path,
        backup_path: Path | None,
        preexisting: bool = False,
    ) -> ProcessResult:
        item = draft.item
        draft.status = ItemStatus.FAILED
        draft.messages.append(
            f'Failed to {item.action.value} "{item.display_name}": {error.message}'
        )
        logger.error(f"Failed to {item.action.value} {item.slug}: {error.message}")

        if backup_path is None:
            # Only clean up what this attempt created.
            if not preexisting:
                self.backup_store.remove_partial_install(install_dir)
            return draft.freeze()

        if not self.config.installer.auto_rollback:
            draft.messages.append(
                f"Automatic rollback is disabled; backup kept at {backup_path}."
            )
            return draft.freeze()

        try:
            self.backup_store.restore_backup(backup_path, install_dir)
        except RestoreError as e:
            draft.messages.append(
                f'Failed to restore "{item.display_name}": {e.message}. '
                f"The plugin directory may be incomplete; backup kept at {backup_path}."
            )
            logger.critical(f"Restore failed for {item.slug}, backup kept at {backup_path}")
            return draft.freeze()

        draft.rolled_back = True
        draft.messages.append(f'Restored "{item.display_name}" to previous version.')
        self.backup_store.cleanup_backup(backup_path)
        return draft.freeze()

    def _handle_activation(self, draft: _ResultDraft) -> None:
        item = draft.item

        try:
            if item.action == ItemAction.UPDATE and self.activation.is_active(
                item.package_descriptor
            ):
                draft.activated = True
                return

            if not self.should_activate(item):
                return

            if item.network_wide:
                self.activation.activate(item.package_descriptor, network_wide=True)
            else:
                self.activation.activate(item.package_descriptor)
        except Exception as e:
            reason = e.message if isinstance(e, ActivationFailure) else str(e)
            draft.messages.append(f'"{item.display_name}" could not be activated: {reason}')
            logger.warning(f"Activation failed for {item.slug}: {reason}")
            return

        draft.activated = True
        draft.messages.append(f'Activated "{item.display_name}".')
