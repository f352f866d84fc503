"""Backup Store - Filesystem snapshots of installed plugin directories.

This module provides the BackupStore class for copying a plugin's
installed directory aside before it is replaced, restoring that copy
when an update fails or a batch is rolled back, and discarding it
afterwards.
"""

import logging
import secrets
import shutil
import string
import time
from pathlib import Path
from typing import Optional

from bulk_installer.core.config import Config, get_default_config
from bulk_installer.core.errors import (
    BackupCopyFailed,
    BackupDirFailed,
    BackupSourceMissing,
    RestoreBackupMissing,
    RestoreCopyFailed,
    RestoreDeleteFailed,
)

logger = logging.getLogger("bulk_installer.core.backup")

_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits
_SUFFIX_LENGTH = 6


class BackupStore:
    """Manager for per-plugin directory backups.

    Backups live under ``backups_dir`` and are named
    ``<dirname>_<unix-time>_<6 random alnum>`` so concurrent backups of the
    same plugin never collide.

    Example:
        store = BackupStore(config)
        backup = store.create_backup(config.plugins_dir / "akismet")

        # If the update fails
        store.restore_backup(backup, config.plugins_dir / "akismet")
        store.cleanup_backup(backup)
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        backups_dir: Optional[Path] = None,
    ) -> None:
        """Initialize the backup store.

        Args:
            config: Configuration object
            backups_dir: Override directory for backups
        """
        self.config = config or get_default_config()
        self.backups_dir = Path(backups_dir or self.config.backups_dir)

    def create_backup(self, install_dir: Path) -> Path:
        """Copy an installed plugin directory into the backup root.

        Args:
            install_dir: Installed plugin directory to back up

        Returns:
            Path of the new backup directory

        Raises:
            BackupSourceMissing: install_dir does not exist
            BackupDirFailed: the backup directory could not be created
            BackupCopyFailed: copying failed (the partial backup is removed)
        """
        install_dir = Path(install_dir)
        if not install_dir.is_dir():
            raise BackupSourceMissing(f"Plugin directory does not exist: {install_dir}")

        try:
            self.backups_dir.mkdir(parents=True, exist_ok=True)
            backup_path = self._unique_backup_path(install_dir.name)
            backup_path.mkdir()
        except OSError as e:
            raise BackupDirFailed(f"Could not create backup directory: {e}") from e

        try:
            shutil.copytree(install_dir, backup_path, dirs_exist_ok=True, symlinks=True)
        except (OSError, shutil.Error) as e:
            self.cleanup_backup(backup_path)
            raise BackupCopyFailed(f"Failed to copy plugin files to backup: {e}") from e

        logger.info(f"Created backup of {install_dir.name}: {backup_path}")
        return backup_path

    def restore_backup(self, backup_path: Path, install_dir: Path) -> bool:
        """Replace install_dir with the contents of a backup.

        Args:
            backup_path: Backup directory created by create_backup()
            install_dir: Plugin directory to restore into

        Returns:
            True on success

        Raises:
            RestoreBackupMissing: backup_path does not exist
            RestoreDeleteFailed: the current install_dir could not be removed
            RestoreCopyFailed: copying the backup back failed
        """
        backup_path = Path(backup_path)
        install_dir = Path(install_dir)

        if not backup_path.is_dir():
            raise RestoreBackupMissing(f"Backup directory does not exist: {backup_path}")

        if install_dir.exists() or install_dir.is_symlink():
            try:
                _remove_path(install_dir)
            except OSError as e:
                raise RestoreDeleteFailed(
                    f"Failed to remove current plugin directory: {e}"
                ) from e

        try:
            shutil.copytree(backup_path, install_dir, symlinks=True)
        except (OSError, shutil.Error) as e:
            raise RestoreCopyFailed(f"Failed to copy backup files into place: {e}") from e

        logger.info(f"Restored {install_dir.name} from backup {backup_path.name}")
        return True

    def cleanup_backup(self, backup_path: Path | str) -> None:
        """Delete a backup directory. Best effort: never raises."""
        if not backup_path:
            return
        path = Path(backup_path)
        if not path.exists():
            return
        try:
            _remove_path(path)
            logger.debug(f"Removed backup: {path}")
        except OSError as e:
            logger.warning(f"Failed to remove backup {path}: {e}")

    def remove_partial_install(self, install_dir: Path | str) -> None:
        """Delete whatever a failed install left behind. Best effort: never raises."""
        path = Path(install_dir)
        if not (path.exists() or path.is_symlink()):
            return
        try:
            _remove_path(path)
            logger.info(f"Removed partial install: {path}")
        except OSError as e:
            logger.warning(f"Failed to remove partial install {path}: {e}")

    def list_backups(self) -> list[Path]:
        """List backup directories, newest first."""
        if not self.backups_dir.is_dir():
            return []
        backups = [p for p in self.backups_dir.iterdir() if p.is_dir()]
        return sorted(backups, key=lambda p: p.stat().st_mtime, reverse=True)

    def _unique_backup_path(self, dirname: str) -> Path:
        while True:
            suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(_SUFFIX_LENGTH))
            candidate = self.backups_dir / f"{dirname}_{int(time.time())}_{suffix}"
            if not candidate.exists():
                return candidate


def _remove_path(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()


def create_backup_store(config: Optional[Config] = None) -> BackupStore:
    """Create a backup store with default settings.

    Args:
        config: Optional configuration

    Returns:
        Configured BackupStore
    """
    return BackupStore(config=config)
