"""Batch Manifest Store - Persists completed batches for later rollback.

A manifest is kept under an expiring key for the configured retention
window. The Active Batch Registry is the ordered list of batch ids whose
manifests may still be rolled back.
"""

import logging
import time
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

from bulk_installer.core.activity_log import ActivityEntry, ActivityLog
from bulk_installer.core.backup import BackupStore
from bulk_installer.core.config import Config, get_default_config
from bulk_installer.core.errors import BatchNotFound, MissingBackupPath, RestoreError
from bulk_installer.core.models import (
    BatchManifest,
    BatchRollbackResult,
    BatchSummary,
    ItemStatus,
    ManifestEntry,
    ProcessResult,
    RollbackAction,
    RollbackStep,
    is_valid_slug,
)
from bulk_installer.core.store import ExpiringStore

if TYPE_CHECKING:
    from bulk_installer.core.notifications import NotificationManager

logger = logging.getLogger("bulk_installer.core.manifest")

BATCH_KEY_PREFIX = "bpi_batch_"
ACTIVE_BATCHES_KEY = "bpi_active_batches"
MANIFEST_STORE_FILE = "batches.json"
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

MSG_ROLLBACK_SUCCESS = "Batch rollback completed successfully."
MSG_NOT_PROCESSED = "Plugin was not successfully processed; skipping rollback."


def format_timestamp(epoch: float) -> str:
    return datetime.fromtimestamp(epoch, tz=timezone.utc).strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: str) -> float | None:
    try:
        return datetime.strptime(value, TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc).timestamp()
    except (TypeError, ValueError):
        return None


class BatchManifestStore:
    """Store for batch manifests and the Active Batch Registry.

    Example:
        manifests = BatchManifestStore(config)
        manifests.record_batch(run.batch_id, run.results, run.summary, user_id="admin")

        # Later
        result = manifests.rollback_batch(run.batch_id)
        if not result.success:
            for failure in result.failures:
                print(failure)
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        backup_store: Optional[BackupStore] = None,
        activity_log: Optional[ActivityLog] = None,
        store: Optional[ExpiringStore] = None,
        notifier: Optional["NotificationManager"] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the manifest store.

        Args:
            config: Configuration object
            backup_store: Backup store used to restore and discard backups
            activity_log: Log sink for batch_rollback records
            store: Expiring store holding manifests and the registry
            notifier: Sends rollback summaries
            clock: Callable returning the current epoch time in seconds
        """
        self.config = config or get_default_config()
        self.backup_store = backup_store or BackupStore(self.config)
        self.activity_log = activity_log or ActivityLog(self.config)
        self._clock = clock
        self.store = store or ExpiringStore(
            self.config.state_dir / MANIFEST_STORE_FILE, clock=clock
        )
        self.notifier = notifier

    def record_batch(
        self,
        batch_id: str,
        results: list[ProcessResult],
        summary: BatchSummary | None = None,
        user_id: str = "",
    ) -> BatchManifest:
        """Persist a completed batch and add it to the registry.

        Args:
            batch_id: Unique batch token
            results: Per-item results of the batch
            summary: Batch summary (computed from results if omitted)
            user_id: User who ran the batch

        Returns:
            The stored manifest
        """
        retention_hours = self.config.retention_hours
        ttl = retention_hours * 3600
        now = self._clock()

        manifest = BatchManifest(
            batch_id=batch_id,
            plugins=[ManifestEntry.from_result(r) for r in results],
            summary=summary or BatchSummary.from_results(results),
            user_id=user_id,
            created_at=format_timestamp(now),
            expires_at=format_timestamp(now + ttl),
        )

        self.store.set(self._key(batch_id), manifest.to_dict(), ttl=ttl)
        self.store.update(
            ACTIVE_BATCHES_KEY,
            lambda active: _append_unique(active or [], batch_id),
            default=[],
        )

        logger.info(f"Recorded batch {batch_id} ({len(results)} plugins, {retention_hours}h retention)")
        return manifest

    def get_batch_manifest(self, batch_id: str) -> BatchManifest | None:
        """Get a manifest, or None when it is absent or expired.

        Callers that want a plain mapping can use
        ``manifest.to_dict() if manifest else {}``.
        """
        data = self.store.get(self._key(batch_id))
        if not isinstance(data, dict):
            return None
        return BatchManifest.from_dict(data)

    def require_manifest(self, batch_id: str) -> BatchManifest:
        """Get a manifest.

        Raises:
            BatchNotFound: the manifest is absent or expired
        """
        manifest = self.get_batch_manifest(batch_id)
        if manifest is None:
            raise BatchNotFound("Batch manifest not found.")
        return manifest

    def get_active_batch_ids(self) -> list[str]:
        return list(self.store.get(ACTIVE_BATCHES_KEY, []))

    def get_active_batches(self) -> list[BatchManifest]:
        """Manifests of every registered batch that has not expired."""
        batches = []
        for batch_id in self.get_active_batch_ids():
            manifest = self.get_batch_manifest(batch_id)
            if manifest is not None:
                batches.append(manifest)
        return batches

    def rollback_batch(self, batch_id: str) -> BatchRollbackResult:
        """Undo a recorded batch.

        Updated plugins are restored from their backups and newly
        installed plugins are removed. A failing row never stops the
        remaining rows.

        Args:
            batch_id: Batch to roll back

        Returns:
            BatchRollbackResult, successful only if every row rolled back.
            An unknown or expired batch gives an unsuccessful result with
            no steps and a single failure; nothing is raised.
        """
        try:
            manifest = self.require_manifest(batch_id)
        except BatchNotFound as e:
            logger.warning(f"Rollback requested for unknown batch: {batch_id}")
            return BatchRollbackResult(success=False, batch_id=batch_id, failures=[e.message])

        logger.info(f"Rolling back batch {batch_id} ({len(manifest.plugins)} plugins)")
        result = BatchRollbackResult(success=False, batch_id=batch_id)

        for entry in manifest.plugins:
            result.results.append(self._rollback_entry(entry, result.failures))

        result.success = not result.failures

        if result.success:
            message = MSG_ROLLBACK_SUCCESS
        else:
            message = "Batch rollback completed with errors: " + "; ".join(result.failures)

        self.activity_log.record(
            ActivityEntry(
                action="batch_rollback",
                batch_id=batch_id,
                status="success" if result.success else "partial",
                message=message,
                user_id=manifest.user_id,
            )
        )

        self.store.delete(self._key(batch_id))
        self._remove_batch_id(batch_id)

        if self.notifier is not None:
            self.notifier.send_rollback_summary(result, manifest)

        logger.info(message)
        return result

    def cleanup_expired(self) -> int:
        """Drop expired batches from the registry and delete their backups.

        A batch is expired when its store entry has lapsed or when the
        manifest's own expires_at is in the past.

        Returns:
            Number of batch ids removed from the registry
        """
        now = self._clock()
        dropped: list[str] = []

        for batch_id in self.get_active_batch_ids():
            key = self._key(batch_id)
            live = self.store.get(key)
            data = live if live is not None else self.store.get(key, include_expired=True)

            if isinstance(data, dict):
                expires = parse_timestamp(data.get("expires_at", ""))
                if live is not None and (expires is None or now <= expires):
                    continue
                self._cleanup_batch_backups(BatchManifest.from_dict(data))

            self.store.delete(key)
            dropped.append(batch_id)

        if dropped:
            self.store.update(
                ACTIVE_BATCHES_KEY,
                lambda active: [b for b in active or [] if b not in dropped],
                default=[],
            )
            logger.info(f"Cleaned up {len(dropped)} expired batches")

        self.store.purge_expired()
        return len(dropped)

    def _rollback_entry(self, entry: ManifestEntry, failures: list[str]) -> RollbackStep:
        if entry.status != ItemStatus.SUCCESS.value:
            return RollbackStep(
                slug=entry.slug,
                action=RollbackAction.SKIPPED,
                status=ItemStatus.SKIPPED,
                message=MSG_NOT_PROCESSED,
            )

        if not is_valid_slug(entry.slug):
            failures.append(f'Invalid plugin slug in manifest: "{entry.slug}".')
            return self._failed_step(entry, "Invalid plugin slug.")

        install_dir = self.config.plugins_dir / entry.slug

        if entry.action == "install":
            self.backup_store.remove_partial_install(install_dir)
            return RollbackStep(
                slug=entry.slug,
                action=RollbackAction.REMOVE,
                status=ItemStatus.SUCCESS,
                message=f'Removed newly installed "{entry.slug}".',
            )

        try:
            if not entry.backup_path:
                raise MissingBackupPath("No backup path available.")
            self.backup_store.restore_backup(Path(entry.backup_path), install_dir)
        except MissingBackupPath as e:
            failures.append(f'No backup path for "{entry.slug}".')
            return self._failed_step(entry, e.message)
        except RestoreError as e:
            failures.append(f'Failed to restore "{entry.slug}": {e.message}')
            return self._failed_step(entry, e.message)

        self.backup_store.cleanup_backup(entry.backup_path)
        return RollbackStep(
            slug=entry.slug,
            action=RollbackAction.RESTORE,
            status=ItemStatus.SUCCESS,
            message=f'Restored "{entry.slug}" to previous version.',
        )

    @staticmethod
    def _failed_step(entry: ManifestEntry, message: str) -> RollbackStep:
        logger.error(f"Rollback failed for {entry.slug}: {message}")
        return RollbackStep(
            slug=entry.slug,
            action=RollbackAction.REMOVE if entry.action == "install" else RollbackAction.RESTORE,
            status=ItemStatus.FAILED,
            message=message,
        )

    def _cleanup_batch_backups(self, manifest: BatchManifest) -> None:
        for entry in manifest.plugins:
            if entry.backup_path:
                self.backup_store.cleanup_backup(entry.backup_path)

    def _remove_batch_id(self, batch_id: str) -> None:
        self.store.update(
            ACTIVE_BATCHES_KEY,
            lambda active: [b for b in active or [] if b != batch_id],
            default=[],
        )

    @staticmethod
    def _key(batch_id: str) -> str:
        return f"{BATCH_KEY_PREFIX}{batch_id}"


def _append_unique(active: list[str], batch_id: str) -> list[str]:
    return active if batch_id in active else [*active, batch_id]


def create_manifest_store(config: Optional[Config] = None, **kwargs: Any) -> BatchManifestStore:
    """Create a manifest store with default collaborators.

    Args:
        config: Optional configuration
        **kwargs: Passed through to BatchManifestStore

    Returns:
        Configured BatchManifestStore
    """
    return BatchManifestStore(config=config, **kwargs)
