"""Batch Processor - Runs a list of package items through the item processor.

Items are processed sequentially in input order. A failure in one item
never stops the rest of the batch.
"""

import logging
import secrets
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional

from bulk_installer.actions.processor import ItemProcessor
from bulk_installer.core.activity_log import ActivityEntry, ActivityLog
from bulk_installer.core.config import Config
from bulk_installer.core.errors import BatchTooLargeError, EmptyBatchError
from bulk_installer.core.models import BatchSummary, ItemStatus, PackageItem, ProcessResult

if TYPE_CHECKING:
    from bulk_installer.core.manifest import BatchManifestStore
    from bulk_installer.core.notifications import NotificationManager

logger = logging.getLogger("bulk_installer.actions.batch")

# Exit codes shared with the command-line front-end
EXIT_SUCCESS = 0
EXIT_PARTIAL = 1
EXIT_FAILURE = 2


def exit_code_for(results: list[ProcessResult]) -> int:
    """Classify a batch outcome.

    Returns:
        0 when every item succeeded (or there were none), 2 when nothing
        succeeded, 1 for a mix
    """
    if not results:
        return EXIT_SUCCESS
    succeeded = sum(1 for r in results if r.status == ItemStatus.SUCCESS)
    if succeeded == len(results):
        return EXIT_SUCCESS
    if succeeded == 0:
        return EXIT_FAILURE
    return EXIT_PARTIAL


def generate_batch_id() -> str:
    return f"bpi_{int(time.time())}_{secrets.token_hex(4)}"


@dataclass
class BatchRun:
    """Outcome of one process_batch() call.

    Attributes:
        batch_id: Unique batch token
        results: One result per input item, in input order
        summary: Aggregate counts
        is_dry_run: Whether the batch was simulated
        user_id: User who ran the batch
    """

    batch_id: str
    results: list[ProcessResult] = field(default_factory=list)
    summary: BatchSummary = field(default_factory=BatchSummary)
    is_dry_run: bool = False
    user_id: str = ""

    @property
    def exit_code(self) -> int:
        return exit_code_for(self.results)

    def to_dict(self) -> dict[str, Any]:
        return {
            "batch_id": self.batch_id,
            "is_dry_run": self.is_dry_run,
            "user_id": self.user_id,
            "summary": self.summary.to_dict(),
            "results": [r.to_dict() for r in self.results],
            "exit_code": self.exit_code,
        }


class BatchProcessor:
    """Sequential batch runner.

    When a manifest store is attached, successful updates keep their
    backups and the finished batch is recorded so it can be rolled back
    later. Dry runs never record or notify.

    Example:
        batch = BatchProcessor(processor, activity_log, config=config)
        run = batch.process_batch(items)
        print(run.summary.failed)
    """

    def __init__(
        self,
        processor: ItemProcessor,
        activity_log: Optional[ActivityLog] = None,
        config: Optional[Config] = None,
        manifest_store: Optional["BatchManifestStore"] = None,
        notifier: Optional["NotificationManager"] = None,
        user_id: str = "",
        progress_callback: Callable[[str, float], None] | None = None,
    ) -> None:
        """Initialize the batch processor.

        Args:
            processor: Item processor used for every item
            activity_log: Log sink receiving one entry per item
            config: Configuration object
            manifest_store: Records completed batches for rollback
            notifier: Sends batch summaries
            user_id: User recorded with every log entry and manifest
            progress_callback: Function to report progress (message, percent)
        """
        self.processor = processor
        self.config = config or processor.config
        self.activity_log = activity_log or ActivityLog(self.config)
        self.manifest_store = manifest_store
        self.notifier = notifier
        self.user_id = user_id
        self.progress_callback = progress_callback

    def process_batch(
        self,
        items: list[PackageItem],
        dry_run: bool = False,
        batch_id: str | None = None,
    ) -> BatchRun:
        """Process items in order and aggregate the results.

        Args:
            items: Items to process
            dry_run: Simulate every item
            batch_id: Caller-supplied batch id (generated if omitted)

        Returns:
            BatchRun with per-item results and the summary

        Raises:
            EmptyBatchError: items is empty
            BatchTooLargeError: more items than installer.max_plugins
        """
        if not items:
            raise EmptyBatchError("No plugins selected for processing.")

        max_plugins = self.config.installer.max_plugins
        if max_plugins > 0 and len(items) > max_plugins:
            raise BatchTooLargeError(
                f"Batch has {len(items)} plugins; the maximum is {max_plugins}."
            )

        run = BatchRun(
            batch_id=batch_id or generate_batch_id(),
            is_dry_run=dry_run,
            user_id=self.user_id,
        )
        retain_backups = self.manifest_store is not None and not dry_run

        logger.info(
            f"{'[DRY RUN] ' if dry_run else ''}Starting batch {run.batch_id} "
            f"with {len(items)} plugins"
        )

        total = len(items)
        for i, item in enumerate(items):
            if self.progress_callback:
                self.progress_callback(f"Processing {item.display_name}...", (i / total) * 100)

            result = self.processor.process(item, dry_run=dry_run, retain_backup=retain_backups)
            run.results.append(result)
            self._log_result(run, item, result)

        if self.progress_callback:
            self.progress_callback("Batch complete", 100)

        run.summary = BatchSummary.from_results(run.results)
        logger.info(
            f"Batch {run.batch_id} complete: {run.summary.total} processed, "
            f"{run.summary.succeeded} succeeded, {run.summary.failed} failed"
        )

        if not dry_run:
            if self.manifest_store is not None:
                self.manifest_store.record_batch(run.batch_id, run.results, run.summary, run.user_id)
            if self.notifier is not None:
                self.notifier.send_batch_summary(run)
                self.notifier.queue_notice(
                    run.user_id,
                    f"Bulk operation complete: {run.summary.total} plugins processed "
                    f"({run.summary.succeeded} succeeded, {run.summary.failed} failed).",
                    "success" if run.summary.failed == 0 else "warning",
                )

        return run

    def _log_result(self, run: BatchRun, item: PackageItem, result: ProcessResult) -> None:
        self.activity_log.record(
            ActivityEntry(
                action=item.action.value,
                batch_id=run.batch_id,
                slug=item.slug,
                name=item.display_name,
                from_version=item.installed_version or "",
                to_version=item.target_version,
                status=result.status.value,
                message=result.message,
                is_dry_run=result.is_dry_run,
                user_id=run.user_id,
            )
        )
