"""Activity Log - Append-only record of processed items and rollbacks.

Entries are stored one JSON object per line and returned newest first.
Every entry is also mirrored to the actions logger.
"""

import json
import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from bulk_installer.core.config import Config, get_default_config
from bulk_installer.core.logging_config import log_action

logger = logging.getLogger("bulk_installer.core.activity_log")

ACTIVITY_LOG_FILE = "activity.jsonl"


@dataclass
class ActivityEntry:
    """One activity log record.

    Attributes:
        action: What happened (install, update, batch_rollback)
        batch_id: Batch the record belongs to
        slug: Plugin slug (empty for batch-level records)
        name: Plugin display name
        from_version: Version before the operation
        to_version: Version after the operation
        status: Outcome status
        message: Human-readable messages joined with spaces
        is_dry_run: Whether the operation was simulated
        user_id: User who triggered the operation
        timestamp: ISO-8601 UTC time the record was written
    """

    action: str
    batch_id: str = ""
    slug: str = ""
    name: str = ""
    from_version: str = ""
    to_version: str = ""
    status: str = ""
    message: str = ""
    is_dry_run: bool = False
    user_id: str = ""
    timestamp: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ActivityEntry":
        known = {k: data[k] for k in cls.__dataclass_fields__ if k in data}
        return cls(**known)


class ActivityLog:
    """JSON-lines activity log.

    Example:
        log = ActivityLog(config)
        log.record(ActivityEntry(action="install", slug="akismet", status="success"))
        recent = log.query(limit=10)
    """

    def __init__(self, config: Optional[Config] = None, path: Optional[Path] = None) -> None:
        """Initialize the activity log.

        Args:
            config: Configuration object
            path: Override path of the JSON-lines file
        """
        self.config = config or get_default_config()
        self.path = Path(path or self.config.state_dir / ACTIVITY_LOG_FILE)

    def record(self, entry: ActivityEntry) -> ActivityEntry:
        """Append an entry, stamping its timestamp if unset.

        Write failures are logged and otherwise ignored so a broken log
        never fails a batch.
        """
        if not entry.timestamp:
            entry.timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(json.dumps(asdict(entry)) + "\n")
        except OSError as e:
            logger.error(f"Failed to write activity log entry: {e}")

        log_action(
            entry.action,
            entry.slug or entry.batch_id,
            entry.status,
            batch_id=entry.batch_id,
            from_version=entry.from_version,
            to_version=entry.to_version,
            is_dry_run=entry.is_dry_run,
            message=entry.message,
        )
        return entry

    def query(self, limit: int = 50, offset: int = 0) -> list[ActivityEntry]:
        """Return entries newest first.

        Args:
            limit: Maximum entries to return
            offset: Number of newest entries to skip
        """
        entries = self._read_all()
        entries.reverse()
        return entries[max(offset, 0) : max(offset, 0) + max(limit, 0)]

    def count(self) -> int:
        return len(self._read_all())

    def clear(self) -> int:
        """Delete every entry.

        Returns:
            Number of entries removed
        """
        removed = self.count()
        self.path.unlink(missing_ok=True)
        logger.info(f"Cleared {removed} activity log entries")
        return removed

    def _read_all(self) -> list[ActivityEntry]:
        if not self.path.exists():
            return []

        entries = []
        try:
            with open(self.path, encoding="utf-8") as f:
                for line_number, line in enumerate(f, start=1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        entries.append(ActivityEntry.from_dict(json.loads(line)))
                    except (json.JSONDecodeError, TypeError) as e:
                        logger.warning(f"Skipping corrupt activity log line {line_number}: {e}")
        except OSError as e:
            logger.error(f"Failed to read activity log: {e}")
        return entries
