"""Expiring Store - JSON-file key/value map with per-key expiry.

Values written with a TTL disappear from normal reads once the TTL has
elapsed, but stay on disk until purge_expired() sweeps them. Readers that
need to reach expired data (for example to delete backups a manifest
still references) can pass include_expired=True.
"""

import json
import logging
import os
import tempfile
import threading
import time
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger("bulk_installer.core.store")

# Serializes read-modify-write cycles across every store in the process
_STORE_LOCK = threading.RLock()


class ExpiringStore:
    """Persistent key/value map with optional per-key expiry.

    Each entry is stored as ``{"value": ..., "expires_at": <epoch or null>}``.

    Example:
        store = ExpiringStore(state_dir / "transients.json")
        store.set("bpi_batch_123", manifest, ttl=24 * 3600)
        store.get("bpi_batch_123")
    """

    def __init__(self, path: Path, clock=time.time) -> None:
        """Initialize the store.

        Args:
            path: JSON file backing the store
            clock: Callable returning the current epoch time in seconds
        """
        self.path = Path(path)
        self._clock = clock

    def get(self, key: str, default: Any = None, include_expired: bool = False) -> Any:
        """Read a value.

        Args:
            key: Entry key
            default: Returned when the key is absent (or expired)
            include_expired: Also return values whose TTL has elapsed

        Returns:
            The stored value, or default
        """
        with _STORE_LOCK:
            entry = self._load().get(key)
        if entry is None:
            return default
        if not include_expired and self._is_expired(entry):
            return default
        return entry.get("value", default)

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Write a value, optionally expiring after ttl seconds."""
        expires_at = self._clock() + ttl if ttl is not None else None
        with _STORE_LOCK:
            data = self._load()
            data[key] = {"value": value, "expires_at": expires_at}
            self._save(data)

    def delete(self, key: str) -> bool:
        """Remove a key. Returns True if it existed."""
        with _STORE_LOCK:
            data = self._load()
            if key not in data:
                return False
            del data[key]
            self._save(data)
            return True

    def update(self, key: str, func, default: Any = None) -> Any:
        """Atomically replace a value with func(current).

        Args:
            key: Entry key (stored without expiry)
            func: Callable receiving the current value (or default)
            default: Value passed to func when the key is absent

        Returns:
            The new value
        """
        with _STORE_LOCK:
            data = self._load()
            entry = data.get(key)
            current = entry.get("value", default) if entry else default
            new_value = func(current)
            data[key] = {"value": new_value, "expires_at": None}
            self._save(data)
            return new_value

    def purge_expired(self) -> list[str]:
        """Remove every expired entry from disk.

        Returns:
            Keys that were removed
        """
        with _STORE_LOCK:
            data = self._load()
            expired = [key for key, entry in data.items() if self._is_expired(entry)]
            if expired:
                for key in expired:
                    del data[key]
                self._save(data)
        if expired:
            logger.debug(f"Purged {len(expired)} expired entries from {self.path.name}")
        return expired

    def _is_expired(self, entry: dict[str, Any]) -> bool:
        expires_at = entry.get("expires_at")
        return expires_at is not None and expires_at <= self._clock()

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to load store {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
