"""Core data models for the Bulk Plugin Installer.

This module defines all enums, data classes, and type definitions used
throughout the application.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Any

_TRUE_STRINGS = {"1", "true", "yes", "on"}
_FALSE_STRINGS = {"0", "false", "no", "off"}


def is_valid_slug(slug: str) -> bool:
    """True if slug names exactly one directory (no separators, not "." or "..")."""
    if not slug or slug in (".", ".."):
        return False
    return not any(ch in slug for ch in ("/", "\\", "\x00"))


def descriptor_dirname(descriptor: str) -> str:
    """Directory name a descriptor lives in ("akismet/akismet.php" -> "akismet")."""
    parts = PurePosixPath(descriptor.replace("\\", "/")).parts
    return parts[0] if parts else descriptor


def coerce_bool(value: Any, default: bool | None = None) -> bool | None:
    """Read a boolean from JSON-ish input, accepting "true"/"false" style strings.

    None and the empty string give default.

    Raises:
        ValueError: value is a string that does not spell a boolean
    """
    if value is None:
        return default
    if isinstance(value, str):
        lowered = value.strip().lower()
        if not lowered:
            return default
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
        raise ValueError(f"Invalid boolean value: {value!r}")
    return bool(value)


class ItemAction(Enum):
    """Operations that can be applied to a package item.

    Actions:
        INSTALL: Install a package that is not present yet
        UPDATE: Replace an installed package with a newer version
    """

    INSTALL = "install"
    UPDATE = "update"


class ItemStatus(Enum):
    """Outcome of processing a single package item.

    Statuses:
        PENDING: Not processed yet
        INSTALLING: Installer primitive is running
        SUCCESS: Installed or updated (or would be, in a dry run)
        FAILED: Backup, installer, or restore failed
        INCOMPATIBLE: Skipped because of compatibility issues
        SKIPPED: Not acted on
    """

    PENDING = "pending"
    INSTALLING = "installing"
    SUCCESS = "success"
    FAILED = "failed"
    INCOMPATIBLE = "incompatible"
    SKIPPED = "skipped"


class RollbackAction(Enum):
    """What a batch rollback did for one manifest row."""

    RESTORE = "restore"
    REMOVE = "remove"
    SKIPPED = "skipped"


@dataclass
class CompatibilityIssue:
    """A single reason why a package cannot be processed.

    Attributes:
        type: Issue kind (platform_version, python_version, slug_conflict)
        message: Human-readable description
        required: Required version (empty for slug conflicts)
        current: Current version (empty for slug conflicts)
    """

    type: str
    message: str
    required: str = ""
    current: str = ""

    def to_dict(self) -> dict[str, str]:
        return {
            "type": self.type,
            "message": self.message,
            "required": self.required,
            "current": self.current,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CompatibilityIssue":
        return cls(
            type=data.get("type", ""),
            message=data.get("message", ""),
            required=data.get("required", ""),
            current=data.get("current", ""),
        )

    @classmethod
    def from_value(cls, data: Any) -> "CompatibilityIssue":
        """Build an issue from a dict or a bare message string.

        Raises:
            ValueError: data is neither a dict nor a string
        """
        if isinstance(data, str):
            return cls(type="", message=data)
        if isinstance(data, dict):
            return cls.from_dict(data)
        raise ValueError(f"Invalid compatibility issue: {data!r}")


@dataclass
class PackageItem:
    """A package queued for installation or update.

    Attributes:
        slug: Unique directory name of the package
        action: Install or update
        name: Human-readable package name
        target_version: Version contained in the staged source
        installed_version: Currently installed version (updates only)
        source_path: Staged ZIP archive or extracted directory
        package_descriptor: Installer-addressable handle ("slug/slug.php")
        activate: Per-item activation toggle (None defers to configuration)
        network_wide: Activate for the whole network instead of one site
        requires_platform: Minimum platform version declared by the package
        requires_python: Minimum Python version declared by the package
        compatibility_issues: Issues found by the compatibility checker
    """

    slug: str
    action: ItemAction = ItemAction.INSTALL
    name: str = ""
    target_version: str = ""
    installed_version: str | None = None
    source_path: Path | None = None
    package_descriptor: str = ""
    activate: bool | None = None
    network_wide: bool = False
    requires_platform: str = ""
    requires_python: str = ""
    compatibility_issues: list[CompatibilityIssue] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.slug:
            raise ValueError("PackageItem.slug must not be empty")
        if not is_valid_slug(self.slug):
            raise ValueError(f"Invalid plugin slug: {self.slug!r}")
        if not isinstance(self.action, ItemAction):
            self.action = ItemAction(self.action)
        if self.source_path is not None and not isinstance(self.source_path, Path):
            self.source_path = Path(self.source_path)
        if not self.name:
            self.name = self.slug
        if not self.package_descriptor:
            self.package_descriptor = f"{self.slug}/{self.slug}.php"
        elif descriptor_dirname(self.package_descriptor) != self.slug:
            raise ValueError(
                f"Package descriptor {self.package_descriptor!r} does not belong "
                f"to slug {self.slug!r}"
            )

    @property
    def display_name(self) -> str:
        return self.name or self.slug

    def to_dict(self) -> dict[str, Any]:
        """Convert to a dictionary for JSON serialization."""
        return {
            "slug": self.slug,
            "action": self.action.value,
            "name": self.name,
            "target_version": self.target_version,
            "installed_version": self.installed_version,
            "source_path": str(self.source_path) if self.source_path else None,
            "package_descriptor": self.package_descriptor,
            "activate": self.activate,
            "network_wide": self.network_wide,
            "requires_platform": self.requires_platform,
            "requires_python": self.requires_python,
            "compatibility_issues": [i.to_dict() for i in self.compatibility_issues],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PackageItem":
        """Create an item from a dictionary (e.g. a JSON items file)."""
        source = data.get("source_path")
        return cls(
            slug=data.get("slug", ""),
            action=ItemAction(data.get("action", "install")),
            name=data.get("name", ""),
            target_version=data.get("target_version", ""),
            installed_version=data.get("installed_version"),
            source_path=Path(source) if source else None,
            package_descriptor=data.get("package_descriptor", ""),
            activate=coerce_bool(data.get("activate")),
            network_wide=coerce_bool(data.get("network_wide"), default=False),
            requires_platform=data.get("requires_platform", ""),
            requires_python=data.get("requires_python", ""),
            compatibility_issues=[
                CompatibilityIssue.from_value(i)
                for i in data.get("compatibility_issues") or []
            ],
        )


@dataclass(frozen=True)
class ProcessResult:
    """Result of processing one package item.

    Attributes:
        slug: Package slug
        name: Package display name
        action: Requested action
        status: Outcome status
        activated: Whether the package is active afterwards
        rolled_back: Whether a failed update was restored from backup
        is_dry_run: Whether the result was simulated
        messages: Ordered human-readable notes
        previous_version: Version installed before the operation
        new_version: Version the operation installed
        backup_path: Backup retained for batch rollback (empty if none)
        package_descriptor: Installer-addressable handle
    """

    slug: str
    name: str
    action: ItemAction
    status: ItemStatus
    activated: bool = False
    rolled_back: bool = False
    is_dry_run: bool = False
    messages: tuple[str, ...] = ()
    previous_version: str = ""
    new_version: str = ""
    backup_path: str = ""
    package_descriptor: str = ""

    @property
    def succeeded(self) -> bool:
        return self.status == ItemStatus.SUCCESS

    @property
    def message(self) -> str:
        return " ".join(self.messages)

    def to_dict(self) -> dict[str, Any]:
        return {
            "slug": self.slug,
            "name": self.name,
            "action": self.action.value,
            "status": self.status.value,
            "activated": self.activated,
            "rolled_back": self.rolled_back,
            "is_dry_run": self.is_dry_run,
            "messages": list(self.messages),
            "previous_version": self.previous_version,
            "new_version": self.new_version,
            "backup_path": self.backup_path,
            "package_descriptor": self.package_descriptor,
        }


@dataclass
class BatchSummary:
    """Aggregate counts for one batch.

    Every result lands in exactly one of installed, updated, failed,
    incompatible or skipped. rolled_back counts results that were
    restored from backup and overlaps failed.
    """

    total: int = 0
    installed: int = 0
    updated: int = 0
    failed: int = 0
    incompatible: int = 0
    skipped: int = 0
    rolled_back: int = 0

    @property
    def succeeded(self) -> int:
        return self.installed + self.updated

    @classmethod
    def from_results(cls, results: list[ProcessResult]) -> "BatchSummary":
        summary = cls(total=len(results))
        for result in results:
            if result.status == ItemStatus.SUCCESS:
                if result.action == ItemAction.UPDATE:
                    summary.updated += 1
                else:
                    summary.installed += 1
            elif result.status == ItemStatus.FAILED:
                summary.failed += 1
            elif result.status == ItemStatus.INCOMPATIBLE:
                summary.incompatible += 1
            else:
                summary.skipped += 1

            if result.rolled_back:
                summary.rolled_back += 1
        return summary

    def to_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "installed": self.installed,
            "updated": self.updated,
            "failed": self.failed,
            "incompatible": self.incompatible,
            "skipped": self.skipped,
            "rolled_back": self.rolled_back,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BatchSummary":
        return cls(**{k: int(data.get(k, 0)) for k in cls().to_dict()})


@dataclass
class ManifestEntry:
    """One row of a batch manifest."""

    slug: str
    action: str
    status: str
    previous_version: str = ""
    new_version: str = ""
    backup_path: str = ""
    package_descriptor: str = ""
    activated: bool = False

    @classmethod
    def from_result(cls, result: ProcessResult) -> "ManifestEntry":
        return cls(
            slug=result.slug,
            action=result.action.value,
            status=result.status.value,
            previous_version=result.previous_version,
            new_version=result.new_version,
            backup_path=result.backup_path if result.action == ItemAction.UPDATE else "",
            package_descriptor=result.package_descriptor,
            activated=result.activated,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "slug": self.slug,
            "action": self.action,
            "status": self.status,
            "previous_version": self.previous_version,
            "new_version": self.new_version,
            "backup_path": self.backup_path,
            "package_descriptor": self.package_descriptor,
            "activated": self.activated,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ManifestEntry":
        return cls(
            slug=data.get("slug", ""),
            action=data.get("action", ""),
            status=data.get("status", ""),
            previous_version=data.get("previous_version") or "",
            new_version=data.get("new_version") or "",
            backup_path=data.get("backup_path") or "",
            package_descriptor=data.get("package_descriptor", ""),
            activated=bool(data.get("activated", False)),
        )


@dataclass
class BatchManifest:
    """Persisted record of a completed batch, used for batch rollback.

    Attributes:
        batch_id: Unique batch token
        plugins: Ordered manifest rows
        summary: Batch summary counts
        user_id: User who ran the batch
        created_at: ISO-8601 UTC creation time
        expires_at: ISO-8601 UTC time after which rollback is no longer offered
    """

    batch_id: str
    plugins: list[ManifestEntry] = field(default_factory=list)
    summary: BatchSummary = field(default_factory=BatchSummary)
    user_id: str = ""
    created_at: str = ""
    expires_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "batch_id": self.batch_id,
            "plugins": [p.to_dict() for p in self.plugins],
            "summary": self.summary.to_dict(),
            "user_id": self.user_id,
            "created_at": self.created_at,
            "expires_at": self.expires_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BatchManifest":
        return cls(
            batch_id=data.get("batch_id", ""),
            plugins=[ManifestEntry.from_dict(p) for p in data.get("plugins", [])],
            summary=BatchSummary.from_dict(data.get("summary", {})),
            user_id=str(data.get("user_id", "")),
            created_at=data.get("created_at", ""),
            expires_at=data.get("expires_at", ""),
        )


@dataclass
class RollbackStep:
    """Outcome of rolling back one manifest row."""

    slug: str
    action: RollbackAction
    status: ItemStatus
    message: str = ""

    def to_dict(self) -> dict[str, str]:
        return {
            "slug": self.slug,
            "action": self.action.value,
            "status": self.status.value,
            "message": self.message,
        }


@dataclass
class BatchRollbackResult:
    """Result of rolling back an entire batch.

    Attributes:
        success: True only when every row rolled back cleanly
        batch_id: ID of the rolled-back batch
        results: Per-row rollback steps, in manifest order
        failures: Human-readable failure descriptions
    """

    success: bool
    batch_id: str
    results: list[RollbackStep] = field(default_factory=list)
    failures: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "batch_id": self.batch_id,
            "results": [r.to_dict() for r in self.results],
            "failures": list(self.failures),
        }
