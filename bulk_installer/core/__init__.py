"""Core module - models, configuration, storage and rollback infrastructure."""

from .activity_log import ActivityEntry, ActivityLog
from .backup import BackupStore, create_backup_store
from .config import Config, load_config, save_config, validate_config
from .errors import (
    ActivationFailure,
    BackupError,
    BatchNotFound,
    BatchTooLargeError,
    BulkInstallerError,
    EmptyBatchError,
    InstallerFailure,
    MissingBackupPath,
    ProfileError,
    ProfileNotFound,
    RestoreError,
)
from .logging_config import setup_logging
from .manifest import BatchManifestStore, create_manifest_store
from .models import (
    BatchManifest,
    BatchRollbackResult,
    BatchSummary,
    CompatibilityIssue,
    ItemAction,
    ItemStatus,
    ManifestEntry,
    PackageItem,
    ProcessResult,
    RollbackAction,
    RollbackStep,
)
from .notifications import NotificationManager
from .profiles import Profile, ProfileManager
from .store import ExpiringStore

__all__ = [
    # Models
    "ItemAction",
    "ItemStatus",
    "RollbackAction",
    "CompatibilityIssue",
    "PackageItem",
    "ProcessResult",
    "BatchSummary",
    "ManifestEntry",
    "BatchManifest",
    "RollbackStep",
    "BatchRollbackResult",
    # Config
    "Config",
    "load_config",
    "save_config",
    "validate_config",
    "setup_logging",
    # Errors
    "BulkInstallerError",
    "BackupError",
    "RestoreError",
    "InstallerFailure",
    "ActivationFailure",
    "BatchNotFound",
    "MissingBackupPath",
    "EmptyBatchError",
    "BatchTooLargeError",
    "ProfileError",
    "ProfileNotFound",
    # Storage
    "ExpiringStore",
    "ActivityLog",
    "ActivityEntry",
    "BackupStore",
    "create_backup_store",
    # Batch Rollback
    "BatchManifestStore",
    "create_manifest_store",
    # Notifications
    "NotificationManager",
    # Profiles
    "Profile",
    "ProfileManager",
]
