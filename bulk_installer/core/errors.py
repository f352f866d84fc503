"""Exception hierarchy for the Bulk Plugin Installer.

Every error carries a stable ``code`` so callers and the activity log
can tell failure causes apart without parsing messages.
"""


class BulkInstallerError(Exception):
    """Base class for all Bulk Plugin Installer errors."""

    code = "bulk_installer_error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.code)
        self.message = message or self.code


class BackupError(BulkInstallerError):
    """Creating a backup failed. Fatal to the item being backed up."""

    code = "backup_error"


class BackupSourceMissing(BackupError):
    code = "backup_source_missing"


class BackupDirFailed(BackupError):
    code = "backup_dir_failed"


class BackupCopyFailed(BackupError):
    code = "backup_copy_failed"


class RestoreError(BulkInstallerError):
    """Restoring a backup failed. Fatal to the single rollback step."""

    code = "restore_error"


class RestoreBackupMissing(RestoreError):
    code = "restore_backup_missing"


class RestoreDeleteFailed(RestoreError):
    code = "restore_delete_failed"


class RestoreCopyFailed(RestoreError):
    code = "restore_copy_failed"


class InstallerFailure(BulkInstallerError):
    """The installer primitive reported a failure."""

    code = "install_failed"


class ActivationFailure(BulkInstallerError):
    """Activation failed. Downgraded to a warning by the item processor."""

    code = "activation_failed"


class BatchNotFound(BulkInstallerError):
    """Rollback requested for an unknown or expired batch id."""

    code = "batch_not_found"


class MissingBackupPath(BulkInstallerError):
    """An update row marked successful carries no backup path."""

    code = "missing_backup_path"


class EmptyBatchError(BulkInstallerError):
    """A batch was requested with no items."""

    code = "empty_batch"


class BatchTooLargeError(BulkInstallerError):
    """A batch exceeds the configured maximum number of plugins."""

    code = "batch_too_large"


class ProfileError(BulkInstallerError):
    """A saved plugin profile is missing or malformed."""

    code = "invalid_profile"


class ProfileNotFound(ProfileError):
    code = "profile_not_found"


class InvalidProfileJson(ProfileError):
    code = "invalid_json"
