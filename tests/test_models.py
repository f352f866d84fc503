"""Tests for core data models."""

from pathlib import Path

import pytest

from bulk_installer.core.models import (
    BatchManifest,
    BatchSummary,
    CompatibilityIssue,
    ItemAction,
    ItemStatus,
    ManifestEntry,
    PackageItem,
    ProcessResult,
)


def _result(action, status, rolled_back=False, backup_path=""):
    return ProcessResult(
        slug="p",
        name="P",
        action=action,
        status=status,
        rolled_back=rolled_back,
        backup_path=backup_path,
    )


class TestPackageItem:
    """Tests for PackageItem."""

    def test_defaults(self):
        """Test derived defaults."""
        item = PackageItem(slug="akismet")

        assert item.action == ItemAction.INSTALL
        assert item.name == "akismet"
        assert item.package_descriptor == "akismet/akismet.php"
        assert item.activate is None

    def test_empty_slug_rejected(self):
        """Test that a slug is required."""
        with pytest.raises(ValueError):
            PackageItem(slug="")

    @pytest.mark.parametrize("slug", [".", "..", "a/b", "../etc", "a\\b"])
    def test_slug_must_be_single_directory(self, slug):
        """Test slugs that would point outside one plugin directory."""
        with pytest.raises(ValueError, match="Invalid plugin slug"):
            PackageItem(slug=slug)

    def test_descriptor_must_match_slug(self):
        """Test that the installer and the backup store agree on the directory."""
        with pytest.raises(ValueError, match="does not belong"):
            PackageItem(slug="foo", package_descriptor="bar/bar.php")

        item = PackageItem(slug="foo", package_descriptor="foo/main.php")
        assert item.package_descriptor == "foo/main.php"

    def test_string_compatibility_issues(self):
        """Test bare strings are accepted as compatibility issues."""
        item = PackageItem.from_dict({"slug": "a", "compatibility_issues": ["Requires PHP 8.2"]})

        assert item.compatibility_issues == [CompatibilityIssue(type="", message="Requires PHP 8.2")]

    def test_invalid_compatibility_issue(self):
        """Test a compatibility issue that is neither text nor an object."""
        with pytest.raises(ValueError):
            PackageItem.from_dict({"slug": "a", "compatibility_issues": [42]})

    @pytest.mark.parametrize(
        "raw, expected",
        [("false", False), ("true", True), ("0", False), ("yes", True), (None, None), ("", None)],
    )
    def test_activate_strings(self, raw, expected):
        """Test activation flags given as strings in an items file."""
        assert PackageItem.from_dict({"slug": "a", "activate": raw}).activate is expected

    def test_activate_garbage_rejected(self):
        """Test an activation flag that does not spell a boolean."""
        with pytest.raises(ValueError):
            PackageItem.from_dict({"slug": "a", "activate": "sometimes"})

    def test_from_dict(self):
        """Test building an item from items-file data."""
        item = PackageItem.from_dict(
            {
                "slug": "akismet",
                "action": "update",
                "installed_version": "5.2",
                "target_version": "5.3",
                "source_path": "/staging/akismet.zip",
                "activate": True,
                "requires_python": "3.8",
            }
        )

        assert item.action == ItemAction.UPDATE
        assert item.source_path == Path("/staging/akismet.zip")
        assert item.activate is True
        assert item.requires_python == "3.8"

    def test_to_dict_roundtrip(self):
        """Test serialization keeps compatibility issues."""
        item = PackageItem(
            slug="x",
            compatibility_issues=[CompatibilityIssue(type="slug_conflict", message="dup")],
        )
        restored = PackageItem.from_dict(item.to_dict())
        assert restored == item


class TestBatchSummary:
    """Tests for BatchSummary.from_results."""

    def test_partition(self):
        """Test that every result lands in exactly one bucket."""
        results = [
            _result(ItemAction.INSTALL, ItemStatus.SUCCESS),
            _result(ItemAction.UPDATE, ItemStatus.SUCCESS),
            _result(ItemAction.UPDATE, ItemStatus.FAILED, rolled_back=True),
            _result(ItemAction.INSTALL, ItemStatus.FAILED),
            _result(ItemAction.INSTALL, ItemStatus.INCOMPATIBLE),
            _result(ItemAction.INSTALL, ItemStatus.SKIPPED),
        ]

        summary = BatchSummary.from_results(results)

        assert summary.to_dict() == {
            "total": 6,
            "installed": 1,
            "updated": 1,
            "failed": 2,
            "incompatible": 1,
            "skipped": 1,
            "rolled_back": 1,
        }
        assert (
            summary.installed + summary.updated + summary.failed
            + summary.incompatible + summary.skipped
        ) == summary.total
        assert summary.succeeded == 2

    def test_dry_run_successes_count(self):
        """Test simulated successes are counted like real ones."""
        results = [
            ProcessResult(
                slug="p", name="P", action=ItemAction.UPDATE,
                status=ItemStatus.SUCCESS, is_dry_run=True,
            )
        ]
        assert BatchSummary.from_results(results).updated == 1

    def test_empty(self):
        """Test an empty batch."""
        assert BatchSummary.from_results([]) == BatchSummary()


class TestProcessResult:
    """Tests for ProcessResult."""

    def test_message_joins_messages(self):
        """Test the combined message."""
        result = ProcessResult(
            slug="p", name="P", action=ItemAction.INSTALL,
            status=ItemStatus.FAILED, messages=("First.", "Second."),
        )
        assert result.message == "First. Second."
        assert result.succeeded is False

    def test_to_dict(self):
        """Test enum values are serialized."""
        data = _result(ItemAction.UPDATE, ItemStatus.SUCCESS).to_dict()
        assert data["action"] == "update"
        assert data["status"] == "success"


class TestManifest:
    """Tests for ManifestEntry and BatchManifest."""

    def test_backup_path_only_for_updates(self):
        """Test install rows never carry a backup path."""
        update = ManifestEntry.from_result(
            _result(ItemAction.UPDATE, ItemStatus.SUCCESS, backup_path="/b/1")
        )
        install = ManifestEntry.from_result(
            _result(ItemAction.INSTALL, ItemStatus.SUCCESS, backup_path="/b/2")
        )

        assert update.backup_path == "/b/1"
        assert install.backup_path == ""

    def test_manifest_roundtrip(self):
        """Test BatchManifest serialization."""
        manifest = BatchManifest(
            batch_id="bpi_1",
            plugins=[ManifestEntry(slug="a", action="install", status="success")],
            summary=BatchSummary(total=1, installed=1),
            user_id="admin",
            created_at="2024-01-01T00:00:00Z",
            expires_at="2024-01-02T00:00:00Z",
        )
        assert BatchManifest.from_dict(manifest.to_dict()) == manifest

    def test_null_versions_become_empty(self):
        """Test missing versions read as empty strings."""
        entry = ManifestEntry.from_dict(
            {"slug": "a", "action": "install", "status": "success", "previous_version": None}
        )
        assert entry.previous_version == ""
