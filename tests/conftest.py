"""Pytest configuration and shared fixtures."""

import shutil
import sys
import tempfile
from pathlib import Path

import pytest

# Add the repository root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from bulk_installer.core.config import Config  # noqa: E402
from bulk_installer.core.errors import ActivationFailure, InstallerFailure  # noqa: E402
from bulk_installer.core.models import ItemAction, PackageItem  # noqa: E402


class FakeInstaller:
    """Installer double that writes a marker file per plugin.

    Descriptors listed in ``failures`` raise InstallerFailure after leaving
    a half-written directory behind, the way a real failed copy would.
    """

    def __init__(self, plugins_dir: Path, failures: dict[str, str] | None = None):
        self.plugins_dir = plugins_dir
        self.failures = failures or {}
        self.calls: list[tuple[str, str]] = []

    def _write(self, descriptor: str, marker: str) -> None:
        target = self.plugins_dir / descriptor.split("/")[0]
        if descriptor in self.failures:
            target.mkdir(parents=True, exist_ok=True)
            (target / "partial.tmp").write_text("half written")
            raise InstallerFailure(self.failures[descriptor])
        if target.exists():
            shutil.rmtree(target)
        target.mkdir(parents=True)
        (target / "version.txt").write_text(marker)

    def install(self, source, descriptor):
        self.calls.append(("install", descriptor))
        self._write(descriptor, f"installed from {source}")

    def update(self, source, descriptor):
        self.calls.append(("update", descriptor))
        self._write(descriptor, f"updated from {source}")


class FakeActivation:
    """Activation double keeping the active set in memory."""

    def __init__(self, active: set[str] | None = None, failures: dict[str, str] | None = None):
        self.active = set(active or ())
        self.failures = failures or {}
        self.calls: list[tuple[str, bool]] = []

    def is_active(self, descriptor):
        return descriptor in self.active

    def activate(self, descriptor, network_wide=False):
        self.calls.append((descriptor, network_wide))
        if descriptor in self.failures:
            raise ActivationFailure(self.failures[descriptor])
        self.active.add(descriptor)


def make_plugin(plugins_dir: Path, slug: str, version: str = "1.0.0") -> Path:
    """Create an installed plugin directory with a couple of files."""
    plugin_dir = plugins_dir / slug
    (plugin_dir / "includes").mkdir(parents=True, exist_ok=True)
    (plugin_dir / f"{slug}.php").write_text(f"<?php /* Version: {version} */")
    (plugin_dir / "includes" / "helpers.php").write_text("<?php // helpers")
    (plugin_dir / "version.txt").write_text(version)
    return plugin_dir


def snapshot_tree(root: Path) -> dict[str, str]:
    """Relative path -> contents of every file under root."""
    return {
        str(p.relative_to(root)): p.read_text()
        for p in sorted(root.rglob("*"))
        if p.is_file()
    }


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def test_config(temp_dir):
    """Create a test configuration rooted in the temp directory."""
    config = Config(config_dir=temp_dir)
    config.ensure_directories()
    return config


@pytest.fixture
def fake_installer(test_config):
    """Installer double writing into the test plugins directory."""
    return FakeInstaller(test_config.plugins_dir)


@pytest.fixture
def fake_activation():
    """Activation double with nothing active."""
    return FakeActivation()


@pytest.fixture
def install_item():
    """A new-install package item."""
    return PackageItem(
        slug="hello-dolly",
        action=ItemAction.INSTALL,
        name="Hello Dolly",
        target_version="1.7.2",
        source_path=Path("/staging/hello-dolly.zip"),
    )


@pytest.fixture
def update_item(test_config):
    """An update package item whose plugin is already installed."""
    make_plugin(test_config.plugins_dir, "akismet", "5.2")
    return PackageItem(
        slug="akismet",
        action=ItemAction.UPDATE,
        name="Akismet Anti-Spam",
        target_version="5.3",
        installed_version="5.2",
        source_path=Path("/staging/akismet.zip"),
    )
