"""Installer and Activation primitives.

The item processor talks to two narrow interfaces, Installer and
Activation. This module defines them and provides the local
implementations used by the command-line front-end:

- DirectoryInstaller unpacks a staged ZIP archive (or copies an
  extracted directory) into ``<plugins_dir>/<slug>``.
- ActivationRegistry keeps the set of active plugin descriptors, split
  into site-local and network-wide sets, in the state store.
"""

import logging
import shutil
import tempfile
import zipfile
from pathlib import Path
from typing import Optional, Protocol

from bulk_installer.core.config import Config, get_default_config
from bulk_installer.core.errors import ActivationFailure, InstallerFailure
from bulk_installer.core.models import descriptor_dirname
from bulk_installer.core.store import ExpiringStore

logger = logging.getLogger("bulk_installer.actions.installer")

STATE_FILE = "options.json"
ACTIVE_PLUGINS_KEY = "active_plugins"
ACTIVE_NETWORK_PLUGINS_KEY = "active_sitewide_plugins"


class Installer(Protocol):
    """Places a staged package into the plugins directory.

    Both methods raise InstallerFailure when the package could not be
    placed; any other exception is treated the same way by callers.
    """

    def install(self, source: Path, descriptor: str) -> None: ...

    def update(self, source: Path, descriptor: str) -> None: ...


class Activation(Protocol):
    """Tracks which plugins are active."""

    def is_active(self, descriptor: str) -> bool: ...

    def activate(self, descriptor: str, network_wide: bool = False) -> None: ...


class DirectoryInstaller:
    """Installer that unpacks packages into a local plugins directory.

    Example:
        installer = DirectoryInstaller(config)
        installer.install(Path("akismet.zip"), "akismet/akismet.php")
    """

    def __init__(self, config: Optional[Config] = None, plugins_dir: Optional[Path] = None) -> None:
        """Initialize the installer.

        Args:
            config: Configuration object
            plugins_dir: Override plugins directory
        """
        self.config = config or get_default_config()
        self.plugins_dir = Path(plugins_dir or self.config.plugins_dir)

    def install(self, source: Path, descriptor: str) -> None:
        """Install a new package. Fails if the destination already exists."""
        destination = self.plugins_dir / descriptor_dirname(descriptor)
        if destination.exists():
            raise InstallerFailure("Destination folder already exists.")
        self._place(source, destination)
        logger.info(f"Installed {descriptor} into {destination}")

    def update(self, source: Path, descriptor: str) -> None:
        """Replace an installed package with the staged one."""
        destination = self.plugins_dir / descriptor_dirname(descriptor)
        if destination.exists():
            try:
                shutil.rmtree(destination)
            except OSError as e:
                raise InstallerFailure(f"Could not remove the old plugin: {e}") from e
        self._place(source, destination)
        logger.info(f"Updated {descriptor} in {destination}")

    def _place(self, source: Path, destination: Path) -> None:
        if source is None:
            raise InstallerFailure("No package source was provided.")
        source = Path(source)
        if not source.exists():
            raise InstallerFailure(f"Package source does not exist: {source}")

        self.plugins_dir.mkdir(parents=True, exist_ok=True)
        try:
            if source.is_dir():
                shutil.copytree(source, destination, symlinks=True)
            elif zipfile.is_zipfile(source):
                self._extract_zip(source, destination)
            else:
                raise InstallerFailure(f"Unsupported package source: {source.name}")
        except (OSError, shutil.Error, zipfile.BadZipFile) as e:
            raise InstallerFailure(f"Could not copy package files: {e}") from e

    def _extract_zip(self, archive: Path, destination: Path) -> None:
        with tempfile.TemporaryDirectory(dir=self.plugins_dir, prefix=".unpack-") as tmp:
            staging = Path(tmp)
            with zipfile.ZipFile(archive) as zf:
                for member in zf.namelist():
                    target = (staging / member).resolve()
                    if not target.is_relative_to(staging.resolve()):
                        raise InstallerFailure(f"Archive entry escapes the package: {member}")
                zf.extractall(staging)

            entries = [p for p in staging.iterdir() if p.name != "__MACOSX"]
            # Archives usually wrap the plugin in a single top-level folder
            root = entries[0] if len(entries) == 1 and entries[0].is_dir() else staging
            shutil.copytree(root, destination, symlinks=True)


class ActivationRegistry:
    """Active-plugin state kept in the state store.

    Example:
        registry = ActivationRegistry(config)
        registry.activate("akismet/akismet.php")
        registry.is_active("akismet/akismet.php")  # True
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        store: Optional[ExpiringStore] = None,
        plugins_dir: Optional[Path] = None,
    ) -> None:
        """Initialize the registry.

        Args:
            config: Configuration object
            store: Store holding the active sets
            plugins_dir: Override plugins directory
        """
        self.config = config or get_default_config()
        self.store = store or ExpiringStore(self.config.state_dir / STATE_FILE)
        self.plugins_dir = Path(plugins_dir or self.config.plugins_dir)

    def is_active(self, descriptor: str) -> bool:
        return descriptor in self.active_plugins(network_wide=False) or (
            descriptor in self.active_plugins(network_wide=True)
        )

    def active_plugins(self, network_wide: bool = False) -> list[str]:
        key = ACTIVE_NETWORK_PLUGINS_KEY if network_wide else ACTIVE_PLUGINS_KEY
        return list(self.store.get(key, []))

    def activate(self, descriptor: str, network_wide: bool = False) -> None:
        """Mark a plugin active.

        Raises:
            ActivationFailure: the plugin is not installed
        """
        if not (self.plugins_dir / descriptor_dirname(descriptor)).is_dir():
            raise ActivationFailure("Plugin file does not exist.")

        key = ACTIVE_NETWORK_PLUGINS_KEY if network_wide else ACTIVE_PLUGINS_KEY
        self.store.update(key, lambda active: _with(active or [], descriptor), default=[])
        logger.info(f"Activated {descriptor}{' network-wide' if network_wide else ''}")


def _with(active: list[str], descriptor: str) -> list[str]:
    return active if descriptor in active else sorted([*active, descriptor])
