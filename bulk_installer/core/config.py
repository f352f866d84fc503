"""Configuration management for the Bulk Plugin Installer.

This module handles loading, saving, and validating configuration
from JSON files and environment variables.
"""

import json
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

# Default paths
DEFAULT_CONFIG_DIR = Path(os.environ.get("BPI_HOME", "~/.bulk-plugin-installer"))
DEFAULT_CONFIG_FILE = "config.json"
DEFAULT_PLUGINS_DIR = "plugins"
DEFAULT_BACKUPS_DIR = "backups"
DEFAULT_STATE_DIR = "state"
DEFAULT_LOGS_DIR = "logs"

# Accepted ranges, mirrored by validate_config()
MAX_PLUGINS_RANGE = (1, 100)
RETENTION_HOURS_RANGE = (1, 720)
DEFAULT_RETENTION_HOURS = 24

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


@dataclass
class InstallerConfig:
    """Configuration for install/update behavior."""

    auto_activate: bool = False
    auto_rollback: bool = True
    max_plugins: int = 20
    platform_version: str = "6.5"  # Version compared against requires_platform


@dataclass
class RollbackConfig:
    """Configuration for batch rollback."""

    retention_hours: int = DEFAULT_RETENTION_HOURS


@dataclass
class NotificationConfig:
    """Configuration for batch summary notifications."""

    enabled: bool = False
    recipients: list[str] = field(default_factory=list)
    sender_address: str = "bulk-installer@localhost"
    smtp_host: str = ""  # Empty: notifications are written to the log only
    smtp_port: int = 25


@dataclass
class Config:
    """Main configuration container for the Bulk Plugin Installer.

    Attributes:
        config_dir: Base directory for all installer data
        plugins_dir: Directory holding one subdirectory per installed plugin
        backups_dir: Directory for pre-update backups
        state_dir: Directory for manifests, activation state and the activity log
        logs_dir: Directory for log files
        installer: Install/update configuration
        rollback: Batch rollback configuration
        notifications: Notification configuration
    """

    config_dir: Path = field(default_factory=lambda: DEFAULT_CONFIG_DIR.expanduser())
    plugins_dir: Path = field(default_factory=lambda: Path(DEFAULT_PLUGINS_DIR))
    backups_dir: Path = field(default_factory=lambda: Path(DEFAULT_BACKUPS_DIR))
    state_dir: Path = field(default_factory=lambda: Path(DEFAULT_STATE_DIR))
    logs_dir: Path = field(default_factory=lambda: Path(DEFAULT_LOGS_DIR))

    installer: InstallerConfig = field(default_factory=InstallerConfig)
    rollback: RollbackConfig = field(default_factory=RollbackConfig)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)

    def __post_init__(self) -> None:
        """Resolve relative paths to absolute paths."""
        self.config_dir = Path(self.config_dir).expanduser()
        for name in ("plugins_dir", "backups_dir", "state_dir", "logs_dir"):
            path = Path(getattr(self, name)).expanduser()
            if not path.is_absolute():
                path = self.config_dir / path
            setattr(self, name, path)

    @property
    def retention_hours(self) -> int:
        """Retention window in hours, floored to the default when non-positive."""
        hours = self.rollback.retention_hours
        return hours if hours >= 1 else DEFAULT_RETENTION_HOURS

    def ensure_directories(self) -> None:
        """Create all required directories if they don't exist."""
        for directory in [
            self.config_dir,
            self.plugins_dir,
            self.backups_dir,
            self.state_dir,
            self.logs_dir,
        ]:
            directory.mkdir(parents=True, exist_ok=True)

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary for JSON serialization."""
        return {
            "config_dir": str(self.config_dir),
            "plugins_dir": str(self.plugins_dir),
            "backups_dir": str(self.backups_dir),
            "state_dir": str(self.state_dir),
            "logs_dir": str(self.logs_dir),
            "installer": {
                "auto_activate": self.installer.auto_activate,
                "auto_rollback": self.installer.auto_rollback,
                "max_plugins": self.installer.max_plugins,
                "platform_version": self.installer.platform_version,
            },
            "rollback": {
                "retention_hours": self.rollback.retention_hours,
            },
            "notifications": {
                "enabled": self.notifications.enabled,
                "recipients": list(self.notifications.recipients),
                "sender_address": self.notifications.sender_address,
                "smtp_host": self.notifications.smtp_host,
                "smtp_port": self.notifications.smtp_port,
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Config":
        """Create configuration from dictionary."""
        config_dir = Path(data.get("config_dir", DEFAULT_CONFIG_DIR)).expanduser()

        config = cls(
            config_dir=config_dir,
            plugins_dir=Path(data.get("plugins_dir", DEFAULT_PLUGINS_DIR)),
            backups_dir=Path(data.get("backups_dir", DEFAULT_BACKUPS_DIR)),
            state_dir=Path(data.get("state_dir", DEFAULT_STATE_DIR)),
            logs_dir=Path(data.get("logs_dir", DEFAULT_LOGS_DIR)),
        )

        if "installer" in data:
            installer_data = data["installer"]
            config.installer = InstallerConfig(
                auto_activate=installer_data.get("auto_activate", False),
                auto_rollback=installer_data.get("auto_rollback", True),
                max_plugins=int(installer_data.get("max_plugins", 20)),
                platform_version=str(installer_data.get("platform_version", "6.5")),
            )

        if "rollback" in data:
            config.rollback = RollbackConfig(
                retention_hours=int(
                    data["rollback"].get("retention_hours", DEFAULT_RETENTION_HOURS)
                ),
            )

        if "notifications" in data:
            notify_data = data["notifications"]
            recipients = notify_data.get("recipients", [])
            if isinstance(recipients, str):
                recipients = [r.strip() for r in recipients.split(",") if r.strip()]
            config.notifications = NotificationConfig(
                enabled=notify_data.get("enabled", False),
                recipients=list(recipients),
                sender_address=notify_data.get("sender_address", "bulk-installer@localhost"),
                smtp_host=notify_data.get("smtp_host", ""),
                smtp_port=int(notify_data.get("smtp_port", 25)),
            )

        return config


def validate_config(config: Config) -> list[str]:
    """Check configuration values against their accepted ranges.

    Args:
        config: Configuration to validate.

    Returns:
        List of human-readable problems (empty if the config is valid).
    """
    problems = []

    low, high = MAX_PLUGINS_RANGE
    if not low <= config.installer.max_plugins <= high:
        problems.append(f"installer.max_plugins must be between {low} and {high}")

    low, high = RETENTION_HOURS_RANGE
    if not low <= config.rollback.retention_hours <= high:
        problems.append(f"rollback.retention_hours must be between {low} and {high}")

    for recipient in config.notifications.recipients:
        if not _EMAIL_PATTERN.match(recipient):
            problems.append(f"notifications.recipients: invalid address '{recipient}'")

    if config.notifications.enabled and not config.notifications.recipients:
        problems.append("notifications.enabled is set but no recipients are configured")

    return problems


def load_config(config_path: Path | None = None) -> Config:
    """Load configuration from file.

    Args:
        config_path: Path to config file. If None, uses default location.

    Returns:
        Config object with loaded settings.

    Raises:
        json.JSONDecodeError: If config file contains invalid JSON.
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_DIR.expanduser() / DEFAULT_CONFIG_FILE

    if not config_path.exists():
        # Return default config if no config file exists
        return Config()

    with open(config_path, encoding="utf-8") as f:
        data = json.load(f)

    return Config.from_dict(data)


def save_config(config: Config, config_path: Path | None = None) -> None:
    """Save configuration to file.

    Args:
        config: Config object to save.
        config_path: Path to config file. If None, uses default location.
    """
    if config_path is None:
        config_path = config.config_dir / DEFAULT_CONFIG_FILE

    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "w", encoding="utf-8") as f:
        json.dump(config.to_dict(), f, indent=2)


def get_default_config() -> Config:
    """Get the default configuration.

    Returns:
        A new Config object with default settings.
    """
    return Config()
