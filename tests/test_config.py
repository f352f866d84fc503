"""Tests for configuration management."""

import json
from pathlib import Path
from tempfile import TemporaryDirectory

from bulk_installer.core.config import (
    Config,
    InstallerConfig,
    NotificationConfig,
    RollbackConfig,
    get_default_config,
    load_config,
    save_config,
    validate_config,
)


class TestInstallerConfig:
    """Tests for InstallerConfig."""

    def test_default_values(self):
        """Test default installer configuration values."""
        config = InstallerConfig()

        assert config.auto_activate is False
        assert config.auto_rollback is True
        assert config.max_plugins == 20


class TestRollbackConfig:
    """Tests for RollbackConfig and the effective retention window."""

    def test_default_values(self):
        """Test default retention."""
        assert RollbackConfig().retention_hours == 24

    def test_effective_retention(self):
        """Test that non-positive retention falls back to 24 hours."""
        config = Config()

        config.rollback.retention_hours = 0
        assert config.retention_hours == 24

        config.rollback.retention_hours = -3
        assert config.retention_hours == 24

        config.rollback.retention_hours = 48
        assert config.retention_hours == 48


class TestNotificationConfig:
    """Tests for NotificationConfig."""

    def test_default_values(self):
        """Test notifications are off by default."""
        config = NotificationConfig()

        assert config.enabled is False
        assert config.recipients == []
        assert config.smtp_host == ""


class TestConfig:
    """Tests for main Config class."""

    def test_relative_paths_resolve_under_config_dir(self):
        """Test that relative directories live under config_dir."""
        config = Config(config_dir=Path("/srv/bpi"))

        assert config.plugins_dir == Path("/srv/bpi/plugins")
        assert config.backups_dir == Path("/srv/bpi/backups")
        assert config.state_dir == Path("/srv/bpi/state")

    def test_absolute_paths_kept(self):
        """Test that absolute directories are not rebased."""
        config = Config(config_dir=Path("/srv/bpi"), plugins_dir=Path("/var/www/plugins"))
        assert config.plugins_dir == Path("/var/www/plugins")

    def test_ensure_directories(self):
        """Test directory creation."""
        with TemporaryDirectory() as tmpdir:
            config = Config(config_dir=Path(tmpdir) / "bpi")
            config.ensure_directories()

            assert config.config_dir.exists()
            assert config.plugins_dir.exists()
            assert config.backups_dir.exists()
            assert config.state_dir.exists()
            assert config.logs_dir.exists()

    def test_from_dict(self):
        """Test configuration deserialization from dictionary."""
        data = {
            "config_dir": "/srv/bpi",
            "installer": {"auto_activate": True, "max_plugins": 5},
            "rollback": {"retention_hours": 72},
            "notifications": {"enabled": True, "recipients": "a@example.com, b@example.com"},
        }

        config = Config.from_dict(data)

        assert config.installer.auto_activate is True
        assert config.installer.auto_rollback is True
        assert config.installer.max_plugins == 5
        assert config.rollback.retention_hours == 72
        assert config.notifications.recipients == ["a@example.com", "b@example.com"]

    def test_roundtrip(self):
        """Test configuration roundtrip through dict."""
        original = Config(config_dir=Path("/srv/bpi"))
        original.installer.auto_activate = True
        original.notifications.recipients = ["ops@example.com"]
        original.notifications.smtp_host = "mail.example.com"

        restored = Config.from_dict(original.to_dict())

        assert restored.to_dict() == original.to_dict()


class TestValidateConfig:
    """Tests for validate_config."""

    def test_default_is_valid(self):
        """Test the default configuration has no problems."""
        assert validate_config(Config()) == []

    def test_out_of_range_values(self):
        """Test range checks."""
        config = Config()
        config.installer.max_plugins = 0
        config.rollback.retention_hours = 1000

        problems = validate_config(config)

        assert any("max_plugins" in p for p in problems)
        assert any("retention_hours" in p for p in problems)

    def test_bad_recipient(self):
        """Test that malformed addresses are reported."""
        config = Config()
        config.notifications.recipients = ["not-an-address"]

        assert validate_config(config) == [
            "notifications.recipients: invalid address 'not-an-address'"
        ]

    def test_enabled_without_recipients(self):
        """Test enabling notifications with nobody to notify."""
        config = Config()
        config.notifications.enabled = True

        assert len(validate_config(config)) == 1


class TestConfigFileOperations:
    """Tests for config file save/load operations."""

    def test_save_and_load_config(self):
        """Test saving and loading configuration from file."""
        with TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "config.json"

            config = Config(config_dir=Path(tmpdir))
            config.installer.auto_rollback = False
            config.rollback.retention_hours = 6
            save_config(config, config_path)

            assert config_path.exists()
            assert json.loads(config_path.read_text())["rollback"]["retention_hours"] == 6

            loaded = load_config(config_path)
            assert loaded.installer.auto_rollback is False
            assert loaded.rollback.retention_hours == 6

    def test_load_nonexistent_returns_default(self):
        """Test loading from nonexistent file returns default config."""
        with TemporaryDirectory() as tmpdir:
            config = load_config(Path(tmpdir) / "nonexistent.json")

            assert config.installer.max_plugins == 20
            assert config.rollback.retention_hours == 24

    def test_get_default_config(self):
        """Test get_default_config function."""
        assert isinstance(get_default_config(), Config)
