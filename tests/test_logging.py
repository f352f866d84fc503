"""Tests for logging configuration."""

import logging

from bulk_installer.core.logging_config import (
    format_action,
    get_logger,
    log_action,
    setup_logging,
)


def _flush():
    for name in ("main", "activity"):
        for handler in get_logger(name).handlers:
            handler.flush()


class TestSetupLogging:
    """Tests for setup_logging and the actions log."""

    def test_creates_log_files(self, temp_dir):
        """Test that main and actions logs are written."""
        logs_dir = temp_dir / "logs"
        setup_logging(logs_dir, log_level=logging.INFO, console_output=False)

        logging.getLogger("bulk_installer.test").info("hello main")
        log_action("install", "akismet", "success", batch_id="bpi_1")
        log_action("update", "jetpack", "failed", message="Download failed.")
        _flush()

        assert "hello main" in (logs_dir / "main.log").read_text()
        actions = (logs_dir / "actions.log").read_text()
        assert "INSTALL | akismet | SUCCESS | batch=bpi_1" in actions
        assert "ERROR" in actions and "UPDATE | jetpack | FAILED | Download failed." in actions

    def test_actions_do_not_reach_main_log(self, temp_dir):
        """Test the actions logger does not propagate."""
        logs_dir = temp_dir / "logs"
        setup_logging(logs_dir, console_output=False)

        log_action("install", "only-in-actions", "success")
        _flush()

        main_log = logs_dir / "main.log"
        assert not main_log.exists() or "only-in-actions" not in main_log.read_text()

    def test_module_errors_reach_main_log(self, temp_dir):
        """Test diagnostics from the actions package are not captured by the actions log."""
        logs_dir = temp_dir / "logs"
        setup_logging(logs_dir, console_output=False)

        logging.getLogger("bulk_installer.actions.processor").critical("restore failed for akismet")
        _flush()

        assert "restore failed for akismet" in (logs_dir / "main.log").read_text()
        actions_log = logs_dir / "actions.log"
        assert not actions_log.exists() or "restore failed" not in actions_log.read_text()

    def test_actions_logged_when_quiet(self, temp_dir):
        """Test item outcomes are recorded even at WARNING verbosity."""
        logs_dir = temp_dir / "logs"
        setup_logging(logs_dir, log_level=logging.WARNING, console_output=False)

        log_action("install", "akismet", "success")
        _flush()

        assert "INSTALL | akismet | SUCCESS" in (logs_dir / "actions.log").read_text()

    def test_setup_twice_replaces_handlers(self, temp_dir):
        """Test repeated setup does not stack handlers."""
        setup_logging(temp_dir / "a", console_output=False)
        setup_logging(temp_dir / "b", console_output=False)

        assert len(get_logger("activity").handlers) == 1
        assert len(get_logger("main").handlers) == 1

    def test_child_logger(self):
        """Test dotted names resolve under the package logger."""
        assert get_logger("core.store").name == "bulk_installer.core.store"
        assert get_logger("main").name == "bulk_installer"


class TestFormatAction:
    """Tests for the actions.log line layout."""

    def test_full_line(self):
        """Test every optional field is included in order."""
        line = format_action(
            "update",
            "akismet",
            "failed",
            batch_id="bpi_1",
            from_version="5.2",
            to_version="5.3",
            is_dry_run=True,
            message="Download failed.",
        )
        assert line == "UPDATE | akismet | FAILED | batch=bpi_1 | 5.2 -> 5.3 | dry-run | Download failed."

    def test_minimal_line(self):
        """Test empty optional fields are left out."""
        assert format_action("batch_rollback", "bpi_1", "partial") == "BATCH_ROLLBACK | bpi_1 | PARTIAL"

    def test_missing_version_side(self):
        """Test a new install shows a dash for the previous version."""
        assert "- -> 1.0" in format_action("install", "hello", "success", to_version="1.0")
