"""Notification Manager - Batch and rollback summaries for operators.

Summaries are sent through a pluggable sender only when notifications
are enabled and at least one recipient is configured. Sending is fire and
forget: sender failures are logged, never raised. Short-lived operator
notices are kept in the state store for five minutes.
"""

import logging
import smtplib
from collections.abc import Callable
from datetime import datetime, timezone
from email.message import EmailMessage
from typing import TYPE_CHECKING, Optional

from bulk_installer.core.config import Config, get_default_config
from bulk_installer.core.models import BatchManifest, BatchRollbackResult
from bulk_installer.core.store import ExpiringStore

if TYPE_CHECKING:
    from bulk_installer.actions.batch import BatchRun

logger = logging.getLogger("bulk_installer.core.notifications")

BATCH_SUBJECT = "Bulk Plugin Installer: Batch Complete"
ROLLBACK_SUBJECT = "Bulk Plugin Installer: Batch Rollback"
NOTICE_KEY_PREFIX = "bpi_admin_notices_"
NOTICE_TTL_SECONDS = 300
NOTICES_STORE_FILE = "notices.json"

# (recipients, subject, body)
Sender = Callable[[list[str], str, str], None]


def log_sender(recipients: list[str], subject: str, body: str) -> None:
    """Sender that writes the message to the log instead of mailing it."""
    logger.info(f"Notification to {', '.join(recipients)}: {subject}\n{body}")


class SmtpSender:
    """Sender delivering messages through an SMTP relay."""

    def __init__(self, host: str, port: int = 25, from_address: str = "") -> None:
        self.host = host
        self.port = port
        self.from_address = from_address

    def __call__(self, recipients: list[str], subject: str, body: str) -> None:
        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = self.from_address
        message["To"] = ", ".join(recipients)
        message.set_content(body)

        with smtplib.SMTP(self.host, self.port, timeout=30) as smtp:
            smtp.send_message(message)


class NotificationManager:
    """Composes and dispatches operator notifications.

    Example:
        notifier = NotificationManager(config)
        notifier.send_batch_summary(run)
        notifier.queue_notice("admin", "Bulk operation complete.")
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        sender: Optional[Sender] = None,
        store: Optional[ExpiringStore] = None,
    ) -> None:
        """Initialize the notification manager.

        Args:
            config: Configuration object
            sender: Callable delivering (recipients, subject, body)
            store: Store holding queued notices
        """
        self.config = config or get_default_config()
        self.sender = sender or self._default_sender()
        self.store = store or ExpiringStore(self.config.state_dir / NOTICES_STORE_FILE)

    def _default_sender(self) -> Sender:
        settings = self.config.notifications
        if settings.smtp_host:
            return SmtpSender(settings.smtp_host, settings.smtp_port, settings.sender_address)
        return log_sender

    @property
    def recipients(self) -> list[str]:
        """Configured recipients without duplicates, in order."""
        seen: list[str] = []
        for address in self.config.notifications.recipients:
            address = address.strip()
            if address and address not in seen:
                seen.append(address)
        return seen

    def send_batch_summary(self, run: "BatchRun") -> bool:
        """Send the summary of a finished batch.

        Returns:
            True if the message was handed to the sender
        """
        summary = run.summary
        lines = self._header(run.user_id)
        lines.append("")
        lines.append("Plugins Processed:")
        lines.append("-" * 40)
        for result in run.results:
            lines.append(f"- {result.name} ({result.action.value}): {result.status.value}")
        lines.append("")
        lines.append("Summary:")
        lines.append(f"Total: {summary.total}")
        lines.append(f"Installed: {summary.installed}")
        lines.append(f"Updated: {summary.updated}")
        lines.append(f"Failed: {summary.failed}")

        return self._send(BATCH_SUBJECT, "\n".join(lines) + "\n")

    def send_rollback_summary(
        self,
        result: BatchRollbackResult,
        manifest: BatchManifest | None = None,
        reason: str = "",
    ) -> bool:
        """Send the summary of a batch rollback.

        Returns:
            True if the message was handed to the sender
        """
        lines = self._header(manifest.user_id if manifest else "")
        lines.append(f"Batch ID: {result.batch_id}")
        if reason:
            lines.append(f"Reason: {reason}")
        lines.append("")
        lines.append("Plugins Rolled Back:")
        lines.append("-" * 40)
        for step in result.results:
            lines.append(f"- {step.slug}: {step.status.value}")
        if result.failures:
            lines.append("")
            lines.append("Failures:")
            lines.extend(f"- {failure}" for failure in result.failures)

        return self._send(ROLLBACK_SUBJECT, "\n".join(lines) + "\n")

    def queue_notice(self, user_id: str, message: str, level: str = "success") -> None:
        """Keep a notice for user_id for the next five minutes."""
        key = f"{NOTICE_KEY_PREFIX}{user_id}"
        notices = self.store.get(key, [])
        notices.append({"message": message, "type": level})
        self.store.set(key, notices, ttl=NOTICE_TTL_SECONDS)

    def pop_notices(self, user_id: str) -> list[dict[str, str]]:
        """Return and clear queued notices for user_id."""
        key = f"{NOTICE_KEY_PREFIX}{user_id}"
        notices = self.store.get(key, [])
        if notices:
            self.store.delete(key)
        return notices

    def _header(self, user_id: str) -> list[str]:
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")
        return [f"Timestamp: {timestamp}", f"Admin User: {user_id or 'Unknown'}"]

    def _send(self, subject: str, body: str) -> bool:
        if not self.config.notifications.enabled:
            return False

        recipients = self.recipients
        if not recipients:
            return False

        try:
            self.sender(recipients, subject, body)
        except Exception as e:
            logger.error(f"Failed to send notification '{subject}': {e}")
            return False

        logger.info(f"Sent notification '{subject}' to {len(recipients)} recipients")
        return True
