"""Output formatters for CLI output.

This module provides formatters for displaying batch previews, batch
results, rollback results, backups, profiles and the activity log as
text or JSON.
"""

import json
import sys
from pathlib import Path
from typing import Any, Optional

from bulk_installer.actions.batch import BatchRun, exit_code_for
from bulk_installer.core.activity_log import ActivityEntry
from bulk_installer.core.models import (
    BatchManifest,
    BatchRollbackResult,
    ItemAction,
    ItemStatus,
    PackageItem,
    ProcessResult,
)
from bulk_installer.core.profiles import Profile

__all__ = [
    "Colors",
    "JsonFormatter",
    "TableFormatter",
    "TextFormatter",
    "colorize",
    "exit_code_for",
    "get_formatter",
]

PREVIEW_HEADERS = ["Name", "Version", "Action", "Installed Version"]


# ANSI color codes for terminal output
class Colors:
    """ANSI color codes for terminal output."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    SUCCESS = "\033[92m"  # Green
    FAILURE = "\033[91m"  # Red
    WARNING = "\033[93m"  # Yellow
    INFO = "\033[94m"  # Blue

    @classmethod
    def is_supported(cls) -> bool:
        """Check if terminal supports colors."""
        return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def colorize(text: str, color: str, force: bool = False) -> str:
    """Apply color to text if supported.

    Args:
        text: Text to colorize
        color: ANSI color code
        force: Force color even if not supported

    Returns:
        Colored text or plain text
    """
    if force or Colors.is_supported():
        return f"{color}{text}{Colors.RESET}"
    return text


def get_status_color(status: ItemStatus) -> str:
    """Get color for an item status."""
    color_map = {
        ItemStatus.SUCCESS: Colors.SUCCESS,
        ItemStatus.FAILED: Colors.FAILURE,
        ItemStatus.INCOMPATIBLE: Colors.WARNING,
        ItemStatus.SKIPPED: Colors.DIM,
    }
    return color_map.get(status, Colors.RESET)


def result_label(result: ProcessResult) -> str:
    """Short outcome label for a non-successful result."""
    if result.rolled_back:
        return "failed and rolled back"
    if result.status == ItemStatus.INCOMPATIBLE:
        return "skipped"
    return "failed"


class TableFormatter:
    """Table-based output formatter."""

    def __init__(self, max_column_width: int = 40):
        """Initialize the table formatter.

        Args:
            max_column_width: Maximum width of any column
        """
        self.max_column_width = max_column_width

    def format_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        column_widths: Optional[list[int]] = None,
    ) -> str:
        """Format data as a table.

        Args:
            headers: Column headers
            rows: Table rows
            column_widths: Optional column widths

        Returns:
            Formatted table string
        """
        if not headers or not rows:
            return ""

        if column_widths is None:
            column_widths = []
            for i, header in enumerate(headers):
                max_len = len(header)
                for row in rows:
                    if i < len(row):
                        max_len = max(max_len, len(str(row[i])))
                column_widths.append(min(max_len, self.max_column_width))

        lines = [
            " | ".join(h[:w].ljust(w) for h, w in zip(headers, column_widths)),
            "-+-".join("-" * w for w in column_widths),
        ]
        for row in rows:
            lines.append(" | ".join(str(c)[:w].ljust(w) for c, w in zip(row, column_widths)))

        return "\n".join(lines)


class TextFormatter:
    """Plain text formatter with optional colors."""

    def __init__(self, use_colors: bool = True, verbose: bool = False):
        """Initialize the text formatter.

        Args:
            use_colors: Whether to use ANSI colors
            verbose: Whether to show every message of every result
        """
        self.use_colors = use_colors and Colors.is_supported()
        self.verbose = verbose
        self.table = TableFormatter()

    def _colorize(self, text: str, color: str) -> str:
        """Apply color if enabled."""
        if self.use_colors:
            return colorize(text, color, force=True)
        return text

    def format_preview(self, items: list[PackageItem]) -> str:
        """Table of what a batch is about to do."""
        rows = []
        for item in items:
            rows.append(
                [
                    item.display_name,
                    item.target_version or "Unknown",
                    "Update" if item.action == ItemAction.UPDATE else "New Install",
                    item.installed_version or "-",
                ]
            )
        return self.table.format_table(PREVIEW_HEADERS, rows)

    def format_result_line(self, result: ProcessResult) -> str:
        """One line per processed item."""
        if result.status == ItemStatus.SUCCESS:
            if result.is_dry_run:
                return f'Dry run: would {result.action.value} "{result.name}".'
            text = f"{result.name}: {result.action.value} successful."
            return self._colorize("Success: ", Colors.SUCCESS) + text

        reason = result.message or (
            "Incompatible." if result.status == ItemStatus.INCOMPATIBLE else "Unknown error."
        )
        label = result_label(result)
        return self._colorize("Warning: ", Colors.WARNING) + f"{result.name} - {label}: {reason}"

    def format_batch_run(self, run: BatchRun) -> str:
        """Per-item lines followed by the summary."""
        lines = [self.format_result_line(r) for r in run.results]

        if self.verbose:
            for result in run.results:
                status = self._colorize(result.status.value, get_status_color(result.status))
                lines.append(f"  {result.slug} [{status}]")
                lines.extend(f"    {message}" for message in result.messages)

        summary = run.summary
        lines.append("")
        lines.append(
            f"Summary: {summary.succeeded} succeeded, {summary.failed} failed, "
            f"{summary.total} total."
        )
        if summary.incompatible:
            lines.append(f"  Skipped (incompatible): {summary.incompatible}")
        if summary.rolled_back:
            lines.append(f"  Rolled back: {summary.rolled_back}")
        if not run.is_dry_run:
            lines.append(f"Batch ID: {run.batch_id}")
        return "\n".join(lines)

    def format_batch_list(self, manifests: list[BatchManifest]) -> str:
        """Table of batches that can still be rolled back."""
        if not manifests:
            return "No batches available for rollback."

        rows = [
            [
                m.batch_id,
                m.created_at,
                m.expires_at,
                str(m.summary.total),
                str(m.summary.succeeded),
                m.user_id or "-",
            ]
            for m in manifests
        ]
        return self.table.format_table(
            ["Batch ID", "Created", "Expires", "Plugins", "Succeeded", "User"], rows
        )

    def format_rollback_result(self, result: BatchRollbackResult) -> str:
        """Format a batch rollback result."""
        if result.success:
            status = self._colorize("SUCCESS", Colors.SUCCESS)
        else:
            status = self._colorize("PARTIAL" if result.results else "FAILED", Colors.FAILURE)

        lines = [f"Batch Rollback: {result.batch_id} [{status}]"]
        for step in result.results:
            step_status = self._colorize(step.status.value, get_status_color(step.status))
            lines.append(f"  {step.slug}: {step.action.value} [{step_status}] {step.message}")
        for failure in result.failures:
            lines.append(f"  {self._colorize('!', Colors.FAILURE)} {failure}")
        return "\n".join(lines)

    def format_log(self, entries: list[ActivityEntry], total: int | None = None, offset: int = 0) -> str:
        """Format activity log entries, newest first."""
        if not entries:
            return "No activity recorded."

        rows = []
        for entry in entries:
            versions = ""
            if entry.from_version or entry.to_version:
                versions = f"{entry.from_version or '-'} -> {entry.to_version or '-'}"
            rows.append(
                [
                    entry.timestamp,
                    entry.action + (" (dry run)" if entry.is_dry_run else ""),
                    entry.slug or entry.batch_id,
                    versions,
                    entry.status,
                    entry.message,
                ]
            )
        table = self.table.format_table(
            ["Time", "Action", "Plugin", "Versions", "Status", "Message"], rows
        )
        if total is None:
            return table
        return f"{table}\n\nShowing {offset + 1}-{offset + len(entries)} of {total} entries."

    def format_backups(self, backups: list[Path]) -> str:
        """List of backup directories, newest first."""
        if not backups:
            return "No backups on disk."
        lines = [f"Backups ({len(backups)}):"]
        lines.extend(f"  {path}" for path in backups)
        return "\n".join(lines)

    def format_profiles(self, profiles: list[Profile]) -> str:
        """Table of saved plugin profiles."""
        if not profiles:
            return "No profiles saved yet."

        rows = [[str(p.id), p.name, p.created_at, str(len(p.plugins))] for p in profiles]
        return self.table.format_table(["ID", "Name", "Created", "Plugins"], rows)

    def format_notice(self, notice: dict[str, str]) -> str:
        """One queued operator notice."""
        color = Colors.WARNING if notice.get("type") == "warning" else Colors.INFO
        return self._colorize("Notice: ", color) + notice.get("message", "")


class JsonFormatter:
    """JSON output formatter."""

    def __init__(self, indent: int = 2, compact: bool = False):
        """Initialize the JSON formatter.

        Args:
            indent: Indentation level
            compact: Whether to use compact output
        """
        self.indent = None if compact else indent

    def _dump(self, data: Any) -> str:
        return json.dumps(data, indent=self.indent, default=str)

    def format_preview(self, items: list[PackageItem]) -> str:
        return self._dump({"count": len(items), "plugins": [i.to_dict() for i in items]})

    def format_batch_run(self, run: BatchRun) -> str:
        return self._dump(run.to_dict())

    def format_batch_list(self, manifests: list[BatchManifest]) -> str:
        return self._dump({"count": len(manifests), "batches": [m.to_dict() for m in manifests]})

    def format_rollback_result(self, result: BatchRollbackResult) -> str:
        return self._dump(result.to_dict())

    def format_log(self, entries: list[ActivityEntry], total: int | None = None, offset: int = 0) -> str:
        data: dict[str, Any] = {"count": len(entries), "offset": offset}
        if total is not None:
            data["total"] = total
        data["entries"] = [e.__dict__ for e in entries]
        return self._dump(data)

    def format_backups(self, backups: list[Path]) -> str:
        return self._dump({"count": len(backups), "backups": [str(p) for p in backups]})

    def format_profiles(self, profiles: list[Profile]) -> str:
        return self._dump({"count": len(profiles), "profiles": [p.to_dict() for p in profiles]})

    def format_notice(self, notice: dict[str, str]) -> str:
        return self._dump(notice)


def get_formatter(as_json: bool = False, verbose: bool = False) -> TextFormatter | JsonFormatter:
    """Pick the formatter for the requested output mode."""
    if as_json:
        return JsonFormatter()
    return TextFormatter(verbose=verbose)
