"""Compatibility Checker - Finds reasons a package cannot be processed.

Compares each package's declared minimum platform and Python versions
against the running environment and flags slugs queued more than once
in the same batch.
"""

import logging
import platform
from collections import Counter
from typing import Optional

from packaging import version

from bulk_installer.core.config import Config, get_default_config
from bulk_installer.core.models import CompatibilityIssue, PackageItem

logger = logging.getLogger("bulk_installer.analysis.compatibility")


def version_satisfies(current: str, required: str) -> bool:
    """True if current >= required.

    Unparseable versions are treated as satisfied so a malformed header
    never blocks an install.
    """
    try:
        return version.parse(current) >= version.parse(required)
    except version.InvalidVersion:
        logger.warning(f"Cannot compare versions {current!r} and {required!r}")
        return True


class CompatibilityChecker:
    """Checker filling in PackageItem.compatibility_issues.

    Example:
        checker = CompatibilityChecker(config)
        items = checker.check_all(items)
        blocked = [i for i in items if i.compatibility_issues]
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        platform_version: Optional[str] = None,
        python_version: Optional[str] = None,
    ) -> None:
        """Initialize the checker.

        Args:
            config: Configuration object
            platform_version: Override the configured platform version
            python_version: Override the running interpreter version
        """
        self.config = config or get_default_config()
        self.platform_version = platform_version or self.config.installer.platform_version
        self.python_version = python_version or platform.python_version()

    def check_item(self, item: PackageItem) -> list[CompatibilityIssue]:
        """Version issues for a single item."""
        issues = []

        if item.requires_python and not version_satisfies(self.python_version, item.requires_python):
            issues.append(
                CompatibilityIssue(
                    type="python_version",
                    required=item.requires_python,
                    current=self.python_version,
                    message=(
                        f"Requires Python {item.requires_python} or higher. "
                        f"Current version: {self.python_version}."
                    ),
                )
            )

        if item.requires_platform and not version_satisfies(
            self.platform_version, item.requires_platform
        ):
            issues.append(
                CompatibilityIssue(
                    type="platform_version",
                    required=item.requires_platform,
                    current=self.platform_version,
                    message=(
                        f"Requires platform {item.requires_platform} or higher. "
                        f"Current version: {self.platform_version}."
                    ),
                )
            )

        return issues

    def check_slug_conflicts(self, items: list[PackageItem]) -> dict[str, CompatibilityIssue]:
        """Issues for slugs that appear more than once, keyed by slug."""
        counts = Counter(item.slug for item in items)
        return {
            slug: CompatibilityIssue(
                type="slug_conflict",
                message=(
                    f'Slug conflict: {count} plugins would install to the same '
                    f'directory "{slug}".'
                ),
            )
            for slug, count in counts.items()
            if count > 1
        }

    def check_all(self, items: list[PackageItem]) -> list[PackageItem]:
        """Fill in compatibility_issues on every item.

        Issues already present on an item are kept; new findings are
        appended after them.

        Returns:
            The same items, in order
        """
        conflicts = self.check_slug_conflicts(items)

        for item in items:
            issues = self.check_item(item)
            if item.slug in conflicts:
                issues.append(conflicts[item.slug])
            item.compatibility_issues = [*item.compatibility_issues, *issues]

        blocked = sum(1 for item in items if item.compatibility_issues)
        if blocked:
            logger.info(f"{blocked} of {len(items)} plugins have compatibility issues")
        return items
