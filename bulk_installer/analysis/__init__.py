"""Analysis modules for pre-install compatibility checks."""

from .compatibility import CompatibilityChecker, version_satisfies

__all__ = [
    "CompatibilityChecker",
    "version_satisfies",
]
