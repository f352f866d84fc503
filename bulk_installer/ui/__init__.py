"""User interface modules.

This package contains the command-line interface with its formatters
and commands.
"""

from .cli import JsonFormatter, TableFormatter, TextFormatter

__all__ = [
    "TextFormatter",
    "JsonFormatter",
    "TableFormatter",
]
