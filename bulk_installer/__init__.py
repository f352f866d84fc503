"""Bulk Plugin Installer - batch install, update and roll back plugins."""

__version__ = "0.1.0"
