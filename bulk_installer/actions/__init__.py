"""Action modules for installing, updating and activating plugins."""

from .batch import BatchProcessor, BatchRun, exit_code_for
from .installer import Activation, ActivationRegistry, DirectoryInstaller, Installer
from .processor import ItemProcessor

__all__ = [
    # Primitives
    "Installer",
    "Activation",
    "DirectoryInstaller",
    "ActivationRegistry",
    # Processing
    "ItemProcessor",
    "BatchProcessor",
    "BatchRun",
    "exit_code_for",
]
