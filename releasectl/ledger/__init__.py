"""Ledger module for tracking the revision history of releases."""

from .file import FileLedger
from .in_memory import InMemoryLedger
from .ledger import ReleaseLedger
from .release import Release
from .status import ReleaseStatus

__all__ = [
    "ReleaseLedger",
    "InMemoryLedger",
    "FileLedger",
    "Release",
    "ReleaseStatus",
]
