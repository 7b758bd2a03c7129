"""Module for an in memory release ledger."""

import logging

from .ledger import ReleaseLedger
from .release import Release

_LOGGER = logging.getLogger(__name__)


class InMemoryLedger(ReleaseLedger):
    """In-memory implementation of the ReleaseLedger interface."""

    def __init__(self) -> None:
        """Initialize the InMemoryLedger."""
        super().__init__()
        self._releases: dict[str, list[Release]] = {}

    def _read_history(self, name: str) -> list[Release]:
        return list(self._releases.get(name, []))

    def _write(self, release: Release) -> None:
        history = self._releases.setdefault(release.name, [])
        if release.revision <= len(history):
            history[release.revision - 1] = release
        else:
            history.append(release)

    def _names(self) -> list[str]:
        return list(self._releases)
