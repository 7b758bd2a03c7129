"""Ledger module holding the history of every release."""

from abc import ABC, abstractmethod
from collections.abc import Generator
import contextlib
import contextvars
import dataclasses
import logging
import threading

from releasectl.exceptions import (
    InvalidStatusTransition,
    NameLocked,
    NoSuchRevision,
)

from .release import Release, utcnow
from .status import ALLOWED_TRANSITIONS, ReleaseStatus

_LOGGER = logging.getLogger(__name__)

# Locks held by the current task or thread, as (ledger id, release name) pairs.
_held_locks: contextvars.ContextVar[frozenset[tuple[int, str]]] = (
    contextvars.ContextVar("_held_locks", default=frozenset())
)


class ReleaseLedger(ABC):
    """Append-only history of releases, keyed by release name.

    Revisions for a name are contiguous starting at 1, and at most one revision
    per name is deployed at a time. Each name has an advisory lock that is held
    for the duration of an install, upgrade, rollback or uninstall. The lock
    never blocks: a second holder fails immediately with NameLocked. Different
    names do not contend with each other.

    Subclasses implement the storage of individual records.
    """

    def __init__(self) -> None:
        """Initialize ReleaseLedger."""
        self._mutex = threading.RLock()
        self._locked: set[str] = set()

    @abstractmethod
    def _read_history(self, name: str) -> list[Release]:
        """Return all stored records for the name ordered by revision."""

    @abstractmethod
    def _write(self, release: Release) -> None:
        """Store the record, replacing any record with the same revision."""

    @abstractmethod
    def _names(self) -> list[str]:
        """Return the names of all releases with at least one record."""

    def _acquire(self, name: str) -> None:
        """Hook for storage specific locking, may raise NameLocked."""

    def _release(self, name: str) -> None:
        """Hook for storage specific unlocking."""

    @contextlib.contextmanager
    def lock(self, name: str) -> Generator[None, None, None]:
        """Hold the advisory lock for a release name.

        The holder (and tasks it spawns) may call `append` and `mark_status` for
        the name; anyone else gets NameLocked until the lock is released.
        """
        held = _held_locks.get()
        if (id(self), name) in held:
            yield
            return
        with self._mutex:
            if name in self._locked:
                raise NameLocked(name)
            self._acquire(name)
            self._locked.add(name)
        _LOGGER.debug("Acquired lock for release %s", name)
        token = _held_locks.set(held | {(id(self), name)})
        try:
            yield
        finally:
            _held_locks.reset(token)
            with self._mutex:
                self._locked.discard(name)
                self._release(name)
            _LOGGER.debug("Released lock for release %s", name)

    def append(self, name: str, release: Release) -> int:
        """Store the release as the next revision for the name and return it."""
        if release.status == ReleaseStatus.DEPLOYED:
            raise InvalidStatusTransition(
                f"Release {name} must be appended before it is marked deployed"
            )
        with self.lock(name), self._mutex:
            history = self._read_history(name)
            revision = history[-1].revision + 1 if history else 1
            self._write(
                dataclasses.replace(
                    release, name=name, revision=revision, updated=utcnow()
                )
            )
        _LOGGER.info(
            "Recorded release %s revision %d (%s)", name, revision, release.status
        )
        return revision

    def latest_deployed(self, name: str) -> Release | None:
        """Return the currently deployed release for the name, if any."""
        with self._mutex:
            for release in reversed(self._read_history(name)):
                if release.status == ReleaseStatus.DEPLOYED:
                    return release
        return None

    def history(self, name: str) -> list[Release]:
        """Return every revision of the release in append order."""
        with self._mutex:
            return list(self._read_history(name))

    def get(self, name: str, revision: int) -> Release:
        """Return a specific revision of the release."""
        with self._mutex:
            for release in self._read_history(name):
                if release.revision == revision:
                    return release
        raise NoSuchRevision(name, revision)

    def mark_status(
        self,
        name: str,
        revision: int,
        status: ReleaseStatus,
        description: str | None = None,
    ) -> Release:
        """Transition a single revision to a new status.

        Marking a revision deployed also marks the previously deployed revision
        superseded, in the same critical section.
        """
        with self.lock(name), self._mutex:
            history = self._read_history(name)
            release = next((r for r in history if r.revision == revision), None)
            if release is None:
                raise NoSuchRevision(name, revision)
            if status not in ALLOWED_TRANSITIONS[release.status]:
                raise InvalidStatusTransition(
                    f"Release {name} revision {revision} cannot transition from "
                    f"{release.status} to {status}"
                )
            now = utcnow()
            if status == ReleaseStatus.DEPLOYED:
                # Demote first so an interrupted write never leaves two deployed
                for other in history:
                    if other.status == ReleaseStatus.DEPLOYED:
                        _LOGGER.debug(
                            "Superseding release %s revision %d", name, other.revision
                        )
                        self._write(
                            dataclasses.replace(
                                other, status=ReleaseStatus.SUPERSEDED, updated=now
                            )
                        )
            updated = dataclasses.replace(
                release,
                status=status,
                updated=now,
                description=(
                    description if description is not None else release.description
                ),
            )
            self._write(updated)
        _LOGGER.info("Release %s revision %d is %s", name, revision, status)
        return updated

    def list_releases(self) -> list[Release]:
        """Return the latest revision of every release, ordered by name."""
        with self._mutex:
            results = []
            for name in sorted(self._names()):
                if history := self._read_history(name):
                    results.append(history[-1])
            return results
