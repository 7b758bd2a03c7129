"""Module for an in memory cluster."""

import asyncio
import copy
import logging

from releasectl.exceptions import (
    ClusterException,
    ResourceExistsError,
    ResourceNotFoundError,
)
from releasectl.manifest import Manifest, ResourceKey

from .cluster import Cluster

_LOGGER = logging.getLogger(__name__)


class InMemoryCluster(Cluster):
    """In-memory implementation of the Cluster interface.

    Every mutating call is recorded in `calls` as an (operation, resource key)
    tuple so the sequence of applied operations can be inspected. Failures can
    be injected with `fail` to exercise retry and error handling.
    """

    def __init__(self, latency: float = 0.0) -> None:
        """Initialize the InMemoryCluster."""
        self._resources: dict[ResourceKey, Manifest] = {}
        self._latency = latency
        self._failures: dict[tuple[str, ResourceKey], list[ClusterException]] = {}
        self._in_flight = 0
        self.max_in_flight = 0
        self.calls: list[tuple[str, ResourceKey]] = []

    def fail(self, operation: str, key: ResourceKey, *errors: ClusterException) -> None:
        """Raise the errors from the next calls of the operation on the resource."""
        self._failures.setdefault((operation, key), []).extend(errors)

    async def _call(self, operation: str, key: ResourceKey) -> None:
        self._in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self._in_flight)
        try:
            await asyncio.sleep(self._latency)
        finally:
            self._in_flight -= 1
        self.calls.append((operation, key))
        if errors := self._failures.get((operation, key)):
            raise errors.pop(0)

    async def create_resource(self, manifest: Manifest) -> None:
        """Create a resource, failing with ResourceExistsError if present."""
        await self._call("create", manifest.key)
        if manifest.key in self._resources:
            raise ResourceExistsError(f"{manifest.key} already exists")
        _LOGGER.debug("Creating %s", manifest.key)
        self._resources[manifest.key] = copy.deepcopy(manifest)

    async def update_resource(self, manifest: Manifest) -> None:
        """Replace a resource, failing with ResourceNotFoundError if absent."""
        await self._call("update", manifest.key)
        if manifest.key not in self._resources:
            raise ResourceNotFoundError(f"{manifest.key} not found")
        _LOGGER.debug("Updating %s", manifest.key)
        self._resources[manifest.key] = copy.deepcopy(manifest)

    async def delete_resource(self, kind: str, name: str) -> None:
        """Delete a resource, failing with ResourceNotFoundError if absent."""
        key = ResourceKey(kind=kind, name=name)
        await self._call("delete", key)
        if self._resources.pop(key, None) is None:
            raise ResourceNotFoundError(f"{key} not found")
        _LOGGER.debug("Deleted %s", key)

    async def get_resource(self, kind: str, name: str) -> Manifest | None:
        """Return the resource, or None if it does not exist."""
        if (manifest := self._resources.get(ResourceKey(kind=kind, name=name))) is None:
            return None
        return copy.deepcopy(manifest)

    def list_resources(self) -> list[Manifest]:
        """Return all resources in the cluster, ordered by key."""
        return [
            copy.deepcopy(self._resources[key]) for key in sorted(self._resources)
        ]
