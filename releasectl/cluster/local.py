"""Module for a cluster simulated in a local directory.

Each resource is stored as a YAML document at `<root>/<kind>/<name>.yaml`. This
allows the command line tool to exercise a full release lifecycle without a
live cluster.
"""

import logging
from pathlib import Path

import aiofiles
import aiofiles.os
from aiofiles.ospath import exists, isdir
import yaml

from releasectl.exceptions import (
    PermanentClusterError,
    ResourceExistsError,
    ResourceNotFoundError,
)
from releasectl.manifest import Manifest, ResourceKey

from .cluster import Cluster

_LOGGER = logging.getLogger(__name__)


class LocalCluster(Cluster):
    """Cluster implementation that stores resources as files."""

    def __init__(self, root: Path) -> None:
        """Initialize the LocalCluster."""
        self._root = root

    def _path(self, kind: str, name: str) -> Path:
        if "/" in kind or "/" in name or kind.startswith(".") or name.startswith("."):
            raise PermanentClusterError(f"Invalid resource identifier {kind}/{name}")
        return self._root / kind / f"{name}.yaml"

    async def _write(self, manifest: Manifest) -> None:
        path = self._path(manifest.kind, manifest.name)
        await aiofiles.os.makedirs(path.parent, exist_ok=True)
        async with aiofiles.open(str(path), mode="w") as resource_file:
            await resource_file.write(manifest.doc_yaml())

    async def create_resource(self, manifest: Manifest) -> None:
        """Create a resource, failing with ResourceExistsError if present."""
        if await exists(self._path(manifest.kind, manifest.name)):
            raise ResourceExistsError(f"{manifest.key} already exists")
        _LOGGER.debug("Creating %s", manifest.key)
        await self._write(manifest)

    async def update_resource(self, manifest: Manifest) -> None:
        """Replace a resource, failing with ResourceNotFoundError if absent."""
        if not await exists(self._path(manifest.kind, manifest.name)):
            raise ResourceNotFoundError(f"{manifest.key} not found")
        _LOGGER.debug("Updating %s", manifest.key)
        await self._write(manifest)

    async def delete_resource(self, kind: str, name: str) -> None:
        """Delete a resource, failing with ResourceNotFoundError if absent."""
        path = self._path(kind, name)
        if not await exists(path):
            raise ResourceNotFoundError(f"{ResourceKey(kind, name)} not found")
        _LOGGER.debug("Deleting %s", ResourceKey(kind, name))
        await aiofiles.os.remove(path)

    async def get_resource(self, kind: str, name: str) -> Manifest | None:
        """Return the resource, or None if it does not exist."""
        path = self._path(kind, name)
        if not await exists(path):
            return None
        async with aiofiles.open(str(path)) as resource_file:
            content = await resource_file.read()
        return Manifest.parse_doc(yaml.load(content, Loader=yaml.SafeLoader))

    async def list_resources(self) -> list[ResourceKey]:
        """Return the keys of all resources in the cluster."""
        if not await isdir(self._root):
            return []
        return sorted(
            ResourceKey(kind=path.parent.name, name=path.stem)
            for path in self._root.glob("*/*.yaml")
        )
