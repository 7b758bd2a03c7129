"""Interface to the cluster that stores and runs resources."""

from abc import ABC, abstractmethod

from releasectl.manifest import Manifest


class Cluster(ABC):
    """Narrow interface to a cluster API used by the reconciler.

    Implementations raise TransientClusterError for failures that may succeed
    when retried (e.g. a dependency that is not ready yet) and
    PermanentClusterError for everything else.
    """

    @abstractmethod
    async def create_resource(self, manifest: Manifest) -> None:
        """Create a resource, failing with ResourceExistsError if present."""

    @abstractmethod
    async def update_resource(self, manifest: Manifest) -> None:
        """Replace a resource, failing with ResourceNotFoundError if absent."""

    @abstractmethod
    async def delete_resource(self, kind: str, name: str) -> None:
        """Delete a resource, failing with ResourceNotFoundError if absent."""

    @abstractmethod
    async def get_resource(self, kind: str, name: str) -> Manifest | None:
        """Return the resource, or None if it does not exist."""
