"""Cluster implementation that shells out to `kubectl`."""

import logging
import re

import yaml

from releasectl import command
from releasectl.exceptions import (
    ClusterException,
    CommandException,
    PermanentClusterError,
    ResourceExistsError,
    ResourceNotFoundError,
    TransientClusterError,
)
from releasectl.manifest import Manifest, ResourceKey, strip_resource_attributes

from .cluster import Cluster

_LOGGER = logging.getLogger(__name__)

KUBECTL_BIN = "kubectl"

# Errors from the API server that are expected to clear up on their own
TRANSIENT_ERRORS = re.compile(
    "|".join(
        [
            r"connection refused",
            r"i/o timeout",
            r"timed out",
            r"TLS handshake timeout",
            r"TooManyRequests",
            r"ServiceUnavailable",
            r"InternalError",
            r"the object has been modified",
            r"etcdserver: request timed out",
        ]
    ),
    re.IGNORECASE,
)
NOT_FOUND_ERRORS = re.compile(r"\(NotFound\)|not found", re.IGNORECASE)
ALREADY_EXISTS_ERRORS = re.compile(r"\(AlreadyExists\)|already exists", re.IGNORECASE)


class KubectlException(CommandException):
    """Raised when there is a failure running a kubectl command."""


def classify_error(message: str, verb: str | None = None) -> ClusterException:
    """Map kubectl error output to a cluster exception.

    A create that reports something as not found refers to a dependency of the
    resource, such as its namespace, which may not be ready yet.
    """
    if ALREADY_EXISTS_ERRORS.search(message):
        return ResourceExistsError(message)
    if NOT_FOUND_ERRORS.search(message):
        if verb == "create":
            return TransientClusterError(message)
        return ResourceNotFoundError(message)
    if TRANSIENT_ERRORS.search(message):
        return TransientClusterError(message)
    return PermanentClusterError(message)


class KubectlCluster(Cluster):
    """Cluster implementation backed by the kubectl command line tool."""

    def __init__(
        self,
        context: str | None = None,
        namespace: str | None = None,
        kubectl: str = KUBECTL_BIN,
    ) -> None:
        """Initialize KubectlCluster."""
        self._flags: list[str] = []
        if context:
            self._flags.extend(["--context", context])
        if namespace:
            self._flags.extend(["--namespace", namespace])
        self._kubectl = kubectl

    async def _run(self, args: list[str], stdin: str | None = None) -> str:
        cmd = command.Command(
            [self._kubectl, *self._flags, *args], exc=KubectlException
        )
        try:
            return await command.run(
                cmd, stdin=stdin.encode("utf-8") if stdin is not None else None
            )
        except KubectlException as err:
            raise classify_error(str(err), verb=args[0]) from err

    async def create_resource(self, manifest: Manifest) -> None:
        """Create a resource, failing with ResourceExistsError if present."""
        await self._run(["create", "-f", "-"], stdin=manifest.doc_yaml())

    async def update_resource(self, manifest: Manifest) -> None:
        """Replace a resource, failing with ResourceNotFoundError if absent."""
        await self._run(["replace", "-f", "-"], stdin=manifest.doc_yaml())

    async def delete_resource(self, kind: str, name: str) -> None:
        """Delete a resource, failing with ResourceNotFoundError if absent."""
        await self._run(["delete", kind, name, "--wait=false"])

    async def get_resource(self, kind: str, name: str) -> Manifest | None:
        """Return the resource, or None if it does not exist."""
        try:
            out = await self._run(["get", kind, name, "-o", "yaml"])
        except ResourceNotFoundError:
            _LOGGER.debug("Resource %s not found", ResourceKey(kind, name))
            return None
        doc = yaml.load(out, Loader=yaml.SafeLoader)
        return Manifest.parse_doc(strip_resource_attributes(doc))
