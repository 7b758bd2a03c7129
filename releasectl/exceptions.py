"""Exceptions related to releasectl."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .reconciler import Operation, ReconcileResult
    from .manifest import ResourceKey

__all__ = [
    "ReleaseException",
    "InputException",
    "MalformedOverlay",
    "RenderError",
    "ChartException",
    "AlreadyExists",
    "ReleaseNotFound",
    "NoSuchRevision",
    "NameLocked",
    "InvalidStatusTransition",
    "ReconcileError",
    "CommandException",
    "ClusterException",
    "TransientClusterError",
    "PermanentClusterError",
    "ResourceNotFoundError",
    "ResourceExistsError",
]


class ReleaseException(Exception):
    """Generic base exception used for this library."""


class InputException(ReleaseException):
    """Raised when the input files or values are not formatted as expected."""


class MalformedOverlay(InputException):
    """Raised when a values overlay cannot be parsed into key/value pairs."""


class RenderError(InputException):
    """Raised when a chart template cannot be rendered into manifests."""

    def __init__(self, template_id: str, cause: str | Exception) -> None:
        super().__init__(f"Error rendering template '{template_id}': {cause}")
        self.template_id = template_id
        self.cause = cause


class ChartException(InputException):
    """Raised when a chart directory is missing or has an invalid layout."""


class AlreadyExists(ReleaseException):
    """Raised when installing a release name that is already deployed."""

    def __init__(self, release_name: str, revision: int) -> None:
        super().__init__(
            f"Release {release_name} already exists (deployed revision {revision})"
        )
        self.release_name = release_name
        self.revision = revision


class ReleaseNotFound(ReleaseException):
    """Raised when an operation requires a release that does not exist."""

    def __init__(self, release_name: str, message: str | None = None) -> None:
        super().__init__(message or f"Release {release_name} not found")
        self.release_name = release_name


class NoSuchRevision(ReleaseException):
    """Raised when a revision does not exist in a release history."""

    def __init__(self, release_name: str, revision: int) -> None:
        super().__init__(f"Release {release_name} has no revision {revision}")
        self.release_name = release_name
        self.revision = revision


class NameLocked(ReleaseException):
    """Raised when another operation is already in progress for a release name."""

    def __init__(self, release_name: str) -> None:
        super().__init__(
            f"Release {release_name} is locked by another operation in progress"
        )
        self.release_name = release_name


class InvalidStatusTransition(ReleaseException):
    """Raised when a release status change is not allowed."""


class ReconcileError(ReleaseException):
    """Raised when a resource operation fails permanently or exhausts its retries.

    Operations applied before the failure are left in place.
    """

    def __init__(
        self,
        operation: "Operation",
        cause: Exception | None,
        result: "ReconcileResult",
        *,
        release_name: str | None = None,
        revision: int | None = None,
    ) -> None:
        self.operation = operation
        self.cause = cause
        self.result = result
        self.release_name = release_name
        self.revision = revision
        prefix = ""
        if release_name is not None:
            prefix = f"Release {release_name} revision {revision}: "
        super().__init__(
            f"{prefix}Failed to {operation.action} {operation.key}: "
            f"{cause or 'Unknown error'}"
        )

    @property
    def resource(self) -> "ResourceKey":
        """The resource whose operation failed."""
        return self.operation.key

    def with_release(self, release_name: str, revision: int) -> "ReconcileError":
        """Return a copy of this error annotated with the release it belongs to."""
        return ReconcileError(
            self.operation,
            self.cause,
            self.result,
            release_name=release_name,
            revision=revision,
        )


class CommandException(ReleaseException):
    """Raised when there is a failure running a subcommand."""


class ClusterException(ReleaseException):
    """Raised by a cluster when a resource operation fails."""


class TransientClusterError(ClusterException):
    """A cluster failure that may succeed when retried."""


class PermanentClusterError(ClusterException):
    """A cluster failure that will not succeed when retried."""


class ResourceNotFoundError(PermanentClusterError):
    """Raised when a resource does not exist in the cluster."""


class ResourceExistsError(PermanentClusterError):
    """Raised when creating a resource that already exists in the cluster."""
