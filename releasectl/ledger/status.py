"""Status of a release revision."""

from enum import StrEnum


class ReleaseStatus(StrEnum):
    """Lifecycle status of a release revision."""

    PENDING = "pending"
    DEPLOYED = "deployed"
    FAILED = "failed"
    SUPERSEDED = "superseded"
    UNINSTALLED = "uninstalled"


ALLOWED_TRANSITIONS: dict[ReleaseStatus, set[ReleaseStatus]] = {
    ReleaseStatus.PENDING: {ReleaseStatus.DEPLOYED, ReleaseStatus.FAILED},
    ReleaseStatus.DEPLOYED: {ReleaseStatus.SUPERSEDED, ReleaseStatus.UNINSTALLED},
    ReleaseStatus.FAILED: set(),
    ReleaseStatus.SUPERSEDED: set(),
    ReleaseStatus.UNINSTALLED: set(),
}
