"""Release records stored in the ledger."""

from dataclasses import dataclass, field
import datetime
from typing import Any

from releasectl.manifest import BaseManifest, ChartRef, Manifest

from .status import ReleaseStatus


def utcnow() -> datetime.datetime:
    """Return the current time in UTC."""
    return datetime.datetime.now(datetime.timezone.utc)


@dataclass
class Release(BaseManifest):
    """A single revision of a named deployment.

    A release records everything needed to reconstruct its manifests without
    rendering the chart again, which is what makes rollback possible.
    """

    name: str
    """The name of the release."""

    chart: ChartRef
    """The chart the manifests were rendered from."""

    values: dict[str, Any] = field(default_factory=dict)
    """Snapshot of the resolved values."""

    manifests: list[Manifest] = field(default_factory=list)
    """Snapshot of the rendered manifests."""

    status: ReleaseStatus = ReleaseStatus.PENDING
    """Lifecycle status of this revision."""

    revision: int = 0
    """Revision number, assigned when appended to the ledger."""

    updated: datetime.datetime = field(default_factory=utcnow)
    """Time of the last status change."""

    description: str = ""
    """Human readable summary of what happened to this revision."""
