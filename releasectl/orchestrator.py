"""Orchestrator for the release lifecycle.

This module sequences install, upgrade, rollback and uninstall of a named
release against the value store, renderer, ledger and reconciler. Every
mutating operation runs while holding the ledger lock for the release name, so
at most one operation is in progress per name while different names proceed
in parallel.

A release moves through the following states:

```
none -> pending -> deployed | failed
deployed -> pending (upgrade, rollback) -> deployed | failed
deployed -> uninstalled
```

Errors from resolving values or rendering templates abort the operation before
anything is recorded or applied. Reconcile failures are recorded on the new
revision as `failed` and re-raised; the previously deployed revision stays
current and nothing is rolled back implicitly.
"""

import asyncio
from collections.abc import Mapping, Sequence
import copy
from dataclasses import dataclass, field, replace
import logging
import re
from typing import Any

from .cluster import Cluster
from .config import OrchestratorConfig
from .context import trace_context
from .exceptions import (
    AlreadyExists,
    InputException,
    NoSuchRevision,
    ReconcileError,
    ReleaseNotFound,
)
from .ledger import Release, ReleaseLedger, ReleaseStatus
from .manifest import Chart, ResourceKey
from .reconciler import Action, Operation, OrderingStrategy, ReconcileResult, Reconciler
from .renderer import Renderer
from .values import resolve

__all__ = [
    "Orchestrator",
    "ReleaseResult",
    "UpgradePlan",
    "ReleaseStatusReport",
]

_LOGGER = logging.getLogger(__name__)

# Release names are used as resource name prefixes, so they follow DNS-1123
RELEASE_NAME_PATTERN = re.compile(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$")
MAX_RELEASE_NAME_LENGTH = 53


def check_release_name(name: str) -> None:
    """Raise InputException if the name is not a valid release name."""
    if len(name) > MAX_RELEASE_NAME_LENGTH or not RELEASE_NAME_PATTERN.match(name):
        raise InputException(
            f"Invalid release name '{name}': must be a lowercase DNS-1123 label of "
            f"at most {MAX_RELEASE_NAME_LENGTH} characters"
        )


@dataclass
class ReleaseResult:
    """A recorded release and the reconcile that deployed it."""

    release: Release
    reconcile: ReconcileResult


@dataclass
class UpgradePlan:
    """The changes an upgrade would make, computed without applying them."""

    release: Release
    """The release that would be recorded, not stored in the ledger."""

    previous: Release
    """The currently deployed release."""

    operations: list[Operation] = field(default_factory=list)

    @property
    def changes(self) -> list[Operation]:
        """Operations that would modify the cluster."""
        return [op for op in self.operations if op.action != Action.NOOP]


@dataclass
class ResourceState:
    """Live state of a resource belonging to a release."""

    key: ResourceKey
    present: bool


@dataclass
class ReleaseStatusReport:
    """Status of a release and its resources in the cluster."""

    release: Release
    resources: list[ResourceState] = field(default_factory=list)


class Orchestrator:
    """Drives release operations against a ledger and a cluster."""

    def __init__(
        self,
        ledger: ReleaseLedger,
        cluster: Cluster,
        config: OrchestratorConfig | None = None,
        renderer: Renderer | None = None,
        strategy: OrderingStrategy | None = None,
    ) -> None:
        """Initialize the orchestrator."""
        self.ledger = ledger
        self.cluster = cluster
        self.config = config or OrchestratorConfig()
        self._renderer = renderer or Renderer()
        self._reconciler = Reconciler(cluster, self.config.reconciler, strategy)

    def _build_release(
        self, name: str, chart: Chart, overlays: Sequence[Mapping[str, Any]]
    ) -> Release:
        """Resolve values and render the chart into a new pending release."""
        values = resolve(chart.defaults, overlays)
        manifests = self._renderer.render(chart, values, release_name=name)
        return Release(name=name, chart=chart.ref, values=values, manifests=manifests)

    def _require_deployed(self, name: str) -> Release:
        if (current := self.ledger.latest_deployed(name)) is None:
            raise ReleaseNotFound(name, f"Release {name} has no deployed revision")
        return current

    async def _deploy(
        self, release: Release, previous: Release | None, description: str
    ) -> ReleaseResult:
        """Record the release as pending, reconcile it and record the outcome."""
        name = release.name
        revision = self.ledger.append(name, release)
        _LOGGER.info("Reconciling release %s revision %d", name, revision)
        try:
            result = await self._reconciler.apply(
                release.manifests, previous.manifests if previous else None
            )
        except ReconcileError as err:
            self.ledger.mark_status(name, revision, ReleaseStatus.FAILED, str(err))
            raise err.with_release(name, revision) from err
        except asyncio.CancelledError:
            self.ledger.mark_status(
                name, revision, ReleaseStatus.FAILED, "Operation cancelled"
            )
            raise
        except Exception as err:
            self.ledger.mark_status(
                name, revision, ReleaseStatus.FAILED, f"{type(err).__name__}: {err}"
            )
            raise
        deployed = self.ledger.mark_status(
            name, revision, ReleaseStatus.DEPLOYED, description
        )
        return ReleaseResult(release=deployed, reconcile=result)

    async def install(
        self,
        name: str,
        chart: Chart,
        overlays: Sequence[Mapping[str, Any]] = (),
    ) -> ReleaseResult:
        """Install a chart as a new release."""
        check_release_name(name)
        with trace_context("install", name), self.ledger.lock(name):
            if (current := self.ledger.latest_deployed(name)) is not None:
                raise AlreadyExists(name, current.revision)
            release = self._build_release(name, chart, overlays)
            return await self._deploy(release, None, "Install complete")

    async def upgrade(
        self,
        name: str,
        chart: Chart,
        overlays: Sequence[Mapping[str, Any]] = (),
    ) -> ReleaseResult:
        """Upgrade a deployed release to a new chart or values."""
        check_release_name(name)
        with trace_context("upgrade", name), self.ledger.lock(name):
            current = self._require_deployed(name)
            release = self._build_release(name, chart, overlays)
            return await self._deploy(release, current, "Upgrade complete")

    def plan_upgrade(
        self,
        name: str,
        chart: Chart,
        overlays: Sequence[Mapping[str, Any]] = (),
    ) -> UpgradePlan:
        """Compute what an upgrade would change, without recording or applying it."""
        check_release_name(name)
        current = self._require_deployed(name)
        release = self._build_release(name, chart, overlays)
        next_revision = self.ledger.history(name)[-1].revision + 1
        return UpgradePlan(
            release=replace(release, revision=next_revision),
            previous=current,
            operations=self._reconciler.plan(release.manifests, current.manifests),
        )

    async def rollback(
        self, name: str, target_revision: int | None = None
    ) -> ReleaseResult:
        """Roll back to a prior revision by deploying a copy of it as a new revision.

        The target defaults to the revision immediately preceding the deployed
        revision.
        """
        check_release_name(name)
        with trace_context("rollback", name), self.ledger.lock(name):
            current = self._require_deployed(name)
            if target_revision is None:
                target_revision = current.revision - 1
            if target_revision < 1:
                raise NoSuchRevision(name, target_revision)
            target = self.ledger.get(name, target_revision)
            _LOGGER.info(
                "Rolling back release %s from revision %d to %d",
                name,
                current.revision,
                target_revision,
            )
            release = Release(
                name=name,
                chart=copy.deepcopy(target.chart),
                values=copy.deepcopy(target.values),
                manifests=copy.deepcopy(target.manifests),
            )
            return await self._deploy(
                release, current, f"Rollback to {target_revision}"
            )

    async def uninstall(self, name: str) -> ReleaseResult:
        """Delete every resource of the deployed release and mark it uninstalled."""
        check_release_name(name)
        with trace_context("uninstall", name), self.ledger.lock(name):
            current = self._require_deployed(name)
            try:
                result = await self._reconciler.apply([], current.manifests)
            except ReconcileError as err:
                raise err.with_release(name, current.revision) from err
            release = self.ledger.mark_status(
                name,
                current.revision,
                ReleaseStatus.UNINSTALLED,
                "Uninstallation complete",
            )
            return ReleaseResult(release=release, reconcile=result)

    def history(self, name: str) -> list[Release]:
        """Return every revision of the release."""
        return self.ledger.history(name)

    def get_release(self, name: str, revision: int | None = None) -> Release:
        """Return a revision of the release, the latest one by default."""
        if revision is not None:
            return self.ledger.get(name, revision)
        if not (history := self.ledger.history(name)):
            raise ReleaseNotFound(name)
        return history[-1]

    def list_releases(self) -> list[Release]:
        """Return the latest revision of every release."""
        return self.ledger.list_releases()

    async def status(self, name: str) -> ReleaseStatusReport:
        """Return the current release and whether its resources exist."""
        release = self.ledger.latest_deployed(name) or self.get_release(name)
        resources = []
        if release.status == ReleaseStatus.DEPLOYED:
            for manifest in release.manifests:
                live = await self.cluster.get_resource(manifest.kind, manifest.name)
                resources.append(
                    ResourceState(key=manifest.key, present=live is not None)
                )
        return ReleaseStatusReport(release=release, resources=resources)
