"""Reconciles desired manifests against the previously applied manifests.

The reconciler computes the difference between two manifest sets keyed by
resource kind and name, and issues the minimal set of operations to the
cluster:

- present in desired only: create
- present in both with a different document: update
- present in previous only: delete
- present in both and identical: nothing

Operations follow a partial order supplied by an `OrderingStrategy`. The
default strategy applies all creates, then all updates, then all deletes, and
within each group follows the Helm install order of resource kinds (reversed
for deletes). Operations with no ordering relationship run concurrently, up to
a bounded number of workers.

Transient failures are retried with exponential backoff. When an operation
fails permanently or runs out of attempts, no new operations are issued and a
`ReconcileError` is raised once the operations already in flight settle.
Nothing that was already applied is undone.
"""

from abc import ABC, abstractmethod
import asyncio
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
import graphlib
import logging
from typing import Any, TypeVar

from .cluster import Cluster
from .config import ReconcilerConfig
from .exceptions import (
    ClusterException,
    InputException,
    ReconcileError,
    ResourceExistsError,
    ResourceNotFoundError,
    TransientClusterError,
)
from .manifest import Manifest, ResourceKey

__all__ = [
    "Action",
    "Operation",
    "Outcome",
    "OperationResult",
    "ReconcileResult",
    "OrderingStrategy",
    "KindOrderStrategy",
    "Reconciler",
    "plan",
]

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

# Kinds in the order Helm installs them. Unknown kinds are installed last.
INSTALL_ORDER = [
    "Namespace",
    "NetworkPolicy",
    "ResourceQuota",
    "LimitRange",
    "PodSecurityPolicy",
    "PodDisruptionBudget",
    "ServiceAccount",
    "Secret",
    "SecretList",
    "ConfigMap",
    "StorageClass",
    "PersistentVolume",
    "PersistentVolumeClaim",
    "CustomResourceDefinition",
    "ClusterRole",
    "ClusterRoleList",
    "ClusterRoleBinding",
    "ClusterRoleBindingList",
    "Role",
    "RoleList",
    "RoleBinding",
    "RoleBindingList",
    "Service",
    "DaemonSet",
    "Pod",
    "ReplicationController",
    "ReplicaSet",
    "Deployment",
    "HorizontalPodAutoscaler",
    "StatefulSet",
    "Job",
    "CronJob",
    "IngressClass",
    "Ingress",
    "APIService",
]


class Action(StrEnum):
    """Kind of change applied to a single resource."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    NOOP = "noop"


# Creates happen before updates, which happen before deletes
_PHASES = {
    Action.CREATE: 0,
    Action.UPDATE: 1,
    Action.DELETE: 2,
    Action.NOOP: 3,
}


@dataclass(frozen=True)
class Operation:
    """A change to apply to a single resource.

    For deletes the manifest is the previously applied one.
    """

    action: Action
    key: ResourceKey
    manifest: Manifest = field(compare=False, hash=False, repr=False)

    def __str__(self) -> str:
        return f"{self.action} {self.key}"


class Outcome(StrEnum):
    """Outcome of an operation."""

    APPLIED = "applied"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class OperationResult:
    """Result of a single operation."""

    operation: Operation
    outcome: Outcome
    attempts: int = 0
    error: Exception | None = None


@dataclass
class ReconcileResult:
    """Every operation performed by a reconcile and its outcome."""

    results: list[OperationResult] = field(default_factory=list)
    unchanged: list[ResourceKey] = field(default_factory=list)

    def applied(self, action: Action | None = None) -> list[Operation]:
        """Return the operations that were applied, optionally of one action."""
        return [
            result.operation
            for result in self.results
            if result.outcome == Outcome.APPLIED
            and (action is None or result.operation.action == action)
        ]

    @property
    def created(self) -> list[ResourceKey]:
        return [op.key for op in self.applied(Action.CREATE)]

    @property
    def updated(self) -> list[ResourceKey]:
        return [op.key for op in self.applied(Action.UPDATE)]

    @property
    def deleted(self) -> list[ResourceKey]:
        return [op.key for op in self.applied(Action.DELETE)]

    @property
    def failed(self) -> list[OperationResult]:
        return [r for r in self.results if r.outcome == Outcome.FAILED]

    @property
    def skipped(self) -> list[OperationResult]:
        return [r for r in self.results if r.outcome == Outcome.SKIPPED]

    def summary(self) -> str:
        """Return a one line human readable summary."""
        return (
            f"{len(self.created)} created, {len(self.updated)} updated, "
            f"{len(self.deleted)} deleted, {len(self.unchanged)} unchanged"
        )


def _unique_keys(k1: dict[T, Any], k2: dict[T, Any]) -> Iterable[T]:
    """Return an ordered set."""
    return {
        **{k: True for k in k1.keys()},
        **{k: True for k in k2.keys()},
    }.keys()


def _index(manifests: Iterable[Manifest], label: str) -> dict[ResourceKey, Manifest]:
    index: dict[ResourceKey, Manifest] = {}
    for manifest in manifests:
        if manifest.key in index:
            raise InputException(
                f"Duplicate resource {manifest.key} in {label} manifests"
            )
        index[manifest.key] = manifest
    return index


def plan(
    desired: Iterable[Manifest], previous: Iterable[Manifest] | None = None
) -> list[Operation]:
    """Compute the operation for every resource in either manifest set.

    Operations are returned in desired order followed by resources that only
    exist in the previous set.
    """
    desired_index = _index(desired, "desired")
    previous_index = _index(previous or [], "previous")
    operations: list[Operation] = []
    for key in _unique_keys(desired_index, previous_index):
        new = desired_index.get(key)
        old = previous_index.get(key)
        if new is None and old is not None:
            operations.append(Operation(Action.DELETE, key, old))
        elif new is not None and old is None:
            operations.append(Operation(Action.CREATE, key, new))
        elif new is not None and old is not None:
            action = Action.UPDATE if new.doc != old.doc else Action.NOOP
            operations.append(Operation(action, key, new))
    return operations


class OrderingStrategy(ABC):
    """Defines the partial order in which operations are applied."""

    @abstractmethod
    def predecessors(
        self, operation: Operation, operations: Sequence[Operation]
    ) -> Iterable[Operation]:
        """Return the operations that must complete before this one starts."""


class KindOrderStrategy(OrderingStrategy):
    """Orders by action (create, update, delete) and then by resource kind."""

    def __init__(self, install_order: Sequence[str] = tuple(INSTALL_ORDER)) -> None:
        """Initialize KindOrderStrategy."""
        self._rank = {kind: index for index, kind in enumerate(install_order)}

    def _kind_rank(self, operation: Operation) -> int:
        rank = self._rank.get(operation.key.kind, len(self._rank))
        # Uninstall in reverse order of install
        return -rank if operation.action == Action.DELETE else rank

    def predecessors(
        self, operation: Operation, operations: Sequence[Operation]
    ) -> Iterable[Operation]:
        """Return the operations that must complete before this one starts."""
        phase = _PHASES[operation.action]
        rank = self._kind_rank(operation)
        for other in operations:
            other_phase = _PHASES[other.action]
            if other_phase < phase or (
                other_phase == phase and self._kind_rank(other) < rank
            ):
                yield other


class Reconciler:
    """Applies the difference between two manifest sets to a cluster."""

    def __init__(
        self,
        cluster: Cluster,
        config: ReconcilerConfig | None = None,
        strategy: OrderingStrategy | None = None,
    ) -> None:
        """Initialize Reconciler."""
        self._cluster = cluster
        self._config = config or ReconcilerConfig()
        self._strategy = strategy or KindOrderStrategy()

    def plan(
        self, desired: Iterable[Manifest], previous: Iterable[Manifest] | None = None
    ) -> list[Operation]:
        """Compute the operations without applying them."""
        return plan(desired, previous)

    async def apply(
        self, desired: Iterable[Manifest], previous: Iterable[Manifest] | None = None
    ) -> ReconcileResult:
        """Apply the operations that move the cluster from previous to desired."""
        operations = plan(desired, previous)
        pending = [op for op in operations if op.action != Action.NOOP]
        unchanged = [op.key for op in operations if op.action == Action.NOOP]
        if not pending:
            _LOGGER.info("No changes to apply (%d unchanged)", len(unchanged))
            return ReconcileResult(unchanged=unchanged)

        graph = {op: set(self._strategy.predecessors(op, pending)) for op in pending}
        try:
            order = list(graphlib.TopologicalSorter(graph).static_order())
        except graphlib.CycleError as err:
            raise InputException(
                f"Resource ordering contains a cycle: {[str(op) for op in err.args[1]]}"
            ) from err

        semaphore = asyncio.Semaphore(self._config.max_workers)
        stop = asyncio.Event()
        failures: list[OperationResult] = []
        tasks: dict[Operation, asyncio.Task[OperationResult]] = {}

        async def run_operation(op: Operation) -> OperationResult:
            for predecessor in graph[op]:
                if (await tasks[predecessor]).outcome != Outcome.APPLIED:
                    return OperationResult(op, Outcome.SKIPPED)
            result = await self._apply_with_retry(op, semaphore, stop)
            if result.outcome == Outcome.FAILED:
                failures.append(result)
                stop.set()
            return result

        for op in order:
            tasks[op] = asyncio.create_task(run_operation(op), name=str(op))
        try:
            outcomes = await asyncio.gather(*tasks.values(), return_exceptions=True)
        except asyncio.CancelledError:
            _LOGGER.warning(
                "Reconcile cancelled, operations already applied are left in place"
            )
            raise
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome

        by_operation = {
            result.operation: result
            for result in outcomes
            if isinstance(result, OperationResult)
        }
        result = ReconcileResult(
            results=[by_operation[op] for op in order], unchanged=unchanged
        )
        if failures:
            _LOGGER.warning("Reconcile failed (%s)", result.summary())
            raise ReconcileError(failures[0].operation, failures[0].error, result)
        _LOGGER.info("Reconcile complete (%s)", result.summary())
        return result

    async def _dispatch(self, op: Operation) -> None:
        if op.action == Action.CREATE:
            try:
                await self._cluster.create_resource(op.manifest)
            except ResourceExistsError:
                # An earlier attempt may have landed before its response was lost
                _LOGGER.info("Resource %s already exists, replacing it", op.key)
                await self._cluster.update_resource(op.manifest)
        elif op.action == Action.UPDATE:
            await self._cluster.update_resource(op.manifest)
        elif op.action == Action.DELETE:
            await self._cluster.delete_resource(op.key.kind, op.key.name)

    async def _apply_with_retry(
        self, op: Operation, semaphore: asyncio.Semaphore, stop: asyncio.Event
    ) -> OperationResult:
        """Apply a single operation, retrying transient failures with backoff."""
        delay = self._config.backoff_initial
        attempt = 0
        error: ClusterException | None = None
        while True:
            async with semaphore:
                if stop.is_set():
                    if error is not None:
                        return OperationResult(op, Outcome.FAILED, attempt, error)
                    return OperationResult(op, Outcome.SKIPPED, attempt)
                attempt += 1
                _LOGGER.debug("Applying %s (attempt %d)", op, attempt)
                try:
                    async with asyncio.timeout(self._config.operation_timeout):
                        await self._dispatch(op)
                except TimeoutError:
                    error = TransientClusterError(
                        f"Timed out after {self._config.operation_timeout}s"
                    )
                except TransientClusterError as err:
                    error = err
                except ResourceNotFoundError as err:
                    if op.action != Action.DELETE:
                        _LOGGER.warning("Failed to %s %s: %s", op.action, op.key, err)
                        return OperationResult(op, Outcome.FAILED, attempt, err)
                    _LOGGER.info("Resource %s was already deleted", op.key)
                    return OperationResult(op, Outcome.APPLIED, attempt)
                except ClusterException as err:
                    _LOGGER.warning("Failed to %s %s: %s", op.action, op.key, err)
                    return OperationResult(op, Outcome.FAILED, attempt, err)
                else:
                    _LOGGER.info("Applied %s", op)
                    return OperationResult(op, Outcome.APPLIED, attempt)

            if attempt >= self._config.max_attempts:
                _LOGGER.warning(
                    "Giving up on %s after %d attempts: %s", op, attempt, error
                )
                return OperationResult(op, Outcome.FAILED, attempt, error)
            _LOGGER.info(
                "Retrying %s in %.2fs (attempt %d/%d): %s",
                op,
                delay,
                attempt,
                self._config.max_attempts,
                error,
            )
            await asyncio.sleep(delay)
            delay = min(delay * 2, self._config.backoff_max)
