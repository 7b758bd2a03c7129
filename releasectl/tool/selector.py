"""Common flags shared by releasectl commands.

This module builds the ledger, cluster and orchestrator from command line
flags, along with the value overlays given with `--values` and `--set`.
"""

from argparse import ArgumentParser
import os
import pathlib
from typing import Any

from releasectl import values
from releasectl.cluster import Cluster, KubectlCluster, LocalCluster
from releasectl.config import OrchestratorConfig, ReconcilerConfig
from releasectl.ledger import FileLedger
from releasectl.orchestrator import Orchestrator

DEFAULT_STATE_DIR = ".releasectl"
STATE_DIR_ENV = "RELEASECTL_STATE_DIR"
RELEASES_DIR = "releases"
LOCAL_CLUSTER_DIR = "cluster"

CLUSTER_LOCAL = "local"
CLUSTER_KUBECTL = "kubectl"


def add_state_flags(args: ArgumentParser) -> None:
    """Add flags for locating the release ledger and the cluster."""
    args.add_argument(
        "--state-dir",
        type=pathlib.Path,
        default=pathlib.Path(os.environ.get(STATE_DIR_ENV, DEFAULT_STATE_DIR)),
        help=f"Directory holding the release ledger (env: {STATE_DIR_ENV})",
    )
    args.add_argument(
        "--cluster",
        choices=[CLUSTER_LOCAL, CLUSTER_KUBECTL],
        default=CLUSTER_LOCAL,
        help="Apply resources to a simulated cluster in the state directory or "
        "with kubectl",
    )
    args.add_argument(
        "--kube-context",
        type=str,
        default=None,
        help="The kubeconfig context to use with --cluster=kubectl",
    )
    args.add_argument(
        "--namespace",
        "-n",
        type=str,
        default=None,
        help="The namespace to use with --cluster=kubectl",
    )


def add_values_flags(args: ArgumentParser) -> None:
    """Add flags for the value overlays applied on top of chart defaults."""
    args.add_argument(
        "--values",
        "-f",
        type=pathlib.Path,
        action="append",
        default=[],
        dest="values_files",
        help="A values YAML file, may be repeated and later files take precedence",
    )
    args.add_argument(
        "--set",
        type=str,
        action="append",
        default=[],
        dest="set_values",
        help="Set a value with key.path=value, applied after values files. "
        "Escape literal dots in keys with a backslash",
    )


def add_reconciler_flags(args: ArgumentParser) -> None:
    """Add flags that tune how resource operations are applied."""
    defaults = ReconcilerConfig()
    args.add_argument(
        "--workers",
        type=int,
        default=defaults.max_workers,
        help="Maximum number of resource operations applied concurrently",
    )
    args.add_argument(
        "--max-attempts",
        type=int,
        default=defaults.max_attempts,
        help="Attempts per resource operation before giving up on transient errors",
    )
    args.add_argument(
        "--timeout",
        type=float,
        default=defaults.operation_timeout,
        help="Timeout in seconds for a single resource operation attempt",
    )


def add_output_flags(args: ArgumentParser) -> None:
    """Add the output format flag."""
    args.add_argument(
        "--output",
        "-o",
        choices=["table", "yaml", "json"],
        default="table",
        help="Output format of the command",
    )


def build_cluster(
    state_dir: pathlib.Path,
    cluster: str = CLUSTER_LOCAL,
    kube_context: str | None = None,
    namespace: str | None = None,
    **kwargs: Any,
) -> Cluster:
    """Build the cluster from flags."""
    if cluster == CLUSTER_KUBECTL:
        return KubectlCluster(context=kube_context, namespace=namespace)
    return LocalCluster(state_dir / LOCAL_CLUSTER_DIR)


def build_orchestrator(state_dir: pathlib.Path, **kwargs: Any) -> Orchestrator:
    """Build the orchestrator from flags."""
    settings = {
        "max_workers": kwargs.get("workers"),
        "max_attempts": kwargs.get("max_attempts"),
        "operation_timeout": kwargs.get("timeout"),
    }
    config = OrchestratorConfig(
        reconciler=ReconcilerConfig(
            **{key: value for key, value in settings.items() if value is not None}
        )
    )
    return Orchestrator(
        FileLedger(state_dir / RELEASES_DIR),
        build_cluster(state_dir, **kwargs),
        config,
    )


async def build_overlays(
    values_files: list[pathlib.Path] | None = None,
    set_values: list[str] | None = None,
    **kwargs: Any,
) -> list[dict[str, Any]]:
    """Load the value overlays in the order they are applied."""
    overlays = [await values.load_values_file(path) for path in values_files or []]
    if set_values:
        overlays.append(values.parse_set_overrides(set_values))
    return overlays
