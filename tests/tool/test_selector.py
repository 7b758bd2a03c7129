"""Tests for the selector library."""

import pathlib

import pytest

from releasectl.cluster import KubectlCluster, LocalCluster
from releasectl.config import ReconcilerConfig
from releasectl.exceptions import InputException
from releasectl.ledger import FileLedger
from releasectl.tool import selector


async def test_build_overlays(tmp_path: pathlib.Path) -> None:
    """Test values files are applied before explicit overrides."""
    values_file = tmp_path / "values-dev.yaml"
    values_file.write_text("replicaCount: 2\nservice:\n  port: 8080\n")
    overlays = await selector.build_overlays(
        values_files=[values_file],
        set_values=["replicaCount=3", "image.tag=1.29.0"],
    )
    assert overlays == [
        {"replicaCount": 2, "service": {"port": 8080}},
        {"replicaCount": 3, "image": {"tag": "1.29.0"}},
    ]


async def test_build_overlays_empty() -> None:
    """Test no overlays are built without flags."""
    assert await selector.build_overlays() == []


def test_build_orchestrator(tmp_path: pathlib.Path) -> None:
    """Test building an orchestrator from command line flags."""
    orchestrator = selector.build_orchestrator(
        state_dir=tmp_path, workers=2, max_attempts=1, timeout=5.0
    )
    assert isinstance(orchestrator.ledger, FileLedger)
    assert orchestrator.ledger.root == tmp_path / "releases"
    assert isinstance(orchestrator.cluster, LocalCluster)
    assert orchestrator.config.reconciler.max_workers == 2
    assert orchestrator.config.reconciler.max_attempts == 1
    assert orchestrator.config.reconciler.operation_timeout == 5.0


def test_build_kubectl_cluster(tmp_path: pathlib.Path) -> None:
    """Test selecting the kubectl cluster."""
    cluster = selector.build_cluster(
        tmp_path, cluster="kubectl", kube_context="dev", namespace="apps"
    )
    assert isinstance(cluster, KubectlCluster)


def test_build_orchestrator_defaults(tmp_path: pathlib.Path) -> None:
    """Test settings without a flag value keep their defaults."""
    orchestrator = selector.build_orchestrator(
        state_dir=tmp_path, workers=None, max_attempts=None, timeout=None
    )
    assert orchestrator.config.reconciler == ReconcilerConfig()


def test_build_orchestrator_invalid_workers(tmp_path: pathlib.Path) -> None:
    """Test zero workers is rejected instead of replaced by the default."""
    with pytest.raises(InputException, match="max_workers must be at least 1"):
        selector.build_orchestrator(state_dir=tmp_path, workers=0)
