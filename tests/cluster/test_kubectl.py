"""Tests for the kubectl cluster."""

from pathlib import Path

import pytest

from releasectl.cluster import KubectlCluster
from releasectl.cluster.kubectl import classify_error
from releasectl.exceptions import (
    ClusterException,
    PermanentClusterError,
    ResourceExistsError,
    ResourceNotFoundError,
    TransientClusterError,
)
from releasectl.manifest import Manifest


@pytest.mark.parametrize(
    ("message", "expected"),
    [
        (
            'Error from server (AlreadyExists): configmaps "demo" already exists',
            ResourceExistsError,
        ),
        (
            'Error from server (NotFound): deployments.apps "demo" not found',
            ResourceNotFoundError,
        ),
        (
            "The connection to the server localhost:8080 was refused - "
            "did you specify the right host or port? connection refused",
            TransientClusterError,
        ),
        (
            "Error from server (InternalError): an error on the server has "
            "prevented the request from succeeding",
            TransientClusterError,
        ),
        (
            'Operation cannot be fulfilled on deployments.apps "demo": the object '
            "has been modified; please apply your changes to the latest version",
            TransientClusterError,
        ),
        (
            'The Deployment "demo" is invalid: spec.replicas: Invalid value: -1',
            PermanentClusterError,
        ),
    ],
)
def test_classify_error(message: str, expected: type[ClusterException]) -> None:
    """Test mapping kubectl errors to cluster exceptions."""
    assert type(classify_error(message)) is expected


def _fake_kubectl(path: Path, script: str) -> str:
    """Write an executable that stands in for kubectl."""
    kubectl = path / "kubectl"
    kubectl.write_text(f"#!/bin/sh\n{script}\n")
    kubectl.chmod(0o755)
    return str(kubectl)


async def test_get_resource(tmp_path: Path) -> None:
    """Test reading a resource strips server populated fields."""
    kubectl = _fake_kubectl(
        tmp_path,
        "cat <<EOF\n"
        "apiVersion: v1\n"
        "kind: ConfigMap\n"
        "metadata:\n"
        "  name: demo\n"
        "  uid: 1234\n"
        "data:\n"
        "  key: value\n"
        "EOF",
    )
    cluster = KubectlCluster(context="dev", namespace="apps", kubectl=kubectl)
    resource = await cluster.get_resource("ConfigMap", "demo")
    assert resource == Manifest.parse_doc(
        {
            "apiVersion": "v1",
            "kind": "ConfigMap",
            "metadata": {"name": "demo"},
            "data": {"key": "value"},
        }
    )


async def test_get_missing_resource(tmp_path: Path) -> None:
    """Test reading a resource that does not exist."""
    kubectl = _fake_kubectl(
        tmp_path,
        "echo 'Error from server (NotFound): configmaps \"demo\" not found' >&2\n"
        "exit 1",
    )
    cluster = KubectlCluster(kubectl=kubectl)
    assert await cluster.get_resource("ConfigMap", "demo") is None


async def test_create_passes_manifest(tmp_path: Path) -> None:
    """Test the manifest is sent to kubectl on stdin along with the flags."""
    out = tmp_path / "out.txt"
    kubectl = _fake_kubectl(tmp_path, f'echo "$@" > {out}\ncat >> {out}')
    cluster = KubectlCluster(context="dev", namespace="apps", kubectl=kubectl)
    await cluster.create_resource(
        Manifest.parse_doc(
            {"apiVersion": "v1", "kind": "ConfigMap", "metadata": {"name": "demo"}}
        )
    )
    assert out.read_text() == (
        "--context dev --namespace apps create -f -\n"
        "---\n"
        "apiVersion: v1\n"
        "kind: ConfigMap\n"
        "metadata:\n"
        "  name: demo\n"
    )


async def test_transient_failure(tmp_path: Path) -> None:
    """Test a transient kubectl failure."""
    kubectl = _fake_kubectl(
        tmp_path,
        "echo 'Error from server (ServiceUnavailable): the server is currently "
        "unable to handle the request' >&2\nexit 1",
    )
    cluster = KubectlCluster(kubectl=kubectl)
    with pytest.raises(TransientClusterError):
        await cluster.delete_resource("ConfigMap", "demo")


@pytest.mark.parametrize(
    ("verb", "expected"),
    [
        ("create", TransientClusterError),
        ("replace", ResourceNotFoundError),
        ("delete", ResourceNotFoundError),
        (None, ResourceNotFoundError),
    ],
)
def test_classify_not_found_by_verb(
    verb: str | None, expected: type[ClusterException]
) -> None:
    """Test a missing dependency of a created resource may be retried."""
    message = 'Error from server (NotFound): namespaces "apps" not found'
    assert type(classify_error(message, verb=verb)) is expected


async def test_create_missing_namespace(tmp_path: Path) -> None:
    """Test creating a resource before its namespace exists."""
    kubectl = _fake_kubectl(
        tmp_path,
        "echo 'Error from server (NotFound): namespaces \"apps\" not found' >&2\n"
        "exit 1",
    )
    cluster = KubectlCluster(namespace="apps", kubectl=kubectl)
    with pytest.raises(TransientClusterError, match="not found"):
        await cluster.create_resource(
            Manifest.parse_doc(
                {"apiVersion": "v1", "kind": "ConfigMap", "metadata": {"name": "demo"}}
            )
        )
    with pytest.raises(ResourceNotFoundError):
        await cluster.delete_resource("ConfigMap", "demo")
