"""Tests for the in memory and local cluster implementations."""

from pathlib import Path

import pytest

from releasectl.cluster import Cluster, InMemoryCluster, LocalCluster
from releasectl.exceptions import (
    PermanentClusterError,
    ResourceExistsError,
    ResourceNotFoundError,
    TransientClusterError,
)
from releasectl.manifest import Manifest, ResourceKey


def _config_map(name: str, value: str = "a") -> Manifest:
    return Manifest.parse_doc(
        {
            "apiVersion": "v1",
            "kind": "ConfigMap",
            "metadata": {"name": name},
            "data": {"key": value},
        }
    )


@pytest.fixture(name="cluster", params=["memory", "local"])
def cluster_fixture(request: pytest.FixtureRequest, tmp_path: Path) -> Cluster:
    """Fixture for each cluster implementation."""
    if request.param == "local":
        return LocalCluster(tmp_path / "cluster")
    return InMemoryCluster()


async def test_create_update_delete(cluster: Cluster) -> None:
    """Test the lifecycle of a single resource."""
    assert await cluster.get_resource("ConfigMap", "demo") is None

    await cluster.create_resource(_config_map("demo"))
    resource = await cluster.get_resource("ConfigMap", "demo")
    assert resource is not None
    assert resource.doc["data"] == {"key": "a"}

    await cluster.update_resource(_config_map("demo", "b"))
    resource = await cluster.get_resource("ConfigMap", "demo")
    assert resource is not None
    assert resource.doc["data"] == {"key": "b"}

    await cluster.delete_resource("ConfigMap", "demo")
    assert await cluster.get_resource("ConfigMap", "demo") is None


async def test_create_existing(cluster: Cluster) -> None:
    """Test creating a resource that already exists."""
    await cluster.create_resource(_config_map("demo"))
    with pytest.raises(ResourceExistsError):
        await cluster.create_resource(_config_map("demo"))


async def test_update_missing(cluster: Cluster) -> None:
    """Test updating a resource that does not exist."""
    with pytest.raises(ResourceNotFoundError):
        await cluster.update_resource(_config_map("demo"))


async def test_delete_missing(cluster: Cluster) -> None:
    """Test deleting a resource that does not exist."""
    with pytest.raises(ResourceNotFoundError):
        await cluster.delete_resource("ConfigMap", "demo")


async def test_in_memory_calls() -> None:
    """Test the in memory cluster records mutating calls."""
    cluster = InMemoryCluster()
    await cluster.create_resource(_config_map("a"))
    await cluster.update_resource(_config_map("a", "b"))
    await cluster.get_resource("ConfigMap", "a")
    await cluster.delete_resource("ConfigMap", "a")
    key = ResourceKey("ConfigMap", "a")
    assert cluster.calls == [("create", key), ("update", key), ("delete", key)]
    assert cluster.list_resources() == []


async def test_in_memory_injected_failures() -> None:
    """Test failures are raised in the order they were injected."""
    cluster = InMemoryCluster()
    key = ResourceKey("ConfigMap", "a")
    cluster.fail("create", key, TransientClusterError("not ready"))
    with pytest.raises(TransientClusterError, match="not ready"):
        await cluster.create_resource(_config_map("a"))
    await cluster.create_resource(_config_map("a"))
    assert [m.key for m in cluster.list_resources()] == [key]


async def test_local_cluster_layout(tmp_path: Path) -> None:
    """Test the local cluster stores one file per resource."""
    cluster = LocalCluster(tmp_path)
    assert await cluster.list_resources() == []
    await cluster.create_resource(_config_map("b"))
    await cluster.create_resource(_config_map("a"))
    assert (tmp_path / "ConfigMap" / "a.yaml").exists()
    assert await cluster.list_resources() == [
        ResourceKey("ConfigMap", "a"),
        ResourceKey("ConfigMap", "b"),
    ]


async def test_local_cluster_invalid_name(tmp_path: Path) -> None:
    """Test resource identifiers that cannot be stored as files."""
    cluster = LocalCluster(tmp_path)
    with pytest.raises(PermanentClusterError):
        await cluster.delete_resource("ConfigMap", "../escape")
