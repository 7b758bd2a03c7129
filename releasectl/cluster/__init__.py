"""Cluster module with implementations of the cluster API collaborator."""

from .cluster import Cluster
from .in_memory import InMemoryCluster
from .kubectl import KubectlCluster
from .local import LocalCluster

__all__ = [
    "Cluster",
    "InMemoryCluster",
    "LocalCluster",
    "KubectlCluster",
]
