"""Fixtures shared by releasectl tests."""

import pathlib

import pytest

from releasectl.chart import load_chart
from releasectl.cluster import InMemoryCluster
from releasectl.config import OrchestratorConfig, ReconcilerConfig
from releasectl.ledger import InMemoryLedger
from releasectl.manifest import Chart
from releasectl.orchestrator import Orchestrator

TESTDATA = pathlib.Path("tests/testdata")
DEMO_CHART = TESTDATA / "demo-app"


@pytest.fixture(name="reconciler_config")
def reconciler_config_fixture() -> ReconcilerConfig:
    """Fixture for a reconciler config that retries without real backoff."""
    return ReconcilerConfig(
        max_workers=4,
        max_attempts=3,
        backoff_initial=0.001,
        backoff_max=0.004,
        operation_timeout=5.0,
    )


@pytest.fixture(name="demo_chart")
async def demo_chart_fixture() -> Chart:
    """Fixture for the demo chart in the testdata directory."""
    return await load_chart(DEMO_CHART)


@pytest.fixture(name="cluster")
def cluster_fixture() -> InMemoryCluster:
    """Fixture for an empty in memory cluster."""
    return InMemoryCluster()


@pytest.fixture(name="ledger")
def ledger_fixture() -> InMemoryLedger:
    """Fixture for an empty in memory ledger."""
    return InMemoryLedger()


@pytest.fixture(name="orchestrator")
def orchestrator_fixture(
    ledger: InMemoryLedger,
    cluster: InMemoryCluster,
    reconciler_config: ReconcilerConfig,
) -> Orchestrator:
    """Fixture for an orchestrator with in memory collaborators."""
    return Orchestrator(
        ledger, cluster, OrchestratorConfig(reconciler=reconciler_config)
    )
