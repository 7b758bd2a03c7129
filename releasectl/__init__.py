"""
releasectl is a declarative release orchestrator for charts.

Given a chart and layered values, releasectl renders the chart into manifests,
computes the minimal set of operations needed to move the cluster from the
currently deployed manifests to the desired ones, applies them and records
every revision in an append-only ledger that supports rollback.
"""

__all__ = [
    "chart",
    "cluster",
    "command",
    "config",
    "context",
    "exceptions",
    "ledger",
    "manifest",
    "orchestrator",
    "reconciler",
    "renderer",
    "resource_diff",
    "template",
    "values",
    # Note this is exposed for CLI documentation, not to be used as a library
    "tool",
]
