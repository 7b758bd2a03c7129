"""Tests for tracing release operations."""

import logging

import pytest

from releasectl.context import trace_context


def test_trace_context(caplog: pytest.LogCaptureFixture) -> None:
    """Test nested traces are labeled and timed."""
    caplog.set_level(logging.DEBUG, logger="releasectl.context")
    with trace_context("upgrade", "demo") as outer:
        with trace_context("reconcile", "demo") as inner:
            assert inner.label == "upgrade demo > reconcile demo"
        assert inner.elapsed is not None
        assert outer.elapsed is None
    assert outer.label == "upgrade demo"
    assert outer.elapsed is not None
    assert "[Trace] < upgrade demo" in caplog.text
