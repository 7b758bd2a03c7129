"""Utilities for tracing release operations."""

import contextvars
from contextlib import contextmanager
from dataclasses import dataclass
import logging
from time import perf_counter
from typing import Generator


_LOGGER = logging.getLogger(__name__)

# No public API
__all__: list[str] = []


trace: contextvars.ContextVar[list[str]] = contextvars.ContextVar("trace")


@dataclass
class OperationTrace:
    """Timing of a traced release operation."""

    label: str
    elapsed: float | None = None


@contextmanager
def trace_context(
    action: str, release_name: str
) -> Generator[OperationTrace, None, None]:
    """Trace an operation on a release, logging the elapsed time on exit."""
    stack = trace.get([])
    name = f"{action} {release_name}"
    token = trace.set(stack + [name])
    op_trace = OperationTrace(label=" > ".join(stack + [name]))
    t1 = perf_counter()
    _LOGGER.debug("[Trace] > %s", op_trace.label)
    try:
        yield op_trace
    finally:
        op_trace.elapsed = perf_counter() - t1
        trace.reset(token)
        _LOGGER.debug("[Trace] < %s (%0.2fs)", op_trace.label, op_trace.elapsed)
