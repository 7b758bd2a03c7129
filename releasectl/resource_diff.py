"""Module for computing resource diffs.

This is used by the dry run upgrade to show what would change.
"""

from collections.abc import Iterable, Generator
import difflib
import logging
from typing import Any, TypeVar

from .manifest import Manifest

_LOGGER = logging.getLogger(__name__)

_TRUNCATE = "[Diff truncated by releasectl]"

T = TypeVar("T")


def _unique_keys(k1: dict[T, Any], k2: dict[T, Any]) -> Iterable[T]:
    """Return an ordered set."""
    return {
        **{k: True for k in k1.keys()},
        **{k: True for k in k2.keys()},
    }.keys()


def perform_manifest_diff(
    previous: Iterable[Manifest],
    desired: Iterable[Manifest],
    n: int = 3,
    limit_bytes: int = 0,
) -> Generator[str, None, None]:
    """Generate unified diffs between the previous and desired manifests."""
    a_resources = {m.key: m.doc_yaml().splitlines(keepends=True) for m in previous}
    b_resources = {m.key: m.doc_yaml().splitlines(keepends=True) for m in desired}
    size = 0
    for resource_key in _unique_keys(a_resources, b_resources):
        _LOGGER.debug("Diffing resource %s (n=%d)", resource_key, n)
        diff_text = difflib.unified_diff(
            a=a_resources.get(resource_key, []),
            b=b_resources.get(resource_key, []),
            fromfile=f"a/{resource_key}",
            tofile=f"b/{resource_key}",
            n=n,
        )
        for line in diff_text:
            size += len(line)
            if limit_bytes and size > limit_bytes:
                yield _TRUNCATE
                return
            yield line
