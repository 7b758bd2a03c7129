"""Module for resolving layered chart values.

Values are resolved by merging a chart's defaults with an ordered sequence of
overlays, for example the contents of values files followed by explicit
`key=value` overrides. Later overlays win on key collision, mappings are merged
recursively and scalars and lists are replaced, the same way Helm merges
values.
"""

from collections.abc import Iterable, Mapping, Sequence
import copy
import logging
from pathlib import Path
import re
from typing import Any

import aiofiles
from aiofiles.ospath import exists
import yaml

from .exceptions import MalformedOverlay

__all__ = [
    "resolve",
    "parse_values",
    "load_values_file",
    "parse_set_overrides",
    "lookup",
]

_LOGGER = logging.getLogger(__name__)

# Split a dotted path on dots that are not escaped with a backslash
_PATH_SEPARATOR = re.compile(r"(?<!\\)\.")
_ESCAPE = re.compile(r"\\(.)")


def _deep_merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Recursively merge two dictionaries, replacing lists entirely."""
    result = base.copy()
    for key, override_value in override.items():
        base_value = result.get(key)
        if isinstance(base_value, dict) and isinstance(override_value, Mapping):
            result[key] = _deep_merge(base_value, override_value)
        else:
            result[key] = copy.deepcopy(override_value)
    return result


def resolve(
    defaults: Mapping[str, Any], overlays: Sequence[Mapping[str, Any]] = ()
) -> dict[str, Any]:
    """Merge the overlays on top of the defaults, in order.

    The inputs are not modified and the result shares no state with them.
    """
    if not isinstance(defaults, Mapping):
        raise MalformedOverlay(
            f"Expected chart defaults to be a mapping, found {type(defaults).__name__}"
        )
    values = copy.deepcopy(dict(defaults))
    for index, overlay in enumerate(overlays):
        if not isinstance(overlay, Mapping):
            raise MalformedOverlay(
                f"Expected overlay {index} to be a mapping, "
                f"found {type(overlay).__name__}"
            )
        values = _deep_merge(values, overlay)
    return values


def parse_values(content: str, source: str = "<values>") -> dict[str, Any]:
    """Parse a YAML values document into a value set."""
    try:
        obj = yaml.load(content, Loader=yaml.SafeLoader)
    except yaml.YAMLError as err:
        raise MalformedOverlay(f"Unable to parse values '{source}': {err}") from err
    # Handle empty YAML file case
    if obj is None:
        return {}
    if not isinstance(obj, dict):
        raise MalformedOverlay(
            f"Expected values '{source}' to be a mapping, found {type(obj).__name__}"
        )
    return obj


async def load_values_file(path: Path) -> dict[str, Any]:
    """Read and parse a values file."""
    if not await exists(path):
        raise MalformedOverlay(f"Values file '{path}' does not exist")
    _LOGGER.debug("Loading values file %s", path)
    async with aiofiles.open(str(path)) as values_file:
        content = await values_file.read()
    return parse_values(content, str(path))


def split_path(path: str) -> list[str]:
    """Split a dotted key path, honoring backslash escaped dots."""
    raw_parts = _PATH_SEPARATOR.split(path)
    return [_ESCAPE.sub(r"\1", raw_part) for raw_part in raw_parts]


def _parse_scalar(value: str) -> Any:
    """Parse an override value the way a YAML scalar would be interpreted."""
    if not value:
        return ""
    try:
        parsed = yaml.load(value, Loader=yaml.SafeLoader)
    except yaml.YAMLError:
        return value
    if isinstance(parsed, (dict, list)):
        # Only scalars are supported, structured values stay as literal strings
        return value
    return parsed


def parse_set_overrides(items: Iterable[str]) -> dict[str, Any]:
    """Parse `key.path=value` overrides into a single nested overlay."""
    values: dict[str, Any] = {}
    for item in items:
        key, sep, raw_value = item.partition("=")
        if not sep or not key:
            raise MalformedOverlay(f"Expected override in the form key=value: {item!r}")
        parts = split_path(key)
        if any(not part for part in parts):
            raise MalformedOverlay(f"Override key has an empty path segment: {key!r}")

        inner_values = values
        for part in parts[:-1]:
            if not isinstance(inner_values.get(part), dict):
                inner_values[part] = {}
            inner_values = inner_values[part]
        inner_values[parts[-1]] = _parse_scalar(raw_value)
    _LOGGER.debug("Parsed overrides=%s", values)
    return values


def lookup(values: Mapping[str, Any], path: str) -> Any:
    """Return the value at the dotted path, or None when absent."""
    current: Any = values
    for part in split_path(path):
        if not isinstance(current, Mapping) or part not in current:
            return None
        current = current[part]
    return current
