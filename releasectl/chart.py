"""Library for loading charts from a local directory.

A chart directory has the following layout:

```
demo-app/
  Chart.yaml        # name and version
  values.yaml       # default values (optional)
  templates/
    _helpers.j2     # partials, available to import/include
    deployment.yaml
    service.yaml
```
"""

import logging
from pathlib import Path
from typing import Any

import aiofiles
from aiofiles.ospath import exists, isdir
import yaml

from .exceptions import ChartException, MalformedOverlay
from .manifest import Chart, Template
from .values import parse_values

__all__ = [
    "load_chart",
]

_LOGGER = logging.getLogger(__name__)

CHART_FILE = "Chart.yaml"
VALUES_FILE = "values.yaml"
TEMPLATES_DIR = "templates"
TEMPLATE_SUFFIXES = {".yaml", ".yml", ".j2", ".tpl"}
PARTIAL_PREFIX = "_"


async def _read(path: Path) -> str:
    async with aiofiles.open(str(path)) as f:
        return await f.read()


def _parse_chart_file(content: str, path: Path) -> dict[str, Any]:
    try:
        doc = yaml.load(content, Loader=yaml.SafeLoader)
    except yaml.YAMLError as err:
        raise ChartException(f"Unable to parse {path}: {err}") from err
    if not isinstance(doc, dict):
        raise ChartException(f"Expected {path} to be a mapping")
    for key in ("name", "version"):
        if not doc.get(key):
            raise ChartException(f"Chart file {path} is missing '{key}'")
    return doc


async def load_chart(path: Path) -> Chart:
    """Load a chart from a directory."""
    if not await isdir(path):
        raise ChartException(f"Chart path '{path}' is not a directory")

    chart_file = path / CHART_FILE
    if not await exists(chart_file):
        raise ChartException(f"Chart path '{path}' does not contain {CHART_FILE}")
    chart_doc = _parse_chart_file(await _read(chart_file), chart_file)

    defaults: dict[str, Any] = {}
    values_file = path / VALUES_FILE
    if await exists(values_file):
        try:
            defaults = parse_values(await _read(values_file), str(values_file))
        except MalformedOverlay as err:
            raise ChartException(str(err)) from err

    templates_dir = path / TEMPLATES_DIR
    if not await isdir(templates_dir):
        raise ChartException(f"Chart path '{path}' has no {TEMPLATES_DIR} directory")

    templates: list[Template] = []
    partials: list[Template] = []
    for template_path in sorted(templates_dir.rglob("*")):
        if not template_path.is_file() or template_path.suffix not in TEMPLATE_SUFFIXES:
            continue
        name = str(template_path.relative_to(templates_dir))
        template = Template(name=name, source=await _read(template_path))
        if template_path.name.startswith(PARTIAL_PREFIX):
            partials.append(template)
        else:
            templates.append(template)

    chart = Chart(
        name=str(chart_doc["name"]),
        version=str(chart_doc["version"]),
        templates=tuple(templates),
        partials=tuple(partials),
        defaults=defaults,
    )
    _LOGGER.debug(
        "Loaded chart %s with %d templates and %d partials",
        chart.ref,
        len(templates),
        len(partials),
    )
    return chart
