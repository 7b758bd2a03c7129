"""Renders a chart against resolved values into a list of manifests.

Rendering is deterministic: the same chart and values always produce the same
manifests in the same order (template order, then document order within each
template). Rendering has no side effects.
"""

from collections.abc import Mapping
import logging
from typing import Any

import yaml

from .exceptions import InputException, RenderError
from .manifest import Chart, Manifest, ResourceKey
from .template import JinjaTemplateEngine, TemplateEngine

__all__ = [
    "Renderer",
    "render",
    "lint",
]

_LOGGER = logging.getLogger(__name__)


class Renderer:
    """Turns a chart and a value set into concrete manifests."""

    def __init__(self, engine: TemplateEngine | None = None) -> None:
        """Initialize Renderer."""
        self._engine = engine or JinjaTemplateEngine()

    def render(
        self,
        chart: Chart,
        values: Mapping[str, Any],
        *,
        release_name: str | None = None,
    ) -> list[Manifest]:
        """Render every template in the chart, in order."""
        context = {
            "Values": values,
            "Release": {"Name": release_name or chart.name},
            "Chart": {"Name": chart.name, "Version": chart.version},
        }
        manifests: list[Manifest] = []
        seen: dict[ResourceKey, str] = {}
        for template in chart.templates:
            text = self._engine.expand(
                template.source,
                context,
                name=template.name,
                partials=chart.partials,
            )
            try:
                docs = list(yaml.load_all(text, Loader=yaml.SafeLoader))
            except yaml.YAMLError as err:
                raise RenderError(template.name, f"Invalid YAML output: {err}") from err
            for doc in docs:
                if doc is None:
                    continue
                try:
                    manifest = Manifest.parse_doc(doc)
                except InputException as err:
                    raise RenderError(template.name, err) from err
                if (other := seen.get(manifest.key)) is not None:
                    raise RenderError(
                        template.name,
                        f"Duplicate resource {manifest.key} "
                        f"(also rendered by '{other}')",
                    )
                seen[manifest.key] = template.name
                manifests.append(manifest)
        _LOGGER.debug(
            "Rendered chart %s into %d manifests", chart.ref, len(manifests)
        )
        return manifests


def render(
    chart: Chart, values: Mapping[str, Any], *, release_name: str | None = None
) -> list[Manifest]:
    """Render the chart with the default template engine."""
    return Renderer().render(chart, values, release_name=release_name)


def lint(chart: Chart, renderer: Renderer | None = None) -> list[str]:
    """Render the chart with its default values and return any problems found."""
    renderer = renderer or Renderer()
    problems: list[str] = []
    if not chart.templates:
        problems.append(f"Chart {chart.ref} has no templates")
    try:
        manifests = renderer.render(chart, chart.defaults)
    except RenderError as err:
        problems.append(str(err))
        return problems
    if chart.templates and not manifests:
        problems.append(f"Chart {chart.ref} rendered no resources with default values")
    return problems
