"""releasectl template action."""

from argparse import (
    ArgumentParser,
    _SubParsersAction as SubParsersAction,
)
import logging
import pathlib
from typing import cast

from releasectl.chart import load_chart
from releasectl.renderer import Renderer
from releasectl.values import resolve

from . import selector

_LOGGER = logging.getLogger(__name__)


class TemplateAction:
    """Render a chart locally."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "template",
                help="Render a chart and print the manifests",
                description="""Render the chart with the given values and print
                    the manifests, without recording or applying anything.""",
            ),
        )
        args.add_argument("name", help="The name of the release to render")
        args.add_argument(
            "chart", type=pathlib.Path, help="Path to the chart directory"
        )
        selector.add_values_flags(args)
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        name: str,
        chart: pathlib.Path,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        loaded_chart = await load_chart(chart)
        overlays = await selector.build_overlays(**kwargs)
        values = resolve(loaded_chart.defaults, overlays)
        for manifest in Renderer().render(loaded_chart, values, release_name=name):
            print(manifest.doc_yaml(), end="")
