"""releasectl install action."""

from argparse import (
    ArgumentParser,
    _SubParsersAction as SubParsersAction,
)
import logging
import pathlib
from typing import cast

from releasectl.chart import load_chart

from . import selector
from .format import print_release_result

_LOGGER = logging.getLogger(__name__)


class InstallAction:
    """Install a chart as a new release."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "install",
                help="Install a chart as a new release",
                description="""Render the chart with the given values and create
                    all of its resources as revision 1 of a new release, or as the
                    next revision of a release that was uninstalled.""",
            ),
        )
        args.add_argument("name", help="The name of the release")
        args.add_argument(
            "chart", type=pathlib.Path, help="Path to the chart directory"
        )
        selector.add_values_flags(args)
        selector.add_state_flags(args)
        selector.add_reconciler_flags(args)
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        name: str,
        chart: pathlib.Path,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        orchestrator = selector.build_orchestrator(**kwargs)
        loaded_chart = await load_chart(chart)
        overlays = await selector.build_overlays(**kwargs)
        result = await orchestrator.install(name, loaded_chart, overlays)
        print_release_result(result)
