"""releasectl list action."""

from argparse import (
    ArgumentParser,
    _SubParsersAction as SubParsersAction,
)
import logging
from typing import cast

from . import selector
from .format import print_rows, release_row

_LOGGER = logging.getLogger(__name__)


class ListAction:
    """List all releases."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "list",
                aliases=["ls"],
                help="List releases",
                description="Print the latest revision of every release",
            ),
        )
        selector.add_output_flags(args)
        selector.add_state_flags(args)
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        output: str,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        orchestrator = selector.build_orchestrator(**kwargs)
        releases = orchestrator.list_releases()
        if not releases and output == "table":
            print("no releases found")
            return
        print_rows(
            [release_row(release) for release in releases],
            output,
            keys=["name", "revision", "updated", "status", "chart"],
        )
