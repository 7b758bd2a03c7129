"""releasectl history action."""

from argparse import (
    ArgumentParser,
    _SubParsersAction as SubParsersAction,
)
import logging
from typing import cast

from releasectl.exceptions import ReleaseNotFound

from . import selector
from .format import print_rows, release_row

_LOGGER = logging.getLogger(__name__)


class HistoryAction:
    """Print the revision history of a release."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "history",
                help="Print the revision history of a release",
                description="Print every revision recorded for a release",
            ),
        )
        args.add_argument("name", help="The name of the release")
        selector.add_output_flags(args)
        selector.add_state_flags(args)
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        name: str,
        output: str,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        orchestrator = selector.build_orchestrator(**kwargs)
        if not (history := orchestrator.history(name)):
            raise ReleaseNotFound(name)
        print_rows(
            [release_row(release) for release in history],
            output,
            keys=["revision", "updated", "status", "chart", "description"],
        )
