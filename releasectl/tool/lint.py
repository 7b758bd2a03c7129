"""releasectl lint action."""

from argparse import (
    ArgumentParser,
    _SubParsersAction as SubParsersAction,
)
import logging
import pathlib
from typing import cast

from releasectl.chart import load_chart
from releasectl.exceptions import InputException
from releasectl.renderer import lint

_LOGGER = logging.getLogger(__name__)


class LintAction:
    """Check that charts render with their default values."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "lint",
                help="Check that charts render with their default values",
                description="Load and render each chart, reporting any problems",
            ),
        )
        args.add_argument(
            "charts",
            type=pathlib.Path,
            nargs="+",
            help="Paths to chart directories",
        )
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        charts: list[pathlib.Path],
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        failed = 0
        for path in charts:
            print(f"==> Linting {path}")
            try:
                problems = lint(await load_chart(path))
            except InputException as err:
                problems = [str(err)]
            for problem in problems:
                print(f"[ERROR] {problem}")
            if problems:
                failed += 1
        print(f"{len(charts)} chart(s) linted, {failed} chart(s) failed")
        if failed:
            raise InputException(f"{failed} chart(s) failed linting")
