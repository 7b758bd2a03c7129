"""releasectl rollback action."""

from argparse import (
    ArgumentParser,
    _SubParsersAction as SubParsersAction,
)
import logging
from typing import cast

from . import selector
from .format import print_release_result

_LOGGER = logging.getLogger(__name__)


class RollbackAction:
    """Roll back a release to a previous revision."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "rollback",
                help="Roll back a release to a previous revision",
                description="""Deploy a copy of a previous revision as a new
                    revision. Without a revision, the revision immediately
                    preceding the deployed one is used.""",
            ),
        )
        args.add_argument("name", help="The name of the release")
        args.add_argument(
            "revision",
            type=int,
            nargs="?",
            default=None,
            help="The revision to roll back to",
        )
        selector.add_state_flags(args)
        selector.add_reconciler_flags(args)
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        name: str,
        revision: int | None,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        orchestrator = selector.build_orchestrator(**kwargs)
        result = await orchestrator.rollback(name, revision)
        print_release_result(result)
