"""releasectl uninstall action."""

from argparse import (
    ArgumentParser,
    _SubParsersAction as SubParsersAction,
)
import logging
from typing import cast

from . import selector

_LOGGER = logging.getLogger(__name__)


class UninstallAction:
    """Uninstall a release."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "uninstall",
                help="Delete all resources of a release",
                description="""Delete every resource of the deployed revision and
                    mark it uninstalled. The release history is kept.""",
            ),
        )
        args.add_argument("name", help="The name of the release")
        selector.add_state_flags(args)
        selector.add_reconciler_flags(args)
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        name: str,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        orchestrator = selector.build_orchestrator(**kwargs)
        result = await orchestrator.uninstall(name)
        deleted = len(result.reconcile.deleted)
        print(f'release "{name}" uninstalled ({deleted} resources deleted)')
