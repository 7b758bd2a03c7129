"""releasectl status action."""

from argparse import (
    ArgumentParser,
    _SubParsersAction as SubParsersAction,
)
import logging
from typing import cast

from . import selector
from .format import PrintFormatter, TIME_FORMAT

_LOGGER = logging.getLogger(__name__)


class StatusAction:
    """Print the status of a release."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "status",
                help="Print the status of a release",
                description="""Print the deployed revision of a release and
                    whether each of its resources exists in the cluster""",
            ),
        )
        args.add_argument("name", help="The name of the release")
        selector.add_state_flags(args)
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        name: str,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        orchestrator = selector.build_orchestrator(**kwargs)
        report = await orchestrator.status(name)
        release = report.release
        print(f"NAME: {release.name}")
        print(f"REVISION: {release.revision}")
        print(f"STATUS: {release.status}")
        print(f"CHART: {release.chart}")
        print(f"UPDATED: {release.updated.strftime(TIME_FORMAT)}")
        print(f"DESCRIPTION: {release.description}")
        if report.resources:
            print("RESOURCES:")
            PrintFormatter().print(
                [
                    {
                        "kind": state.key.kind,
                        "name": state.key.name,
                        "present": state.present,
                    }
                    for state in report.resources
                ]
            )
