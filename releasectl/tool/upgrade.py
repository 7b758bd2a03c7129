"""releasectl upgrade action."""

from argparse import (
    ArgumentParser,
    BooleanOptionalAction,
    _SubParsersAction as SubParsersAction,
)
import logging
import pathlib
import sys
from typing import cast

from releasectl.chart import load_chart
from releasectl.resource_diff import perform_manifest_diff

from . import selector
from .format import print_release_result

_LOGGER = logging.getLogger(__name__)


class UpgradeAction:
    """Upgrade a deployed release."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "upgrade",
                help="Upgrade a release to a new chart or values",
                description="""Render the chart with the given values and apply
                    only the resources that changed since the deployed revision.""",
            ),
        )
        args.add_argument("name", help="The name of the release")
        args.add_argument(
            "chart", type=pathlib.Path, help="Path to the chart directory"
        )
        args.add_argument(
            "--dry-run",
            type=bool,
            default=False,
            action=BooleanOptionalAction,
            help="Print the changes the upgrade would make without applying them",
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
        dry_run: bool,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        orchestrator = selector.build_orchestrator(**kwargs)
        loaded_chart = await load_chart(chart)
        overlays = await selector.build_overlays(**kwargs)
        if not dry_run:
            result = await orchestrator.upgrade(name, loaded_chart, overlays)
            print_release_result(result)
            return

        plan = orchestrator.plan_upgrade(name, loaded_chart, overlays)
        print(f"NAME: {name}")
        print(f"REVISION: {plan.release.revision} (dry run)")
        print(f"CHART: {plan.release.chart}")
        print("CHANGES:")
        for op in plan.changes:
            print(f"  {op}")
        if not plan.changes:
            print("  none")
        for line in perform_manifest_diff(
            plan.previous.manifests, plan.release.manifests
        ):
            sys.stdout.write(line if line.endswith("\n") else line + "\n")
