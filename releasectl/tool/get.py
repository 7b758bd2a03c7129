"""releasectl get action."""

from argparse import (
    ArgumentParser,
    _SubParsersAction as SubParsersAction,
)
import logging
from typing import cast

import yaml

from . import selector

_LOGGER = logging.getLogger(__name__)


def _add_release_flags(args: ArgumentParser) -> None:
    args.add_argument("name", help="The name of the release")
    args.add_argument(
        "--revision",
        type=int,
        default=None,
        help="The revision to print, the latest revision by default",
    )
    selector.add_state_flags(args)


class GetValuesAction:
    """Print the resolved values of a release."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "values",
                help="Print the resolved values of a release",
                description="Print the values a release revision was rendered with",
            ),
        )
        _add_release_flags(args)
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
        release = orchestrator.get_release(name, revision)
        print(yaml.dump(release.values, sort_keys=False), end="")


class GetManifestAction:
    """Print the rendered manifests of a release."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "manifest",
                help="Print the rendered manifests of a release",
                description="Print the manifests recorded for a release revision",
            ),
        )
        _add_release_flags(args)
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
        release = orchestrator.get_release(name, revision)
        for manifest in release.manifests:
            print(manifest.doc_yaml(), end="")


class GetAction:
    """Get details about a release."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "get",
                help="Print details of a release",
                description="Print the values or manifests recorded for a release",
            ),
        )
        subcmds = args.add_subparsers(
            title="Available commands",
            required=True,
        )
        GetValuesAction.register(subcmds)
        GetManifestAction.register(subcmds)
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        # No-op given subcommands are dispatched
