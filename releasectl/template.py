"""Template engine used to expand chart templates.

Templates are Jinja2 with strict undefined handling, so referencing a value that
is not set is an error rather than an empty string. A few Helm flavoured
helpers are available to templates:

```
replicas: {{ Values.replicaCount | required("replicaCount is required") }}
labels: {{ Values.labels | to_yaml | nindent(4) }}
image: {{ Values.image.repository | quote }}
```
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
import logging
from typing import Any, NoReturn

import jinja2
import yaml

from .exceptions import RenderError
from .manifest import Template

__all__ = [
    "TemplateEngine",
    "JinjaTemplateEngine",
]

_LOGGER = logging.getLogger(__name__)


class TemplateEngine(ABC):
    """Expands a template source against a set of values."""

    @abstractmethod
    def expand(
        self,
        source: str,
        context: Mapping[str, Any],
        *,
        name: str = "<template>",
        partials: Sequence[Template] = (),
    ) -> str:
        """Expand the template, raising RenderError on failure."""


def _check_defined(value: Any, filter_name: str) -> None:
    if isinstance(value, jinja2.Undefined):
        raise jinja2.UndefinedError(f"'{filter_name}' received an undefined value")


def to_yaml(value: Any) -> str:
    """Serialize a value as a block of YAML without a trailing newline."""
    _check_defined(value, "to_yaml")
    return yaml.dump(value, sort_keys=False, default_flow_style=False).rstrip("\n")


def nindent(value: Any, width: int) -> str:
    """Indent every line of the value, starting with a newline."""
    _check_defined(value, "nindent")
    prefix = " " * width
    return "\n" + "\n".join(
        prefix + line if line else line for line in str(value).split("\n")
    )


def quote(value: Any) -> str:
    """Wrap the value in double quotes."""
    _check_defined(value, "quote")
    escaped = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def required(value: Any, message: str = "a required value is missing") -> Any:
    """Fail rendering when the value is undefined, None or empty."""
    if isinstance(value, jinja2.Undefined) or value is None or value == "":
        raise jinja2.TemplateRuntimeError(message)
    return value


def fail(message: str) -> NoReturn:
    """Abort rendering with the message."""
    raise jinja2.TemplateRuntimeError(message)


class JinjaTemplateEngine(TemplateEngine):
    """Template engine backed by Jinja2.

    An environment is built once for each distinct set of partials and reused
    for every template expanded against it.
    """

    def __init__(self) -> None:
        """Initialize JinjaTemplateEngine."""
        self._environments: dict[tuple[Template, ...], jinja2.Environment] = {}

    def _environment(self, partials: tuple[Template, ...]) -> jinja2.Environment:
        if (env := self._environments.get(partials)) is not None:
            return env
        env = jinja2.Environment(
            loader=jinja2.DictLoader({p.name: p.source for p in partials}),
            undefined=jinja2.StrictUndefined,
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        env.filters["to_yaml"] = to_yaml
        env.filters["nindent"] = nindent
        env.filters["quote"] = quote
        env.filters["required"] = required
        env.globals["fail"] = fail
        self._environments[partials] = env
        return env

    def expand(
        self,
        source: str,
        context: Mapping[str, Any],
        *,
        name: str = "<template>",
        partials: Sequence[Template] = (),
    ) -> str:
        """Expand the template, raising RenderError on failure."""
        _LOGGER.debug("Expanding template %s", name)
        try:
            env = self._environment(tuple(partials))
            template = env.from_string(source)
            return template.render(**context)
        except jinja2.TemplateError as err:
            raise RenderError(name, err) from err
