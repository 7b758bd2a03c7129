"""Representation of charts and the resources rendered from them.

A `Chart` is a loaded template bundle with its default values. Rendering a chart
produces an ordered list of `Manifest` objects, each a concrete resource keyed
by its `ResourceKey` (kind and name), ready to be applied to a cluster.
"""

from dataclasses import dataclass, field
import logging
from typing import Any

import yaml
from mashumaro import DataClassDictMixin
from mashumaro.codecs.yaml import yaml_decode, yaml_encode
from mashumaro.config import BaseConfig

from .exceptions import InputException

__all__ = [
    "ResourceKey",
    "Manifest",
    "Template",
    "Chart",
    "ChartRef",
]

_LOGGER = logging.getLogger(__name__)


NAMESPACE_KIND = "Namespace"
CONFIG_MAP_KIND = "ConfigMap"
SECRET_KIND = "Secret"
SERVICE_KIND = "Service"
DEPLOYMENT_KIND = "Deployment"

# Strip server populated attributes that would show up as diff noise when a
# manifest is read back from a live cluster.
STRIP_METADATA_ATTRIBUTES = [
    "creationTimestamp",
    "generation",
    "managedFields",
    "resourceVersion",
    "uid",
]


@dataclass
class BaseManifest(DataClassDictMixin):
    """Base class for all serializable objects."""

    @classmethod
    def parse_yaml(cls, content: str) -> "BaseManifest":
        """Parse a serialized object."""
        return yaml_decode(content, cls)

    def yaml(self) -> str:
        """Return a YAML string representation of the object."""
        return yaml_encode(self, self.__class__)  # type: ignore[return-value]

    class Config(BaseConfig):
        omit_none = True


@dataclass(frozen=True, order=True)
class ResourceKey:
    """Identifier for a resource within a release."""

    kind: str
    name: str

    def __str__(self) -> str:
        """Return the kind and name concatenated as an id."""
        return f"{self.kind}/{self.name}"


@dataclass
class Manifest(BaseManifest):
    """A concrete resource description rendered from a chart."""

    api_version: str
    """The apiVersion of the resource."""

    kind: str
    """The kind of the resource."""

    name: str
    """The metadata.name of the resource."""

    doc: dict[str, Any] = field(default_factory=dict)
    """The complete resource document."""

    @classmethod
    def parse_doc(cls, doc: dict[str, Any]) -> "Manifest":
        """Parse a Manifest from a resource document."""
        if not isinstance(doc, dict):
            raise InputException(f"Invalid resource, expected a mapping: {doc}")
        if not (api_version := doc.get("apiVersion")):
            raise InputException(f"Invalid resource missing apiVersion: {doc}")
        if not (kind := doc.get("kind")):
            raise InputException(f"Invalid resource missing kind: {doc}")
        if not (metadata := doc.get("metadata")) or not isinstance(metadata, dict):
            raise InputException(f"Invalid {kind} missing metadata: {doc}")
        if not (name := metadata.get("name")):
            raise InputException(f"Invalid {kind} missing metadata.name: {doc}")
        return cls(api_version=api_version, kind=kind, name=str(name), doc=doc)

    @property
    def key(self) -> ResourceKey:
        """Identity of the resource within a release."""
        return ResourceKey(kind=self.kind, name=self.name)

    @property
    def labels(self) -> dict[str, str]:
        """Labels from the resource metadata."""
        return self.doc.get("metadata", {}).get("labels") or {}

    def doc_yaml(self) -> str:
        """Return the resource document as YAML."""
        return yaml.dump(self.doc, sort_keys=False, explicit_start=True)


def strip_resource_attributes(doc: dict[str, Any]) -> dict[str, Any]:
    """Remove server populated fields from a resource read back from a cluster."""
    doc = dict(doc)
    doc.pop("status", None)
    if isinstance(metadata := doc.get("metadata"), dict):
        doc["metadata"] = {
            k: v for k, v in metadata.items() if k not in STRIP_METADATA_ATTRIBUTES
        }
    return doc


@dataclass(frozen=True)
class Template:
    """A single template source within a chart."""

    name: str
    """Path of the template relative to the chart templates directory."""

    source: str
    """The unexpanded template text."""


@dataclass
class ChartRef(BaseManifest):
    """Reference to the chart a release was rendered from."""

    name: str
    version: str

    def __str__(self) -> str:
        return f"{self.name}-{self.version}"


@dataclass(frozen=True)
class Chart:
    """A versioned template bundle with its default configuration.

    Templates are rendered in order. Partials are helper templates that may be
    imported or included by other templates but are not rendered on their own.
    """

    name: str
    version: str
    templates: tuple[Template, ...] = ()
    partials: tuple[Template, ...] = ()
    defaults: dict[str, Any] = field(default_factory=dict, hash=False)

    @property
    def ref(self) -> ChartRef:
        """Return a reference to this chart for recording on a release."""
        return ChartRef(name=self.name, version=self.version)
