"""Render resource descriptors as CRD manifests in either API dialect."""

import copy
import logging
from enum import Enum
from typing import Any, Dict

import yaml
from pydantic import BaseModel, ConfigDict

from .errors import SerializationError
from .schema import derive

logger = logging.getLogger(__name__)

CRD_GROUP = "apiextensions.k8s.io"


class Dialect(str, Enum):
    """The two CustomResourceDefinition API generations."""

    STRUCTURAL = "structural"
    LEGACY = "legacy"

    @property
    def api_version(self):
        if self is Dialect.STRUCTURAL:
            return f"{CRD_GROUP}/v1"
        return f"{CRD_GROUP}/v1beta1"


class RenderedCRD(BaseModel):
    """A CRD manifest in one dialect."""

    model_config = ConfigDict(frozen=True)

    dialect: Dialect
    name: str
    body: Dict[str, Any]

    def to_dict(self):
        return copy.deepcopy(self.body)

    def to_yaml(self):
        """Serialize with sorted keys and LF line endings."""
        try:
            text = yaml.safe_dump(
                self.body, default_flow_style=False, sort_keys=True, line_break="\n"
            )
        except yaml.YAMLError as e:
            raise SerializationError(f"Failed to serialize CRD {self.name}: {e}") from e
        return text


def object_schema(descriptor):
    """The openAPIV3Schema of a descriptor's resource object."""
    schema = derive(descriptor.schema_source).to_openapi()
    properties = {
        "apiVersion": {"type": "string"},
        "kind": {"type": "string"},
        "metadata": {"type": "object"},
    }
    properties.update(schema.get("properties", {}))

    openapi_schema = {"type": "object", "properties": properties}
    if schema.get("required"):
        openapi_schema["required"] = list(schema["required"])
    if schema.get("description"):
        openapi_schema["description"] = schema["description"]
    return openapi_schema


def _names(descriptor):
    names = {
        "kind": descriptor.kind,
        "listKind": f"{descriptor.kind}List",
        "plural": descriptor.plural_name,
        "singular": descriptor.singular_name,
    }
    if descriptor.short_names:
        names["shortNames"] = list(descriptor.short_names)
    if descriptor.categories:
        names["categories"] = list(descriptor.categories)
    return names


def _crd(descriptor, dialect, spec):
    return {
        "apiVersion": dialect.api_version,
        "kind": "CustomResourceDefinition",
        "metadata": {"name": descriptor.crd_name},
        "spec": spec,
    }


def _render_structural(descriptor, openapi_schema):
    version = {
        "name": descriptor.version,
        "served": True,
        "storage": True,
        "schema": {"openAPIV3Schema": openapi_schema},
    }
    if descriptor.status:
        version["subresources"] = {"status": {}}
    if descriptor.columns:
        version["additionalPrinterColumns"] = [
            column.to_structural() for column in descriptor.columns
        ]

    spec = {
        "group": descriptor.group,
        "names": _names(descriptor),
        "scope": descriptor.scope,
        "versions": [version],
    }
    return _crd(descriptor, Dialect.STRUCTURAL, spec)


def _render_legacy(descriptor, openapi_schema):
    version = {"name": descriptor.version, "served": True, "storage": True}
    if descriptor.columns:
        version["additionalPrinterColumns"] = [
            column.to_legacy() for column in descriptor.columns
        ]

    spec = {
        "group": descriptor.group,
        "names": _names(descriptor),
        "scope": descriptor.scope,
        "version": descriptor.version,
        "versions": [version],
        "preserveUnknownFields": False,
        "validation": {"openAPIV3Schema": openapi_schema},
    }
    if descriptor.status:
        spec["subresources"] = {"status": {}}
    return _crd(descriptor, Dialect.LEGACY, spec)


_RENDERERS = {
    Dialect.STRUCTURAL: _render_structural,
    Dialect.LEGACY: _render_legacy,
}


def render(descriptor, dialect):
    """Render one descriptor in the given dialect.

    Raises SchemaDerivationError if the descriptor's schema source cannot
    be turned into a structural schema.
    """
    dialect = Dialect(dialect)
    body = _RENDERERS[dialect](descriptor, object_schema(descriptor))
    logger.debug(f"Rendered {descriptor.crd_name} as {dialect.api_version}")
    return RenderedCRD(dialect=dialect, name=descriptor.crd_name, body=body)


def render_all(descriptors, dialect):
    return [render(descriptor, dialect) for descriptor in descriptors]
