"""Structural OpenAPI v3 schemas for CRDs.

A schema is built either explicitly, one call per field::

    SchemaBuilder().field("address", string(), required=True)

or derived from a pydantic model with :func:`from_model`. Both paths end in a
:class:`StructuralSchema`, which is checked to be structural: every node has
a declared type and no node allows unrestricted additional properties.
"""

import copy
import inspect
import logging
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict

from .errors import SchemaDerivationError

logger = logging.getLogger(__name__)

PRESERVE_UNKNOWN = "x-kubernetes-preserve-unknown-fields"
INT_OR_STRING = "x-kubernetes-int-or-string"

SCALAR_TYPES = ("string", "integer", "number", "boolean")


class StructuralSchema(BaseModel):
    """An immutable structural schema of an object type."""

    model_config = ConfigDict(frozen=True)

    openapi: Dict[str, Any]

    def to_openapi(self):
        """Return a deep copy of the OpenAPI node, safe to embed and mutate."""
        return copy.deepcopy(self.openapi)

    @property
    def properties(self):
        return self.openapi.get("properties", {})


def _node(type_name, description=None, enum=None, default=None, format=None,
          pattern=None, nullable=False, minimum=None, maximum=None):
    node = {"type": type_name}
    if description:
        node["description"] = description
    if enum is not None:
        node["enum"] = list(enum)
    if default is not None:
        node["default"] = default
    if format:
        node["format"] = format
    if pattern:
        node["pattern"] = pattern
    if nullable:
        node["nullable"] = True
    if minimum is not None:
        node["minimum"] = minimum
    if maximum is not None:
        node["maximum"] = maximum
    return node


def string(**attrs):
    return _node("string", **attrs)


def integer(**attrs):
    return _node("integer", **attrs)


def number(**attrs):
    return _node("number", **attrs)


def boolean(**attrs):
    return _node("boolean", **attrs)


def array(items, description=None, nullable=False):
    """An array whose elements all match ``items``."""
    node = {"type": "array", "items": _as_node(items)}
    if description:
        node["description"] = description
    if nullable:
        node["nullable"] = True
    return node


def map_of(values, description=None, nullable=False):
    """A string-keyed map whose values all match ``values``."""
    node = {"type": "object", "additionalProperties": _as_node(values)}
    if description:
        node["description"] = description
    if nullable:
        node["nullable"] = True
    return node


def free_form(description=None, nullable=False):
    """An object whose content is not validated and kept as-is."""
    node = {"type": "object", PRESERVE_UNKNOWN: True}
    if description:
        node["description"] = description
    if nullable:
        node["nullable"] = True
    return node


def int_or_string(description=None):
    node = {INT_OR_STRING: True}
    if description:
        node["description"] = description
    return node


def _as_node(value):
    if isinstance(value, SchemaBuilder):
        return value.to_openapi()
    if isinstance(value, StructuralSchema):
        return value.to_openapi()
    return copy.deepcopy(value)


class SchemaBuilder:
    """Builds an object schema one field at a time.

    Fields keep their declaration order. A nested object is declared by
    passing another builder as the field node.
    """

    def __init__(self, description=None):
        self._description = description
        self._properties = {}
        self._required = []

    def field(self, name, node, required=False):
        if not name:
            raise SchemaDerivationError("<unnamed>", "field name must not be empty")
        if name in self._properties:
            raise SchemaDerivationError(name, "field is declared more than once")
        if not isinstance(node, (dict, SchemaBuilder, StructuralSchema)):
            raise SchemaDerivationError(
                name, f"unsupported field node {type(node).__name__}"
            )
        self._properties[name] = _as_node(node)
        if required:
            self._required.append(name)
        return self

    def to_openapi(self):
        node = {"type": "object", "properties": copy.deepcopy(self._properties)}
        if self._required:
            node["required"] = list(self._required)
        if self._description:
            node["description"] = self._description
        return node

    def build(self):
        node = self.to_openapi()
        check_structural(node)
        return StructuralSchema(openapi=node)


def check_structural(node, path=""):
    """Raise SchemaDerivationError if ``node`` is not a structural schema."""
    where = path or "<root>"
    if not isinstance(node, dict):
        raise SchemaDerivationError(where, "schema node must be a mapping")

    if node.get(INT_OR_STRING):
        return

    node_type = node.get("type")
    if node_type is None:
        raise SchemaDerivationError(where, "no type declared")

    if node_type in SCALAR_TYPES:
        return

    if node_type == "array":
        if "items" not in node:
            raise SchemaDerivationError(where, "array without items")
        check_structural(node["items"], f"{path}[]" if path else "[]")
        return

    if node_type != "object":
        raise SchemaDerivationError(where, f"unsupported type '{node_type}'")

    extra = node.get("additionalProperties")
    if extra is True:
        raise SchemaDerivationError(
            where, "unrestricted additionalProperties is not structural"
        )
    if isinstance(extra, dict):
        check_structural(extra, f"{path}.*" if path else "*")

    for name, child in node.get("properties", {}).items():
        check_structural(child, f"{path}.{name}" if path else name)


class OpenAPIConverter:
    """Convert pydantic JSON schemas to structural OpenAPI v3 schemas."""

    def __init__(self, defs=None):
        self.defs = defs or {}

    def convert_schema(self, pydantic_schema, path=""):
        """Convert the top-level object schema of a model."""
        resolved = self._resolve(pydantic_schema, path)
        if resolved.get("type") != "object" or "properties" not in resolved:
            raise SchemaDerivationError(path or "<root>", "model is not an object")
        openapi_schema = {
            "type": "object",
            "properties": self._convert_properties(resolved["properties"], path),
        }
        if resolved.get("required"):
            openapi_schema["required"] = list(resolved["required"])
        if resolved.get("description"):
            openapi_schema["description"] = resolved["description"]
        return openapi_schema

    def _convert_properties(self, properties, path):
        converted = {}
        for prop_name, prop_schema in properties.items():
            child_path = f"{path}.{prop_name}" if path else prop_name
            converted[prop_name] = self._convert_property(prop_schema, child_path)
        return converted

    def _resolve(self, prop_schema, path):
        # Older pydantic wraps a $ref with siblings in a one-item allOf
        if "allOf" in prop_schema and len(prop_schema["allOf"]) == 1:
            wrapped = dict(prop_schema)
            wrapped.update(wrapped.pop("allOf")[0])
            prop_schema = wrapped

        # Handle $ref (references to definitions)
        if "$ref" not in prop_schema:
            return prop_schema
        ref_path = prop_schema["$ref"]
        def_name = ref_path.replace("#/$defs/", "")
        if not ref_path.startswith("#/$defs/") or def_name not in self.defs:
            raise SchemaDerivationError(path, f"unresolvable reference {ref_path}")
        merged = dict(self.defs[def_name])
        for key in ("description", "default"):
            if key in prop_schema:
                merged[key] = prop_schema[key]
        return merged

    def _convert_property(self, prop_schema, path):
        prop_schema = self._resolve(prop_schema, path)

        if "anyOf" in prop_schema:
            return self._convert_union(prop_schema, path)

        prop_type = prop_schema.get("type")
        if isinstance(prop_type, list):
            raise SchemaDerivationError(path, f"multiple types {prop_type}")

        # Handle arrays
        if prop_type == "array":
            if not prop_schema.get("items"):
                raise SchemaDerivationError(path, "array items have no type")
            converted = {
                "type": "array",
                "items": self._convert_property(prop_schema["items"], f"{path}[]"),
            }
            return self._annotate(converted, prop_schema)

        # Handle objects
        if prop_type == "object":
            if "properties" in prop_schema:
                converted = {
                    "type": "object",
                    "properties": self._convert_properties(
                        prop_schema["properties"], path
                    ),
                }
                if prop_schema.get("required"):
                    converted["required"] = list(prop_schema["required"])
            elif isinstance(prop_schema.get("additionalProperties"), dict) and prop_schema[
                "additionalProperties"
            ]:
                converted = {
                    "type": "object",
                    "additionalProperties": self._convert_property(
                        prop_schema["additionalProperties"], f"{path}.*"
                    ),
                }
            else:
                converted = {"type": "object", PRESERVE_UNKNOWN: True}
            return self._annotate(converted, prop_schema)

        # Handle basic types
        if prop_type in SCALAR_TYPES:
            converted = {"type": prop_type}
            if "const" in prop_schema:
                converted["enum"] = [prop_schema["const"]]
            for key in ("format", "pattern", "enum", "minimum", "maximum"):
                if key in prop_schema:
                    converted[key] = prop_schema[key]
            return self._annotate(converted, prop_schema)

        if prop_type is None and "enum" in prop_schema:
            raise SchemaDerivationError(path, "enum without a declared type")

        raise SchemaDerivationError(
            path, f"unsupported type {prop_type!r}" if prop_type else "no type declared"
        )

    def _convert_union(self, prop_schema, path):
        options = prop_schema["anyOf"]
        non_null = [o for o in options if o.get("type") != "null"]
        nullable = len(non_null) < len(options)

        if len(non_null) == 1:
            converted = self._convert_property(non_null[0], path)
            if nullable:
                converted["nullable"] = True
            return self._annotate(converted, prop_schema)

        types = sorted(o.get("type") or "" for o in non_null)
        if types == ["integer", "string"]:
            return self._annotate({INT_OR_STRING: True}, prop_schema)

        raise SchemaDerivationError(path, "unions of several types are not structural")

    @staticmethod
    def _annotate(converted, prop_schema):
        if "description" in prop_schema:
            converted["description"] = prop_schema["description"]
        if prop_schema.get("default") is not None:
            converted["default"] = prop_schema["default"]
        return converted


def from_model(model_class):
    """Derive a structural schema from a pydantic model class."""
    try:
        pydantic_schema = model_class.model_json_schema()
    except Exception as e:
        raise SchemaDerivationError(
            model_class.__name__, f"pydantic could not build a JSON schema: {e}"
        ) from e

    converter = OpenAPIConverter(pydantic_schema.get("$defs", {}))
    node = converter.convert_schema(pydantic_schema)
    check_structural(node)
    logger.debug(f"Derived schema for {model_class.__name__}")
    return StructuralSchema(openapi=node)


def derive(source):
    """Turn any supported schema source into a StructuralSchema."""
    if isinstance(source, StructuralSchema):
        return source
    if isinstance(source, SchemaBuilder):
        return source.build()
    if inspect.isclass(source) and issubclass(source, BaseModel):
        return from_model(source)
    raise SchemaDerivationError(
        "<root>", f"unsupported schema source {type(source).__name__}"
    )
