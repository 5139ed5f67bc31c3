"""Declarative description of one custom resource."""

import logging
from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic import ValidationError as PydanticValidationError

from .columns import ColumnSpec
from .errors import DuplicateColumnError, DuplicateResourceError, ValidationError

logger = logging.getLogger(__name__)

_ES_SUFFIXES = ("s", "x", "z", "ch", "sh")
_VOWELS = "aeiou"


def guess_plural(kind):
    """Lower-case and pluralize a kind, e.g. ``PCIDevice`` -> ``pcidevices``."""
    singular = kind.lower()
    if singular.endswith(_ES_SUFFIXES):
        return f"{singular}es"
    if singular.endswith("y") and len(singular) > 1 and singular[-2] not in _VOWELS:
        return f"{singular[:-1]}ies"
    return f"{singular}s"


def _construct(model_class, what, **data):
    """Build a model, reporting bad input as a crdexport ValidationError."""
    try:
        return model_class(**data)
    except PydanticValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(loc) for loc in error['loc']) or 'value'}: {error['msg']}"
            for error in e.errors()
        )
        raise ValidationError(f"Invalid {what}: {problems}") from e


class ResourceDescriptor(BaseModel):
    """Group/version/kind, scope, subresources, schema and printer columns.

    Descriptors are immutable: the ``with_*`` helpers return a new
    descriptor and leave the original untouched, so calls chain::

        ResourceDescriptor(group="devices.example.io", version="v1beta1",
                           kind="PCIDevice", schema_source=schema)
            .cluster_scoped()
            .with_status()
            .with_column("Address", ".status.address")
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    group: str
    version: str
    kind: str
    schema_source: Any
    namespaced: bool = True
    status: bool = False
    columns: Tuple[ColumnSpec, ...] = ()
    plural: Optional[str] = None
    short_names: Tuple[str, ...] = ()
    categories: Tuple[str, ...] = ()

    @model_validator(mode="after")
    def check_descriptor(self):
        for field_name in ("group", "version", "kind"):
            if not getattr(self, field_name):
                raise ValidationError(f"Resource descriptor has an empty {field_name}")
        seen = set()
        for column in self.columns:
            if column.name in seen:
                raise DuplicateColumnError(column.name, self.kind)
            seen.add(column.name)
        return self

    @property
    def key(self):
        return f"{self.group}/{self.version}/{self.kind}"

    @property
    def plural_name(self):
        return self.plural or guess_plural(self.kind)

    @property
    def singular_name(self):
        return self.kind.lower()

    @property
    def crd_name(self):
        return f"{self.plural_name}.{self.group}"

    @property
    def scope(self):
        return "Namespaced" if self.namespaced else "Cluster"

    def _replace(self, **changes):
        # model_copy skips validation, rebuild instead
        data = {name: getattr(self, name) for name in type(self).model_fields}
        data.update(changes)
        return _construct(type(self), f"resource {self.kind}", **data)

    def with_column(self, name, json_path, type="string", format=None,
                    description=None, priority=0):
        column = _construct(
            ColumnSpec,
            f"column '{name}' on {self.kind}",
            name=name,
            json_path=json_path,
            type=type,
            format=format,
            description=description,
            priority=priority,
        )
        if any(c.name == name for c in self.columns):
            raise DuplicateColumnError(name, self.kind)
        return self._replace(columns=self.columns + (column,))

    def with_columns(self, columns: List[ColumnSpec]):
        result = self
        for column in columns:
            result = result.with_column(**column.model_dump())
        return result

    def with_status(self, enabled=True):
        return self._replace(status=enabled)

    def cluster_scoped(self):
        return self._replace(namespaced=False)

    def namespaced_scope(self):
        return self._replace(namespaced=True)

    def with_names(self, plural=None, short_names=(), categories=()):
        return self._replace(
            plural=plural or self.plural,
            short_names=tuple(short_names) or self.short_names,
            categories=tuple(categories) or self.categories,
        )


def describe(group, version, kind, schema_source, namespaced=True, status=False,
             columns=None, plural=None, short_names=(), categories=()):
    """Build a descriptor from a schema source and customizations.

    ``columns`` is a sequence of ``(name, json_path)`` pairs or ColumnSpec
    instances, kept in order.
    """
    descriptor = _construct(
        ResourceDescriptor,
        f"resource {kind}",
        group=group,
        version=version,
        kind=kind,
        schema_source=schema_source,
        namespaced=namespaced,
        status=status,
        plural=plural,
        short_names=tuple(short_names),
        categories=tuple(categories),
    )
    for column in columns or []:
        if isinstance(column, ColumnSpec):
            descriptor = descriptor.with_column(**column.model_dump())
        else:
            descriptor = descriptor.with_column(*column)
    logger.debug(f"Described {descriptor.key} with {len(descriptor.columns)} columns")
    return descriptor


def check_unique(descriptors):
    """Raise DuplicateResourceError if a group/version/kind or CRD name repeats."""
    keys = set()
    names = set()
    for descriptor in descriptors:
        if descriptor.key in keys:
            raise DuplicateResourceError(descriptor.key)
        if descriptor.crd_name in names:
            raise DuplicateResourceError(descriptor.crd_name)
        keys.add(descriptor.key)
        names.add(descriptor.crd_name)
