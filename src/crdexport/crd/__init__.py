"""CRD schema export: describe, render, assemble and install CRDs."""

from .assembler import AssembledDocument, assemble, validate_document, write_document
from .base import CRDCondition, CRDSpec, CRDStatus
from .columns import ColumnSpec
from .descriptor import ResourceDescriptor, describe, guess_plural
from .errors import (
    ClusterRejection,
    CRDExportError,
    DuplicateColumnError,
    DuplicateResourceError,
    InstallError,
    InvalidColumnError,
    SchemaDerivationError,
    SerializationError,
    Timeout,
    ValidationError,
)
from .installer import CRDInstaller, InstallResult, InstallState, install
from .registry import CRDRegistry
from .renderer import Dialect, RenderedCRD, render
from .schema import SchemaBuilder, StructuralSchema, from_model

__all__ = [
    "AssembledDocument",
    "CRDCondition",
    "CRDExportError",
    "CRDInstaller",
    "CRDRegistry",
    "CRDSpec",
    "CRDStatus",
    "ClusterRejection",
    "ColumnSpec",
    "Dialect",
    "DuplicateColumnError",
    "DuplicateResourceError",
    "InstallError",
    "InstallResult",
    "InstallState",
    "InvalidColumnError",
    "RenderedCRD",
    "ResourceDescriptor",
    "SchemaBuilder",
    "SchemaDerivationError",
    "SerializationError",
    "StructuralSchema",
    "Timeout",
    "ValidationError",
    "assemble",
    "describe",
    "from_model",
    "guess_plural",
    "install",
    "render",
    "validate_document",
    "write_document",
]
