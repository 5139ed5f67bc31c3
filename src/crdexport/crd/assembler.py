"""Assemble rendered CRDs into one chart-ready document."""

import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, ConfigDict

from .descriptor import check_unique
from .errors import SerializationError
from .renderer import Dialect, render_all

logger = logging.getLogger(__name__)

# Consumed by the chart renderer at install time; do not change.
CAPABILITY_CHECK = '{{- if .Capabilities.APIVersions.Has "apiextensions.k8s.io/v1" }}'
ELSE_MARKER = "{{- else }}"
END_MARKER = "{{- end }}"

DOCUMENT_SEPARATOR = "---\n"


class AssembledDocument(BaseModel):
    """Serialized CRD streams, one per dialect that was assembled.

    When both streams are present, ``text`` guards them with the chart
    capability check so exactly one of them is active for any cluster.
    """

    model_config = ConfigDict(frozen=True)

    structural: Optional[str] = None
    legacy: Optional[str] = None
    names: tuple = ()

    @property
    def guarded(self):
        return self.structural is not None and self.legacy is not None

    @property
    def text(self):
        if not self.guarded:
            return self.structural if self.structural is not None else self.legacy
        return "".join(
            [
                CAPABILITY_CHECK + "\n",
                self.structural,
                ELSE_MARKER + "\n",
                self.legacy,
                END_MARKER + "\n",
            ]
        )


def serialize(rendered):
    """Join rendered CRDs of one dialect into a multi-document YAML stream."""
    return DOCUMENT_SEPARATOR.join(crd.to_yaml() for crd in rendered)


def assemble(descriptors, dialect=None):
    """Render and serialize all descriptors.

    Without ``dialect`` both dialects are rendered and the result is guarded
    by the capability check. With an explicit dialect only that stream is
    produced. Any failure aborts the whole assembly.
    """
    descriptors = list(descriptors)
    check_unique(descriptors)

    dialects = [Dialect(dialect)] if dialect else [Dialect.STRUCTURAL, Dialect.LEGACY]

    # Render everything before serializing anything
    rendered = {d: render_all(descriptors, d) for d in dialects}
    streams = {d.value: serialize(crds) for d, crds in rendered.items()}

    logger.info(
        f"Assembled {len(descriptors)} CRDs for dialects "
        f"{', '.join(d.value for d in dialects)}"
    )
    return AssembledDocument(
        names=tuple(d.crd_name for d in descriptors), **streams
    )


def write_document(document, path, force=False):
    """Write an assembled document, creating parent directories.

    Returns:
        bool: True if the file was written, False if it already held the
        same content
    """
    path = Path(path)
    text = document.text

    try:
        path.parent.mkdir(parents=True, exist_ok=True)

        if not force and path.exists():
            if path.read_text(encoding="utf-8") == text:
                logger.info(f"{path} unchanged, skipping write")
                return False

        with open(path, "w", encoding="utf-8", newline="\n") as f:
            f.write(text)
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"Failed to write {path}: {e}")
        raise SerializationError(f"Failed to write {path}: {e}") from e

    logger.info(f"Wrote {len(document.names)} CRDs to {path}")
    return True


def _split_guarded(text):
    lines = text.splitlines(keepends=True)
    stripped = [line.rstrip("\n") for line in lines]
    try:
        else_at = stripped.index(ELSE_MARKER)
        end_at = stripped.index(END_MARKER)
    except ValueError as e:
        raise SerializationError("Guarded document is missing a marker") from e
    if else_at > end_at:
        raise SerializationError("Guard markers are out of order")
    return {
        Dialect.STRUCTURAL: "".join(lines[1:else_at]),
        Dialect.LEGACY: "".join(lines[else_at + 1:end_at]),
    }


def validate_document(text):
    """Check that every block of a document holds only CRDs.

    Returns:
        dict: CRD names found per dialect
    """
    if text.startswith(CAPABILITY_CHECK):
        blocks = _split_guarded(text)
    else:
        blocks = {None: text}

    found = {}
    for dialect, block in blocks.items():
        try:
            docs = [doc for doc in yaml.safe_load_all(block) if doc is not None]
        except yaml.YAMLError as e:
            raise SerializationError(f"Invalid YAML in {dialect} block: {e}") from e

        names = []
        for doc in docs:
            if not isinstance(doc, dict) or doc.get("kind") != "CustomResourceDefinition":
                raise SerializationError(f"Not a CRD in {dialect} block: {doc!r:.80}")
            if dialect is not None and doc.get("apiVersion") != dialect.api_version:
                raise SerializationError(
                    f"{doc['metadata']['name']} has apiVersion {doc.get('apiVersion')} "
                    f"in the {dialect.value} block"
                )
            names.append(doc["metadata"]["name"])
        found[dialect] = names

    logger.debug(f"Validated document: {found}")
    return found
