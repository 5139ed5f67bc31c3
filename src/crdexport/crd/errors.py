"""Errors raised while describing, rendering and installing CRDs."""


class CRDExportError(Exception):
    """Base class for all crdexport errors."""


class ValidationError(CRDExportError):
    """A resource descriptor is malformed."""


class DuplicateColumnError(ValidationError):
    def __init__(self, column, kind=None):
        self.column = column
        self.kind = kind
        where = f" on {kind}" if kind else ""
        super().__init__(f"Duplicate printer column '{column}'{where}")


class InvalidColumnError(ValidationError):
    def __init__(self, column, json_path, reason):
        self.column = column
        self.json_path = json_path
        super().__init__(
            f"Invalid JSON path '{json_path}' for column '{column}': {reason}"
        )


class DuplicateResourceError(ValidationError):
    def __init__(self, key):
        self.key = key
        super().__init__(f"Resource {key} is registered more than once")


class SchemaDerivationError(CRDExportError):
    """A schema source cannot be turned into a structural schema."""

    def __init__(self, field, reason):
        self.field = field
        super().__init__(f"Cannot derive schema for field '{field}': {reason}")


class SerializationError(CRDExportError):
    """Encoding or writing a rendered document failed."""


class ClusterRejection(CRDExportError):
    """The API server refused to create a CRD."""

    def __init__(self, name, status, reason):
        self.name = name
        self.status = status
        self.reason = reason
        super().__init__(f"{name} rejected by API server ({status}): {reason}")


class Timeout(CRDExportError):
    """A CRD was not observed as Established within the wait window."""

    def __init__(self, name, waited):
        self.name = name
        self.waited = waited
        super().__init__(f"{name} not established after {waited:.0f}s")


class InstallError(CRDExportError):
    """One or more CRDs failed to install.

    Carries the outcome of every descriptor in the batch, not only the
    failed ones.
    """

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        failed = [o for o in self.outcomes if not o.ok]
        summary = ", ".join(f"{o.name}={o.state.value}" for o in self.outcomes)
        super().__init__(
            f"{len(failed)} of {len(self.outcomes)} CRDs failed to install: {summary}"
        )

    @property
    def failed(self):
        return [o for o in self.outcomes if not o.ok]
