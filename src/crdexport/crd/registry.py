"""CRD Registry: the list of resources this system manages."""

import importlib
import logging
import pkgutil

from .descriptor import describe
from .errors import DuplicateResourceError, ValidationError

logger = logging.getLogger(__name__)

SCOPES = ("Namespaced", "Cluster")


class CRDRegistry:
    """Ordered registry of resource descriptors.

    Registration order is kept so that exports are byte-identical across
    runs. ``CRDRegistry.default()`` is the shared instance that the
    ``register`` decorator and model discovery fill in.
    """

    _default = None

    def __init__(self):
        self._descriptors = {}

    @classmethod
    def default(cls):
        if cls._default is None:
            cls._default = cls()
        return cls._default

    @classmethod
    def register(cls, group, version, kind, plural=None, scope="Namespaced",
                 status=False, columns=None, short_names=(), categories=()):
        """Decorator to register a pydantic model as a managed resource.

        Args:
            group: API group (e.g., 'devices.example.io')
            version: API version (e.g., 'v1beta1')
            kind: Kind name (e.g., 'USBDevice')
            plural: Plural name (guessed from the kind when omitted)
            scope: 'Namespaced' or 'Cluster'
            status: Whether the resource has a status subresource
            columns: (name, json_path) pairs for printer columns
        """
        if scope not in SCOPES:
            raise ValidationError(
                f"Invalid scope '{scope}' for {kind}, expected one of {', '.join(SCOPES)}"
            )

        def decorator(model_class):
            descriptor = describe(
                group,
                version,
                kind,
                model_class,
                namespaced=scope == "Namespaced",
                status=status,
                columns=columns,
                plural=plural,
                short_names=short_names,
                categories=categories,
            )
            cls.default().add(descriptor)
            model_class._crd_descriptor = descriptor
            return model_class

        return decorator

    def add(self, descriptor):
        """Append a descriptor. Group/version/kind must be unique."""
        if descriptor.key in self._descriptors:
            raise DuplicateResourceError(descriptor.key)
        self._descriptors[descriptor.key] = descriptor
        logger.debug(f"Registered CRD: {descriptor.key}")
        return descriptor

    def extend(self, descriptors):
        for descriptor in descriptors:
            self.add(descriptor)

    def list(self):
        """All registered descriptors in registration order."""
        return list(self._descriptors.values())

    def get(self, group, version, kind):
        return self._descriptors.get(f"{group}/{version}/{kind}")

    def get_by_group(self, group):
        return [d for d in self._descriptors.values() if d.group == group]

    def list_registered_keys(self):
        return list(self._descriptors.keys())

    def clear(self):
        """Clear all registered descriptors (useful for testing)."""
        self._descriptors.clear()

    def __len__(self):
        return len(self._descriptors)

    def discover_models(self, package_paths=None):
        """Import every module of the given packages so they register.

        Args:
            package_paths: List of package paths to search (e.g., ['crdexport.models'])
        """
        if package_paths is None:
            package_paths = ["crdexport.models"]

        for package_path in package_paths:
            self._discover_in_package(package_path)

    def _discover_in_package(self, package_path):
        package = importlib.import_module(package_path)

        # Import all submodules
        if hasattr(package, "__path__"):
            for _, module_name, _ in pkgutil.iter_modules(package.__path__):
                full_module_name = f"{package_path}.{module_name}"
                importlib.import_module(full_module_name)
                logger.debug(f"Discovered models in {full_module_name}")
