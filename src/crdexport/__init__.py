"""Export and install Kubernetes CustomResourceDefinitions."""

__version__ = "0.1.0"
