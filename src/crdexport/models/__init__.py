"""Resources whose CRDs this project manages."""

# Import all models to ensure they're registered, in a fixed order
from . import pci
from . import usb

__all__ = ["pci", "usb"]
