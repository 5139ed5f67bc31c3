"""USB passthrough resources, declared as pydantic models."""

from typing import Optional

from pydantic import Field

from crdexport.crd.base import CRDSpec, CRDStatus
from crdexport.crd.registry import CRDRegistry

GROUP = "devices.example.io"
VERSION = "v1beta1"


class USBDeviceStatus(CRDStatus):
    vendorId: str = Field(..., description="USB vendor identifier")
    productId: str = Field(..., description="USB product identifier")
    nodeName: str = Field(..., description="Node the device is attached to")
    resourceName: str = Field(..., description="Device plugin resource name")
    devicePath: str = Field(..., description="Path under /dev/bus/usb")
    description: Optional[str] = Field(default=None, description="Product name")
    enabled: bool = Field(default=False, description="Whether passthrough is active")


@CRDRegistry.register(
    GROUP,
    VERSION,
    "USBDevice",
    scope="Cluster",
    status=True,
    columns=[
        ("Vendor ID", ".status.vendorId"),
        ("Product ID", ".status.productId"),
        ("Node Name", ".status.nodeName"),
        ("Device Path", ".status.devicePath"),
        ("Enabled", ".status.enabled"),
    ],
)
class USBDevice(CRDSpec):
    """USB device discovered on a node."""

    status: Optional[USBDeviceStatus] = None


class USBDeviceClaimSpec(CRDSpec):
    userName: str = Field(default="", description="User requesting the passthrough")


class USBDeviceClaimStatus(CRDStatus):
    nodeName: str = Field(default="", description="Node the claimed device is on")
    pciAddress: str = Field(default="", description="Address of the USB controller")
    userName: str = Field(default="")


@CRDRegistry.register(
    GROUP,
    VERSION,
    "USBDeviceClaim",
    scope="Cluster",
    status=True,
    columns=[
        ("Node Name", ".status.nodeName"),
        ("Address", ".status.pciAddress"),
        ("User Name", ".status.userName"),
    ],
)
class USBDeviceClaim(CRDSpec):
    """Request to pass a USB device through to a virtual machine."""

    spec: USBDeviceClaimSpec
    status: Optional[USBDeviceClaimStatus] = None
