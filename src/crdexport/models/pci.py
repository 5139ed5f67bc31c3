"""PCI passthrough resources, declared with explicit schema builders."""

from crdexport.crd.descriptor import describe
from crdexport.crd.registry import CRDRegistry
from crdexport.crd.schema import SchemaBuilder, boolean, integer, string

GROUP = "devices.example.io"
VERSION = "v1beta1"

pci_device_schema = (
    SchemaBuilder()
    .field("spec", SchemaBuilder())
    .field(
        "status",
        SchemaBuilder()
        .field("address", string(description="PCI address, e.g. 0000:00:1f.6"), required=True)
        .field("vendorId", string(), required=True)
        .field("deviceId", string(), required=True)
        .field("classId", string())
        .field("nodeName", string(), required=True)
        .field("resourceName", string(description="Device plugin resource name"))
        .field("description", string())
        .field("kernelDriverInUse", string())
        .field("iommuGroup", string())
        .field("numaNode", integer(minimum=-1)),
    )
    .build()
)

pci_device_claim_schema = (
    SchemaBuilder()
    .field(
        "spec",
        SchemaBuilder()
        .field("address", string(), required=True)
        .field("nodeName", string(), required=True)
        .field("userName", string(description="User requesting the passthrough")),
        required=True,
    )
    .field(
        "status",
        SchemaBuilder()
        .field("kernelDriverToUnbind", string())
        .field("passthroughEnabled", boolean(default=False)),
    )
    .build()
)

PCIDevice = describe(
    GROUP,
    VERSION,
    "PCIDevice",
    pci_device_schema,
    namespaced=False,
    status=True,
    columns=[
        ("Address", ".status.address"),
        ("Vendor Id", ".status.vendorId"),
        ("Device Id", ".status.deviceId"),
        ("Node Name", ".status.nodeName"),
        ("Description", ".status.description"),
        ("Kernel Driver In Use", ".status.kernelDriverInUse"),
    ],
    short_names=["pcid"],
)

PCIDeviceClaim = describe(
    GROUP,
    VERSION,
    "PCIDeviceClaim",
    pci_device_claim_schema,
    namespaced=False,
    status=True,
    columns=[
        ("Address", ".spec.address"),
        ("Node Name", ".spec.nodeName"),
        ("User Name", ".spec.userName"),
        ("Kernel Driver To Unbind", ".status.kernelDriverToUnbind"),
        ("Passthrough Enabled", ".status.passthroughEnabled"),
    ],
    short_names=["pcidc"],
)

CRDRegistry.default().extend([PCIDevice, PCIDeviceClaim])
