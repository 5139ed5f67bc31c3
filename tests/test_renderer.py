"""Tests for rendering descriptors in both CRD dialects."""

import pytest
import yaml

from crdexport.crd.descriptor import describe
from crdexport.crd.errors import SchemaDerivationError
from crdexport.crd.renderer import Dialect, render
from crdexport.crd.schema import SchemaBuilder


def _version(crd):
    return crd["spec"]["versions"][0]


class TestStructural:

    def test_round_trip_metadata(self, pci_descriptor):
        rendered = render(pci_descriptor.with_status(), Dialect.STRUCTURAL)
        crd = yaml.safe_load(rendered.to_yaml())

        assert crd["apiVersion"] == "apiextensions.k8s.io/v1"
        assert crd["kind"] == "CustomResourceDefinition"
        assert crd["metadata"]["name"] == "pcidevices.devices.example.io"
        assert crd["spec"]["group"] == "devices.example.io"
        assert crd["spec"]["names"]["kind"] == "PCIDevice"
        assert crd["spec"]["names"]["listKind"] == "PCIDeviceList"
        assert crd["spec"]["scope"] == "Cluster"
        assert _version(crd)["subresources"] == {"status": {}}

    def test_schema_per_version(self, pci_descriptor):
        crd = render(pci_descriptor, "structural").to_dict()
        version = _version(crd)
        schema = version["schema"]["openAPIV3Schema"]

        assert version["name"] == "v1beta1"
        assert version["served"] is True and version["storage"] is True
        assert "subresources" not in version
        assert schema["properties"]["apiVersion"] == {"type": "string"}
        assert schema["properties"]["metadata"] == {"type": "object"}
        assert schema["properties"]["status"]["required"] == ["address"]
        assert "validation" not in crd["spec"]

    def test_printer_columns(self, pci_descriptor):
        descriptor = pci_descriptor.with_column("A", ".spec.a").with_column("B", ".spec.b")
        columns = _version(render(descriptor, Dialect.STRUCTURAL).to_dict())[
            "additionalPrinterColumns"
        ]
        assert [c["name"] for c in columns] == ["Address", "A", "B"]
        assert columns[0] == {"name": "Address", "type": "string", "jsonPath": ".status.address"}


class TestLegacy:

    def test_schema_is_single_blob(self, pci_descriptor):
        crd = render(pci_descriptor.with_status(), Dialect.LEGACY).to_dict()
        spec = crd["spec"]

        assert crd["apiVersion"] == "apiextensions.k8s.io/v1beta1"
        assert spec["version"] == "v1beta1"
        assert spec["validation"]["openAPIV3Schema"]["type"] == "object"
        assert spec["subresources"] == {"status": {}}
        assert "schema" not in _version(crd)
        assert "subresources" not in _version(crd)

    def test_printer_columns_per_version(self, pci_descriptor):
        descriptor = pci_descriptor.with_column("A", ".spec.a").with_column("B", ".spec.b")
        crd = render(descriptor, Dialect.LEGACY).to_dict()
        columns = _version(crd)["additionalPrinterColumns"]

        assert [c["name"] for c in columns] == ["Address", "A", "B"]
        assert columns[0]["JSONPath"] == ".status.address"
        assert "additionalPrinterColumns" not in crd["spec"]


class TestDialectAgreement:

    @pytest.mark.parametrize("namespaced", [True, False])
    @pytest.mark.parametrize("status", [True, False])
    def test_same_identity(self, pci_descriptor, namespaced, status):
        descriptor = pci_descriptor.with_status(status)
        descriptor = descriptor.namespaced_scope() if namespaced else descriptor.cluster_scoped()

        structural = render(descriptor, Dialect.STRUCTURAL)
        legacy = render(descriptor, Dialect.LEGACY)
        s_spec = structural.to_dict()["spec"]
        l_spec = legacy.to_dict()["spec"]

        assert structural.name == legacy.name
        assert f"{s_spec['names']['plural']}.{s_spec['group']}" == structural.name
        assert s_spec["names"] == l_spec["names"]
        assert s_spec["scope"] == l_spec["scope"]
        assert ("subresources" in _version(structural.to_dict())) == ("subresources" in l_spec)

    def test_same_validation_schema(self, pci_descriptor):
        structural = render(pci_descriptor, Dialect.STRUCTURAL).to_dict()
        legacy = render(pci_descriptor, Dialect.LEGACY).to_dict()
        assert (
            _version(structural)["schema"]["openAPIV3Schema"]
            == legacy["spec"]["validation"]["openAPIV3Schema"]
        )


class TestRenderErrors:

    def test_unreflectable_schema(self):
        descriptor = describe(
            "example.io",
            "v1",
            "Broken",
            SchemaBuilder().field("spec", SchemaBuilder().field("blob", {})),
        )
        with pytest.raises(SchemaDerivationError) as exc:
            render(descriptor, Dialect.STRUCTURAL)
        assert exc.value.field == "spec.blob"

    def test_unknown_dialect(self, pci_descriptor):
        with pytest.raises(ValueError):
            render(pci_descriptor, "v2")

    def test_yaml_is_sorted_and_lf(self, pci_descriptor):
        text = render(pci_descriptor, Dialect.STRUCTURAL).to_yaml()
        assert "\r" not in text
        top_level = [line.split(":")[0] for line in text.splitlines() if not line.startswith(" ")]
        assert top_level == sorted(top_level)
