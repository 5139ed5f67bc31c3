"""Tests for resource descriptors and printer columns."""

import pytest

from crdexport.crd.columns import ColumnSpec, check_json_path
from crdexport.crd.descriptor import ResourceDescriptor, check_unique, describe, guess_plural
from crdexport.crd.errors import (
    DuplicateColumnError,
    DuplicateResourceError,
    InvalidColumnError,
    ValidationError,
)


class TestGuessPlural:

    @pytest.mark.parametrize(
        "kind,plural",
        [
            ("PCIDevice", "pcidevices"),
            ("USBDeviceClaim", "usbdeviceclaims"),
            ("Policy", "policies"),
            ("Gateway", "gateways"),
            ("Ingress", "ingresses"),
            ("Box", "boxes"),
            ("Patch", "patches"),
            ("Mesh", "meshes"),
        ],
    )
    def test_plural(self, kind, plural):
        assert guess_plural(kind) == plural


class TestDescriptor:

    def test_names_derived_from_kind(self, pci_descriptor):
        assert pci_descriptor.plural_name == "pcidevices"
        assert pci_descriptor.singular_name == "pcidevice"
        assert pci_descriptor.crd_name == "pcidevices.devices.example.io"
        assert pci_descriptor.scope == "Cluster"
        assert pci_descriptor.key == "devices.example.io/v1beta1/PCIDevice"

    def test_explicit_plural_wins(self, pci_schema):
        descriptor = describe("example.io", "v1", "Foo", pci_schema, plural="fooz")
        assert descriptor.crd_name == "fooz.example.io"

    def test_defaults(self, pci_schema):
        descriptor = ResourceDescriptor(
            group="example.io", version="v1", kind="Foo", schema_source=pci_schema
        )
        assert descriptor.namespaced is True
        assert descriptor.status is False
        assert descriptor.columns == ()

    def test_builders_do_not_mutate(self, pci_descriptor):
        changed = pci_descriptor.namespaced_scope().with_status()
        assert changed.namespaced is True
        assert changed.status is True
        assert pci_descriptor.namespaced is False
        assert pci_descriptor.status is False

        assert changed.cluster_scoped().namespaced is False

    def test_descriptor_is_frozen(self, pci_descriptor):
        with pytest.raises(Exception):
            pci_descriptor.kind = "Other"

    def test_empty_kind_rejected(self, pci_schema):
        with pytest.raises(ValidationError):
            ResourceDescriptor(group="example.io", version="v1", kind="", schema_source=pci_schema)

    def test_bad_field_type_is_a_validation_error(self, pci_schema):
        with pytest.raises(ValidationError) as exc:
            describe("example.io", "v1", 42, pci_schema)
        assert "kind" in str(exc.value)

    def test_with_names(self, pci_descriptor):
        named = pci_descriptor.with_names(short_names=["pcid"], categories=["devices"])
        assert named.short_names == ("pcid",)
        assert named.categories == ("devices",)
        assert named.plural is None


class TestColumns:

    def test_columns_chain_in_order(self, pci_descriptor):
        descriptor = pci_descriptor.with_column("A", ".spec.a").with_column("B", ".spec.b")
        assert [c.name for c in descriptor.columns] == ["Address", "A", "B"]
        # Original is untouched
        assert [c.name for c in pci_descriptor.columns] == ["Address"]

    def test_duplicate_column_rejected(self, pci_descriptor):
        with pytest.raises(DuplicateColumnError) as exc:
            pci_descriptor.with_column("Address", ".status.other")
        assert exc.value.column == "Address"
        assert isinstance(exc.value, ValidationError)

    def test_duplicate_column_rejected_at_construction(self, pci_schema):
        with pytest.raises(DuplicateColumnError):
            describe(
                "example.io",
                "v1",
                "Foo",
                pci_schema,
                columns=[("Name", ".spec.a"), ("Name", ".spec.b")],
            )

    def test_duplicate_column_rejected_by_model(self, pci_schema):
        column = ColumnSpec(name="Name", json_path=".spec.a")
        with pytest.raises(DuplicateColumnError):
            ResourceDescriptor(
                group="example.io",
                version="v1",
                kind="Foo",
                schema_source=pci_schema,
                columns=(column, column),
            )

    def test_unknown_column_type_rejected(self, pci_descriptor):
        with pytest.raises(ValidationError) as exc:
            pci_descriptor.with_column("Count", ".status.count", type="int")
        assert "Count" in str(exc.value)
        assert "type" in str(exc.value)

    def test_column_options(self, pci_descriptor):
        descriptor = pci_descriptor.with_column(
            "Age", ".metadata.creationTimestamp", type="date", priority=1
        )
        column = descriptor.columns[-1]
        assert column.type == "date"
        assert column.to_structural() == {
            "name": "Age",
            "type": "date",
            "jsonPath": ".metadata.creationTimestamp",
            "priority": 1,
        }
        assert column.to_legacy()["JSONPath"] == ".metadata.creationTimestamp"

    @pytest.mark.parametrize(
        "path",
        ["", "status.address", ".status. address", ".spec.items[0", ".spec.items]", ".spec."],
    )
    def test_malformed_json_path(self, path):
        with pytest.raises(InvalidColumnError):
            check_json_path("Col", path)

    @pytest.mark.parametrize(
        "path",
        [".status.address", ".spec.items[0].name", ".metadata.labels.app", ".spec.ports[*].port"],
    )
    def test_well_formed_json_path(self, path):
        check_json_path("Col", path)

    def test_malformed_path_rejected_by_with_column(self, pci_descriptor):
        with pytest.raises(InvalidColumnError):
            pci_descriptor.with_column("Bad", "status")


class TestCheckUnique:

    def test_duplicate_resource(self, pci_descriptor):
        with pytest.raises(DuplicateResourceError):
            check_unique([pci_descriptor, pci_descriptor.with_status()])

    def test_distinct_resources(self, pci_descriptor, pci_schema):
        other = describe("devices.example.io", "v1beta1", "USBDevice", pci_schema)
        check_unique([pci_descriptor, other])
