import pytest
from kubernetes.client.exceptions import ApiException

from crdexport.crd.descriptor import describe
from crdexport.crd.schema import SchemaBuilder, string


@pytest.fixture
def pci_schema():
    return (
        SchemaBuilder()
        .field("spec", SchemaBuilder())
        .field("status", SchemaBuilder().field("address", string(), required=True))
        .build()
    )


@pytest.fixture
def pci_descriptor(pci_schema):
    return describe(
        "devices.example.io",
        "v1beta1",
        "PCIDevice",
        pci_schema,
        namespaced=False,
        columns=[("Address", ".status.address")],
    )


class FakeCRDClient:
    """In-memory API server for CRDs.

    ``establish`` controls whether created CRDs report Established,
    ``reject`` maps CRD names to an exception raised on create,
    ``fail_reads`` maps CRD names to an exception raised on every read once
    the CRD exists, and ``served`` lists the apiextensions versions the
    server offers.
    """

    def __init__(self, served=("v1", "v1beta1"), establish=True, reject=None,
                 missing_versions=(), fail_reads=None):
        self.served = list(served)
        self.establish = establish
        self.reject = reject or {}
        self.fail_reads = fail_reads or {}
        self.missing_versions = set(missing_versions)
        self.crds = {}
        self.created = []
        self.reads = 0

    def supports_structural(self):
        return "v1" in self.served

    def _version_served(self, api_version):
        if api_version in self.missing_versions:
            raise ApiException(status=404, reason=f"{api_version} not served")

    def read(self, api_version, name):
        self.reads += 1
        self._version_served(api_version)
        if name not in self.crds:
            raise ApiException(status=404, reason="Not Found")
        if name in self.fail_reads:
            raise self.fail_reads[name]
        return self.crds[name]

    def create(self, body):
        self._version_served(body["apiVersion"])
        name = body["metadata"]["name"]
        if name in self.reject:
            raise self.reject[name]
        if name in self.crds:
            raise ApiException(status=409, reason="AlreadyExists")
        self.created.append(name)
        status = "True" if self.establish else "False"
        body = dict(body)
        body["status"] = {
            "conditions": [
                {"type": "NamesAccepted", "status": "True"},
                {"type": "Established", "status": status},
            ]
        }
        self.crds[name] = body
        return body


@pytest.fixture
def fake_client():
    return FakeCRDClient()


@pytest.fixture
def make_client():
    return FakeCRDClient
