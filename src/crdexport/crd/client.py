"""Kubernetes API access for CRD installation."""

import logging
import threading

from kubernetes import client, config
from kubernetes.client.exceptions import ApiException
from kubernetes.config import ConfigException
from kubernetes.dynamic import DynamicClient
from kubernetes.dynamic.exceptions import ResourceNotFoundError

from .renderer import CRD_GROUP

logger = logging.getLogger(__name__)


def load_api_client():
    """Load in-cluster config, falling back to the local kubeconfig."""
    try:
        config.load_incluster_config()
        logger.info("Loaded in-cluster Kubernetes config")
    except ConfigException:
        config.load_kube_config()
        logger.info("Loaded local Kubernetes config")
    return client.ApiClient()


class CRDClient:
    """Create and read CustomResourceDefinitions in either API version.

    Holds exactly one API connection. Safe to share between the worker
    threads of one install.
    """

    def __init__(self, api_client=None):
        self.api_client = api_client or load_api_client()
        self._dynamic = None
        self._lock = threading.Lock()

    def served_versions(self):
        """Versions of apiextensions.k8s.io the API server serves."""
        group_list = client.ApisApi(self.api_client).get_api_versions()
        for group in group_list.groups or []:
            if group.name == CRD_GROUP:
                return [v.version for v in group.versions]
        return []

    def supports_structural(self):
        return "v1" in self.served_versions()

    def _resource(self, api_version):
        with self._lock:
            if self._dynamic is None:
                self._dynamic = DynamicClient(self.api_client)
        try:
            return self._dynamic.resources.get(
                api_version=api_version, kind="CustomResourceDefinition"
            )
        except ResourceNotFoundError as e:
            raise ApiException(status=404, reason=f"{api_version} not served: {e}")

    def create(self, body):
        created = self._resource(body["apiVersion"]).create(body=body)
        return created.to_dict()

    def read(self, api_version, name):
        return self._resource(api_version).get(name=name).to_dict()
