"""Tests for scan/resources.py module."""

from check_conditions.models import ResourceTypeDescriptor
from check_conditions.scan.resources import build_jobs

from conftest import DEPLOYMENTS, NODES, PODS


class TestBuildJobs:
    """Tests for filtering resource types into jobs."""

    def test_subresources_dropped(self):
        """Test subresources are not scanned."""
        log = ResourceTypeDescriptor("", "v1", "pods/log", True)
        assert build_jobs([PODS, log]) == [PODS]

    def test_deny_list(self):
        """Test request-only APIs are not scanned."""
        reviews = ResourceTypeDescriptor("authentication.k8s.io", "v1", "tokenreviews", False)
        assert build_jobs([reviews, NODES]) == [NODES]

    def test_namespace_drops_cluster_scoped(self):
        """Test cluster scoped types are dropped when a namespace is given."""
        assert build_jobs([PODS, NODES, DEPLOYMENTS], namespace="default") == [PODS, DEPLOYMENTS]

    def test_duplicates_dropped(self):
        """Test each (group, version, name) is scanned once."""
        assert build_jobs([PODS, PODS._replace(namespaced=False)]) == [PODS]
