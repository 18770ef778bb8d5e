"""Shared test fixtures for check-conditions tests."""

from collections.abc import Iterator
from typing import Any
from unittest.mock import patch

import pytest

from check_conditions.exceptions import ClusterConnectionError, ResourceListError
from check_conditions.models import ResourceTypeDescriptor

PODS = ResourceTypeDescriptor("", "v1", "pods", True)
NODES = ResourceTypeDescriptor("", "v1", "nodes", False)
DEPLOYMENTS = ResourceTypeDescriptor("apps", "v1", "deployments", True)


def make_object(name: str, conditions: Any, namespace: str = "default") -> dict[str, Any]:
    """Build a minimal object as returned by the API server."""
    return {"metadata": {"name": name, "namespace": namespace}, "status": {"conditions": conditions}}


def condition(c_type: str, status: str, reason: str = "", message: str = "", **extra: Any) -> dict[str, Any]:
    """Build one raw condition entry."""
    return {"type": c_type, "status": status, "reason": reason, "message": message, **extra}


class FakeCluster:
    """In-memory stand-in for check_conditions.cluster.Cluster.

    Attributes:
        objects: Objects returned per resource name.
        list_errors: Resource names whose listing fails.
        discovery_failures: Number of enumerate calls that fail before succeeding.

    """

    def __init__(
        self,
        objects: dict[str, list[dict[str, Any]]] | None = None,
        descriptors: list[ResourceTypeDescriptor] | None = None,
    ) -> None:
        self.objects = objects or {}
        self.descriptors = descriptors if descriptors is not None else [PODS]
        self.list_errors: set[str] = set()
        self.discovery_failures = 0
        self.enumerate_calls = 0
        self.list_calls: list[tuple[str, str | None]] = []

    def enumerate_resource_types(self) -> list[ResourceTypeDescriptor]:
        self.enumerate_calls += 1
        if self.discovery_failures:
            self.discovery_failures -= 1
            raise ClusterConnectionError("Failed to connect to the Kubernetes cluster: connection refused")
        return list(self.descriptors)

    def list_objects(
        self, descriptor: ResourceTypeDescriptor, namespace: str | None = None, timeout: float | None = None
    ) -> list[dict[str, Any]]:
        self.list_calls.append((descriptor.name, namespace))
        if descriptor.name in self.list_errors:
            raise ResourceListError(f"Error listing {descriptor.name}: 403 Forbidden")
        return list(self.objects.get(descriptor.name, []))


@pytest.fixture
def fake_cluster() -> FakeCluster:
    """Cluster with one pods type and the three objects of the basic scenario."""
    return FakeCluster(
        {
            "pods": [
                make_object("a", [condition("Ready", "True")]),
                make_object("b", [condition("Ready", "False", "PodCompleted")]),
                make_object("c", [condition("Ready", "False", "CrashLoop", "boom")]),
            ]
        }
    )


@pytest.fixture
def lines() -> list[str]:
    """Collects printed report lines."""
    return []


@pytest.fixture
def warnings() -> list[str]:
    """Collects diagnostic lines."""
    return []


@pytest.fixture
def mock_kube_contexts() -> Iterator[Any]:
    """Mock kubernetes config contexts."""
    with patch("kubernetes.config.list_kube_config_contexts") as mock:
        mock.return_value = ([{"name": "test-context"}], {"name": "test-context"})
        yield mock


@pytest.fixture
def mock_kube_config() -> Iterator[Any]:
    """Mock kubernetes config loading."""
    with patch("kubernetes.config.load_kube_config") as mock:
        yield mock


@pytest.fixture
def isolated_config(tmp_path, monkeypatch) -> Any:
    """Run in an empty directory with an empty home, so no user config is found."""
    home = tmp_path / "home" / "user"
    work = tmp_path / "work"
    home.mkdir(parents=True)
    work.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(work)
    return work
