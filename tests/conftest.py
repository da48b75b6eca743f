"""
Test configuration and fixtures for pytest.

Fixtures include: controller settings with instant retries, an in-memory
cluster, and factories for watched resources and exported Services.
"""

import os
import sys
from pathlib import Path

import pytest

# Add the project root and this directory to sys.path
tests_dir = Path(__file__).parent
sys.path.insert(0, str(tests_dir.parent))
sys.path.insert(0, str(tests_dir))

from fake_cluster import FakeCluster  # noqa: E402

GATEWAY_NAMESPACE = "opendatahub-services"
WORKLOAD_NAMESPACE = "test-ns"
CLUSTER_DOMAIN = "apps.example.com"


def pytest_configure(config):
    """
    Pytest hook called before test collection.
    Sets up test environment variables and registers custom markers.
    """
    os.environ["CONFIG_CAPABILITIES"] = str(tests_dir / "data" / "none")
    os.environ["K8S_IN_CLUSTER"] = "false"
    os.environ["CONFLICT_RETRY_INITIAL_WAIT"] = "0"
    os.environ["COLLABORATOR_RETRY_INITIAL_WAIT"] = "0"

    # Import and clear settings cache after env vars are set
    from platform_controller.config import get_settings
    get_settings.cache_clear()

    # Register custom markers
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "kubernetes: mark test as touching Kubernetes resources")


@pytest.fixture
def settings(tmp_path):
    """Settings with a private config directory, a fixed domain and instant retries."""
    from platform_controller.config import Settings
    return Settings(
        config_capabilities=str(tmp_path),
        cluster_domain=CLUSTER_DOMAIN,
        route_gateway_namespace=GATEWAY_NAMESPACE,
        conflict_retry_attempts=3,
        conflict_retry_initial_wait=0,
        conflict_retry_max_wait=0,
        collaborator_retry_attempts=2,
        collaborator_retry_initial_wait=0,
        collaborator_retry_max_wait=0,
    )


@pytest.fixture
def cluster():
    """Empty in-memory cluster."""
    return FakeCluster()


@pytest.fixture
def make_component():
    """Factory for watched resources (a custom "Component" kind)."""

    def _make(name="comp1", namespace=WORKLOAD_NAMESPACE, annotations=None, labels=None, **extra):
        obj = {
            "apiVersion": "components.platform.opendatahub.io/v1alpha1",
            "kind": "Component",
            "metadata": {
                "name": name,
                "namespace": namespace,
                "annotations": dict(annotations or {}),
                "labels": dict(labels or {}),
            },
        }
        obj.update(extra)
        return obj

    return _make


@pytest.fixture
def make_service():
    """Factory for exported Services of a component."""

    def _make(name="comp1-svc", namespace=WORKLOAD_NAMESPACE, owner="comp1", ports=None):
        return {
            "apiVersion": "v1",
            "kind": "Service",
            "metadata": {
                "name": name,
                "namespace": namespace,
                "labels": {
                    "routing.opendatahub.io/exported": "true",
                    "app": owner,
                },
            },
            "spec": {
                "ports": ports if ports is not None else [
                    {"name": "http", "port": 80, "targetPort": 8080, "protocol": "TCP"},
                ],
            },
        }

    return _make
