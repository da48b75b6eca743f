"""
Kubernetes store access.

- KubernetesClient: async get/list/create/update/patch/delete over the dynamic client
- apply: declarative create-or-update of a desired manifest
- retry_on_conflict / retry_until_available: bounded tenacity retry loops
- get_cluster_domain: apps domain of the cluster
"""

from .apply import ApplyResult, apply
from .client import KubernetesClient, get_k8s_client
from .cluster import get_cluster_domain
from .gvk import GroupVersionKind
from .retry import retry_on_conflict, retry_until_available

__all__ = [
    # Client
    "KubernetesClient",
    "get_k8s_client",
    "GroupVersionKind",
    # Apply
    "ApplyResult",
    "apply",
    # Retry
    "retry_on_conflict",
    "retry_until_available",
    # Cluster
    "get_cluster_domain",
]
