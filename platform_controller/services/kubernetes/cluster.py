"""
Cluster-wide facts the controllers need.
"""

import logging

from kubernetes.client.rest import ApiException

from ...utils.unstructured import get_nested
from .gvk import OPENSHIFT_INGRESS_CONFIG

logger = logging.getLogger(__name__)

CLUSTER_INGRESS_NAME = "cluster"


async def get_cluster_domain(k8s, override: str = "") -> str:
    """
    Resolve the apps domain external routes are published under.

    Args:
        k8s: KubernetesClient
        override: Domain from configuration; skips the lookup when set

    Returns:
        The cluster domain, e.g. "apps.example.com"

    Raises:
        RuntimeError: If the cluster Ingress config cannot be read or has no domain
    """
    if override:
        return override

    try:
        ingress = await k8s.get(OPENSHIFT_INGRESS_CONFIG, CLUSTER_INGRESS_NAME)
    except ApiException as e:
        raise RuntimeError(f"failed fetching cluster's ingress details: {e.reason}") from e

    domain = get_nested(ingress, "spec", "domain")
    if not domain:
        raise RuntimeError("spec.domain not found in cluster's ingress")
    if not isinstance(domain, str):
        raise RuntimeError(f"failed reading spec.domain in cluster's ingress: unexpected {type(domain).__name__}")

    logger.debug(f"[K8S] Cluster domain: {domain}")
    return domain
