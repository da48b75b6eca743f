"""
Kubernetes Client for Capability Resources

This module provides the store interface the capability controllers work
against. Every resource is handled as a plain manifest dictionary through the
dynamic client, so arbitrary kinds (Routes, Istio and Authorino resources,
watched custom resources) go through the same code path.

Errors are raised as kubernetes ApiException; use the helpers in
platform_controller.errors to classify them.
"""

import asyncio
import json
import logging
from typing import Any, Callable, Dict, List, Optional

from kubernetes import client, config, dynamic
from kubernetes.client.rest import ApiException
from kubernetes.dynamic.exceptions import DynamicApiError, ResourceNotFoundError

from ...errors import is_not_found
from .gvk import GroupVersionKind

logger = logging.getLogger(__name__)

MERGE_PATCH = "application/merge-patch+json"


def _as_api_exception(error: DynamicApiError) -> ApiException:
    """Re-raise dynamic client errors as the ApiException the rest of the code expects."""
    api_error = ApiException(status=error.status, reason=error.reason)
    api_error.body = error.body
    api_error.headers = getattr(error, "headers", None)
    return api_error


def _kind_not_served(error: ResourceNotFoundError) -> ApiException:
    """A kind missing from API discovery (e.g. its CRD is not installed) reads as 404."""
    api_error = ApiException(status=404, reason="NotFound")
    api_error.body = json.dumps({"kind": "Status", "reason": "NotFound", "code": 404, "message": str(error)})
    return api_error


class KubernetesClient:
    """
    Async store operations over the Kubernetes dynamic client.

    Blocking API calls run in a worker thread so a reconcile pass only
    suspends while it waits on the API server.
    """

    def __init__(self, in_cluster: bool = True):
        """Initialize Kubernetes client with in-cluster or kubeconfig."""
        try:
            if not in_cluster:
                raise config.ConfigException("in-cluster configuration disabled")
            # Try in-cluster config first (for production)
            config.load_incluster_config()
            logger.info("Loaded in-cluster Kubernetes configuration")
        except config.ConfigException:
            try:
                # Fall back to kubeconfig (for development)
                config.load_kube_config()
                logger.info("Loaded kubeconfig for development")
            except config.ConfigException as e:
                logger.error(f"Failed to load Kubernetes config: {e}")
                raise RuntimeError("Cannot load Kubernetes configuration") from e

        self.api_client = client.ApiClient()
        self.dynamic = dynamic.DynamicClient(self.api_client)

        logger.info("[K8S] Dynamic client initialized")

    def _resource(self, gvk: GroupVersionKind):
        return self.dynamic.resources.get(api_version=gvk.api_version, kind=gvk.kind)

    async def _call(self, operation: Callable[[], Any]) -> Any:
        try:
            return await asyncio.to_thread(operation)
        except DynamicApiError as e:
            raise _as_api_exception(e) from e
        except ResourceNotFoundError as e:
            raise _kind_not_served(e) from e

    # =========================================================================
    # READ
    # =========================================================================

    async def get(
        self,
        gvk: GroupVersionKind,
        name: str,
        namespace: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Fetch a single resource.

        Args:
            gvk: Kind of the resource
            name: Resource name
            namespace: Namespace (None for cluster-scoped kinds)

        Returns:
            The resource as a manifest dictionary

        Raises:
            ApiException: 404 if the resource does not exist
        """
        result = await self._call(
            lambda: self._resource(gvk).get(name=name, namespace=namespace)
        )
        return result.to_dict()

    async def list(
        self,
        gvk: GroupVersionKind,
        namespace: Optional[str] = None,
        label_selector: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """
        List resources of a kind, optionally filtered by a label selector.

        Args:
            gvk: Kind to list
            namespace: Namespace to list in (None for all namespaces)
            label_selector: Label selector string (e.g. "a=b,c in (d)")

        Returns:
            List of manifest dictionaries
        """
        kwargs = {"namespace": namespace}
        if label_selector:
            kwargs["label_selector"] = label_selector

        result = await self._call(lambda: self._resource(gvk).get(**kwargs))
        return result.to_dict().get("items") or []

    # =========================================================================
    # WRITE
    # =========================================================================

    async def create(self, body: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a resource from its manifest.

        Raises:
            ApiException: 409 (AlreadyExists) if a resource with the same name exists
        """
        gvk = GroupVersionKind.of(body)
        namespace = body.get("metadata", {}).get("namespace")
        result = await self._call(
            lambda: self._resource(gvk).create(body=body, namespace=namespace)
        )
        logger.debug(f"[K8S] Created {gvk.kind} {namespace}/{body['metadata']['name']}")
        return result.to_dict()

    async def update(self, body: Dict[str, Any]) -> Dict[str, Any]:
        """
        Replace a resource. The manifest must carry the resourceVersion it was read at.

        Raises:
            ApiException: 409 (Conflict) if the resource changed since it was read
        """
        gvk = GroupVersionKind.of(body)
        namespace = body.get("metadata", {}).get("namespace")
        result = await self._call(
            lambda: self._resource(gvk).replace(body=body, namespace=namespace)
        )
        logger.debug(f"[K8S] Updated {gvk.kind} {namespace}/{body['metadata']['name']}")
        return result.to_dict()

    async def patch(
        self,
        gvk: GroupVersionKind,
        name: str,
        namespace: Optional[str],
        patch: Dict[str, Any]
    ) -> Dict[str, Any]:
        """
        Apply a JSON merge patch to a resource.

        Only the keys present in the patch are touched; a None value removes the key.
        """
        result = await self._call(
            lambda: self._resource(gvk).patch(
                body=patch,
                name=name,
                namespace=namespace,
                content_type=MERGE_PATCH,
            )
        )
        return result.to_dict()

    # =========================================================================
    # DELETE
    # =========================================================================

    async def delete(
        self,
        gvk: GroupVersionKind,
        name: str,
        namespace: Optional[str] = None
    ) -> None:
        """Delete a single resource. Raises ApiException 404 if it is already gone."""
        await self._call(
            lambda: self._resource(gvk).delete(name=name, namespace=namespace)
        )
        logger.debug(f"[K8S] Deleted {gvk.kind} {namespace}/{name}")

    async def delete_all_of(
        self,
        gvk: GroupVersionKind,
        namespace: Optional[str],
        label_selector: str
    ) -> int:
        """
        Delete every resource of a kind matching a label selector.

        Resources that disappear between listing and deleting are skipped, and a
        kind the cluster does not serve has nothing to delete.
        Not every kind supports deletecollection, so matches are deleted one by one.

        Returns:
            Number of resources deleted
        """
        try:
            items = await self.list(gvk, namespace=namespace, label_selector=label_selector)
        except ApiException as e:
            if not is_not_found(e):
                raise
            logger.debug(f"[K8S] {gvk} is not served, nothing to delete")
            return 0

        deleted = 0
        for item in items:
            metadata = item.get("metadata", {})
            try:
                await self.delete(gvk, metadata["name"], metadata.get("namespace"))
                deleted += 1
            except ApiException as e:
                if not is_not_found(e):
                    raise
        return deleted


# Global instance
_k8s_client_instance: Optional[KubernetesClient] = None


def get_k8s_client() -> KubernetesClient:
    """Get or create the global Kubernetes client instance."""
    global _k8s_client_instance
    if _k8s_client_instance is None:
        from ...config import get_settings
        _k8s_client_instance = KubernetesClient(in_cluster=get_settings().k8s_in_cluster)
    return _k8s_client_instance
