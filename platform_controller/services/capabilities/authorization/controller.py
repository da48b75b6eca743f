"""
Authorization capability controller.

Puts the workload behind a protected resource under the platform's external
auth provider. The AuthConfig and AuthorizationPolicy live next to the watched
resource and point at it with an ownerReference, so the garbage collector
removes them and no finalizer is needed.
"""

import logging
from typing import Any, Dict

from ....errors import raise_if_errors
from ....utils.unstructured import get_labels, get_name, get_namespace, object_key
from ...kubernetes.apply import apply
from ..base import CapabilityController
from ..labels import owner_reference, standard_labels
from ..selectors import resolve_selectors
from .hosts import annotation_host_extractor, path_expression_extractor, unified_host_extractor
from .templates import (
    AnnotationAuthTypeDetector,
    StaticTemplateLoader,
    create_auth_config_manifest,
    create_authorization_policy_manifest,
)

logger = logging.getLogger(__name__)


class AuthorizationController(CapabilityController):
    """
    Keeps the AuthConfig and AuthorizationPolicy of a protected resource in sync.

    Args:
        k8s: KubernetesClient
        protected_resource: ProtectedResource from the capability configuration
        settings: Controller settings
    """

    capability = "authorization"

    def __init__(self, k8s, protected_resource, settings):
        super().__init__(k8s, protected_resource.ref.gvk, settings)
        self.protected_resource = protected_resource

        self.type_detector = AnnotationAuthTypeDetector()
        self.templates = StaticTemplateLoader(settings.audiences)
        self.host_extractor = unified_host_extractor(
            path_expression_extractor(protected_resource.host_paths),
            annotation_host_extractor(),
        )

    async def converge(self, target: Dict[str, Any]) -> None:
        errors = await self.run_steps([
            lambda: self.reconcile_auth_config(target),
            lambda: self.reconcile_authorization_policy(target),
        ])
        if not errors:
            logger.info(f"[AUTHZ] ✅ Reconciled {object_key(target)}")
        raise_if_errors(errors)

    async def finalize(self, target: Dict[str, Any]) -> None:
        # Owned through ownerReferences; the garbage collector cleans up.
        logger.debug(f"[AUTHZ] {object_key(target)} is being deleted, nothing to do")

    async def reconcile_auth_config(self, target: Dict[str, Any]) -> None:
        """Create or update the Authorino AuthConfig for target."""
        auth_type = self.type_detector.detect(target)
        name, namespace = get_name(target), get_namespace(target)

        label_key, label_value = self.settings.authorino_label_pair
        labels = get_labels(target)
        labels[label_key] = label_value

        desired = create_auth_config_manifest(
            self.templates.load(auth_type, name, namespace),
            hosts=self.host_extractor(target),
            labels=labels,
            owner_ref=owner_reference(target),
        )
        result = await apply(self.k8s, desired, self.settings)
        logger.debug(f"[AUTHZ] AuthConfig {namespace}/{name} ({auth_type}): {result.value}")

    async def reconcile_authorization_policy(self, target: Dict[str, Any]) -> None:
        """Create or update the Istio AuthorizationPolicy for target."""
        selector = resolve_selectors(self.protected_resource.workload_selector, target)

        desired = create_authorization_policy_manifest(
            name=get_name(target),
            namespace=get_namespace(target),
            ports=self.protected_resource.ports,
            workload_selector=selector,
            provider_name=self.settings.auth_provider,
            labels=standard_labels(target, self.settings.field_manager),
            owner_ref=owner_reference(target),
        )
        await apply(self.k8s, desired, self.settings)
