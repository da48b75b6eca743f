"""
Routing capability controller.

Exposes workloads through the platform gateway according to the
`routing.opendatahub.io/export-mode-<mode>` annotations of a watched resource.
Derived resources live in the gateway namespace, so they are owned through
labels and protected by a finalizer on the watched resource.
"""

import functools
import logging
from typing import Any, Dict, List

from ....errors import raise_if_errors
from ....utils.unstructured import get_annotations, object_key
from ...kubernetes.apply import apply
from ...kubernetes.cluster import get_cluster_domain
from ..base import CapabilityController
from ..facts import FactPropagator, FactSet
from ..finalizers import FinalizerManager, OwnedResourceCleaner
from ..labels import with_ownership
from ..metadata import ANNOTATION_EXTERNAL_ADDRESSES, ANNOTATION_PUBLIC_ADDRESSES, ROUTING_FINALIZER
from ..modes import ModeExtractor, RouteType
from ..selectors import resolve_selectors
from .gvk import routing_resource_gvks
from .locator import ExportedServiceLocator
from .templates import IngressConfig, RoutingContext, StaticTemplateLoader, resolve_addresses, routing_contexts

logger = logging.getLogger(__name__)

ROUTING_MANAGED_BY = "odh-routing-controller"

ADDRESS_ANNOTATIONS = {
    RouteType.PUBLIC: ANNOTATION_PUBLIC_ADDRESSES,
    RouteType.EXTERNAL: ANNOTATION_EXTERNAL_ADDRESSES,
}


class RoutingController(CapabilityController):
    """
    Keeps routing resources in line with a watched resource's export modes.

    Args:
        k8s: KubernetesClient
        routing_target: RoutingTarget from the capability configuration
        settings: Controller settings
    """

    capability = "routing"
    uses_finalizer = True

    def __init__(self, k8s, routing_target, settings):
        super().__init__(k8s, routing_target.ref.gvk, settings)
        self.routing_target = routing_target
        self.ingress = IngressConfig.from_settings(settings)

        self.modes = ModeExtractor()
        self.templates = StaticTemplateLoader()
        self.locator = ExportedServiceLocator(k8s, settings)
        self.finalizers = FinalizerManager(k8s, ROUTING_FINALIZER, settings)
        self.cleaner = OwnedResourceCleaner(k8s, routing_resource_gvks, self.ingress.gateway_namespace)
        self.facts = FactPropagator(k8s, ADDRESS_ANNOTATIONS)

    # =========================================================================
    # ACTIVE
    # =========================================================================

    async def converge(self, target: Dict[str, Any]) -> None:
        target = await self.finalizers.ensure(target)

        modes = self.modes.extract(get_annotations(target))
        facts = self.facts.new_pass()

        errors = await self.run_steps([
            lambda: self.create_routing_resources(target, modes, facts),
            lambda: self.remove_unused_routing_resources(target, modes, facts),
        ])
        errors += await self.run_steps([
            lambda: self.facts.propagate(target, facts),
        ])

        if not errors:
            logger.info(f"[ROUTING] ✅ Reconciled {object_key(target)} (modes: {', '.join(map(str, modes)) or 'none'})")
        raise_if_errors(errors)

    async def create_routing_resources(self, target: Dict[str, Any], modes: List[RouteType], facts: FactSet) -> None:
        """
        Create or update the resources of every requested mode and stage their addresses.

        Modes are exposed independently: a mode that fails does not keep the
        others from converging, and only fully converged modes stage addresses.

        Args:
            target: Watched resource
            modes: Requested modes
            facts: Fact set for this pass
        """
        if not modes:
            logger.debug(f"[ROUTING] No export mode requested for {object_key(target)}")
            return

        selector = resolve_selectors(self.routing_target.service_selector, target)
        services = await self.locator.locate(target, selector)

        errors = await self.run_steps([
            functools.partial(self.expose_mode, target, mode, services, facts)
            for mode in modes
        ])
        raise_if_errors(errors)

    async def expose_mode(
        self,
        target: Dict[str, Any],
        mode: RouteType,
        services: List[Dict[str, Any]],
        facts: FactSet
    ) -> None:
        """Apply one mode's resources for every exported service port, then stage its addresses."""
        domain = ""
        if mode == RouteType.EXTERNAL:
            domain = await get_cluster_domain(self.k8s, self.settings.cluster_domain)

        contexts: List[RoutingContext] = []
        for service in services:
            contexts.extend(routing_contexts(self.ingress, service, domain))

        errors = await self.run_steps([
            functools.partial(self.apply_context, target, mode, ctx)
            for ctx in contexts
        ])
        raise_if_errors(errors)

        addresses: List[str] = []
        for ctx in contexts:
            addresses.extend(resolve_addresses(mode, ctx))
        facts.report(mode, addresses)

    async def apply_context(self, target: Dict[str, Any], mode: RouteType, ctx: RoutingContext) -> None:
        for resource in self.templates.load(mode, ctx):
            owned = with_ownership(resource, target, mode, ROUTING_MANAGED_BY)
            await apply(self.k8s, owned, self.settings)

    async def remove_unused_routing_resources(self, target: Dict[str, Any], modes: List[RouteType], facts: FactSet) -> None:
        """Delete resources of modes no longer requested and stage removal of their addresses."""
        unused = self.modes.unused(modes)
        if not unused:
            return

        await self.cleaner.delete_owned(target, unused)
        for mode in unused:
            facts.retract(mode)

    # =========================================================================
    # DELETING
    # =========================================================================

    async def finalize(self, target: Dict[str, Any]) -> None:
        """
        Delete everything the watched resource owns, then release it.

        The finalizer stays in place if any deletion fails.
        """
        if not self.finalizers.has_finalizer(target):
            return

        deleted = await self.cleaner.delete_owned(target, self.modes.known_modes)
        await self.finalizers.remove(target)
        logger.info(f"[ROUTING] ✅ Cleaned up {deleted} resource(s) for deleted {object_key(target)}")
