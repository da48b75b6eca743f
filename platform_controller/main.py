"""
Controller entry point.

Loads the capability configuration, builds one controller per configured
resource kind and hands them to kopf, which watches the kinds and dispatches
reconcile passes (serialized per object, parallel across objects, re-queued
with backoff on failure).
"""

import logging
from typing import List, Optional

import kopf

from .config import get_settings, load_protected_resources, load_routing_targets
from .errors import InvalidConfigurationError
from .services.capabilities import AuthorizationController, CapabilityController, RoutingController
from .services.kubernetes import get_k8s_client
from .utils.unstructured import get_finalizers, is_marked_for_deletion

logger = logging.getLogger(__name__)

OPERATOR_FINALIZER = "platform.opendatahub.io/kopf-finalizer"


def build_controllers(k8s, settings) -> List[CapabilityController]:
    """
    Create a controller for every configured routing target and protected resource.

    Args:
        k8s: KubernetesClient shared by all controllers
        settings: Controller settings

    Returns:
        List of controllers (empty when nothing is configured)
    """
    controllers: List[CapabilityController] = []

    for target in load_routing_targets(settings):
        controllers.append(RoutingController(k8s, target, settings))

    for protected in load_protected_resources(settings):
        controllers.append(AuthorizationController(k8s, protected, settings))

    return controllers


def reconcile_handler(controller: CapabilityController):
    """Wrap a controller's reconcile pass as a kopf handler."""

    async def handler(name, namespace, **_):
        try:
            await controller.reconcile(name, namespace)
        except InvalidConfigurationError as e:
            # Not retried; the next change to the resource starts a new pass
            raise kopf.PermanentError(str(e)) from e

    return handler


def released_by_operator(body, **_) -> bool:
    """True for a deleting object that kopf's own finalizer no longer holds."""
    return is_marked_for_deletion(body) and OPERATOR_FINALIZER not in get_finalizers(body)


def register_controller(controller: CapabilityController, registry: Optional[kopf.OperatorRegistry] = None) -> None:
    """
    Register a controller's handlers for its watched kind.

    resume/create/update run the ACTIVE pass. Controllers that hold watched
    resources behind a finalizer also get:
    - a delete handler; kopf then adds its own finalizer and keeps calling
      the handler (with backoff) until the DELETING pass succeeds
    - an event handler for deleting objects held only by the controller's
      finalizer (e.g. kopf's finalizer was removed by hand), which kopf's
      delete handlers never see
    """
    gvk = controller.target_gvk
    handler = reconcile_handler(controller)
    resource = dict(group=gvk.group, version=gvk.version, kind=gvk.kind, registry=registry)

    kopf.on.resume(id=f"{controller.name}-resume", **resource)(handler)
    kopf.on.create(id=f"{controller.name}-create", **resource)(handler)
    kopf.on.update(id=f"{controller.name}-update", **resource)(handler)

    if controller.uses_finalizer:
        kopf.on.delete(id=f"{controller.name}-delete", **resource)(handler)
        kopf.on.event(id=f"{controller.name}-release", when=released_by_operator, **resource)(handler)

    logger.info(f"Registered controller {controller.name} for {gvk}")


@kopf.on.startup()
def configure(settings: kopf.OperatorSettings, **_):
    settings.posting.level = logging.WARNING
    settings.persistence.finalizer = OPERATOR_FINALIZER
    settings.persistence.progress_storage = kopf.AnnotationsProgressStorage(prefix="platform.opendatahub.io")
    settings.persistence.diffbase_storage = kopf.AnnotationsDiffBaseStorage(prefix="platform.opendatahub.io")


def run() -> None:
    """Main entry point for the controller."""
    settings = get_settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    logger.info("Starting platform capability controller...")

    controllers = build_controllers(get_k8s_client(), settings)
    if not controllers:
        logger.warning(f"No capabilities configured in {settings.config_capabilities}, nothing to watch")

    for controller in controllers:
        register_controller(controller)

    kopf.run(clusterwide=True, standalone=True)


if __name__ == "__main__":
    run()
