"""
Resource kinds produced by each routing mode.

Cleanup deletes by ownership labels across exactly these kinds.
"""

from typing import List

from ...kubernetes.gvk import SERVICE, GroupVersionKind
from ..modes import RouteType

ROUTE = GroupVersionKind("route.openshift.io", "v1", "Route")
GATEWAY = GroupVersionKind("networking.istio.io", "v1beta1", "Gateway")
VIRTUAL_SERVICE = GroupVersionKind("networking.istio.io", "v1beta1", "VirtualService")
DESTINATION_RULE = GroupVersionKind("networking.istio.io", "v1beta1", "DestinationRule")

EXTERNAL_GVKS = [ROUTE, VIRTUAL_SERVICE]
PUBLIC_GVKS = [SERVICE, GATEWAY, VIRTUAL_SERVICE, DESTINATION_RULE]


def routing_resource_gvks(mode: str) -> List[GroupVersionKind]:
    """Kinds created for a mode (empty for unknown modes)."""
    if mode == RouteType.EXTERNAL:
        return list(EXTERNAL_GVKS)
    if mode == RouteType.PUBLIC:
        return list(PUBLIC_GVKS)
    return []
