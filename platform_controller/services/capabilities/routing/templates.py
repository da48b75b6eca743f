"""
Routing resource templates.

Builds the manifests that expose one port of an exported Service:

External mode (reachable from outside the cluster):
- Route through the platform ingress router
- VirtualService bound to the ingress gateway, routing to the Service

Public mode (reachable in-cluster through the gateway namespace):
- Service fronting the ingress gateway pods (with a serving certificate)
- Gateway terminating TLS for the public host names
- VirtualService routing those hosts to the Service
- DestinationRule for the public host

Every builder is a pure function of a RoutingContext.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List

from ..modes import RouteType


@dataclass(frozen=True)
class IngressConfig:
    """Platform ingress settings shared by every routing context."""
    selector_key: str
    selector_value: str
    ingress_service: str
    gateway_namespace: str

    @classmethod
    def from_settings(cls, settings) -> "IngressConfig":
        return cls(
            selector_key=settings.route_ingress_selector_key,
            selector_value=settings.route_ingress_selector_value,
            ingress_service=settings.route_gateway_service,
            gateway_namespace=settings.route_gateway_namespace,
        )


@dataclass(frozen=True)
class RoutingContext:
    """Everything the templates need to expose one service port."""
    ingress: IngressConfig
    public_service_name: str  # [service-name]-[port-name]-[service-namespace]
    service_name: str
    service_namespace: str
    service_target_port: int
    domain: str

    @property
    def external_host(self) -> str:
        return f"{self.public_service_name}.{self.domain}"

    @property
    def public_hosts(self) -> List[str]:
        base = f"{self.public_service_name}.{self.ingress.gateway_namespace}"
        return [base, f"{base}.svc", f"{base}.svc.cluster.local"]

    @property
    def service_host(self) -> str:
        return f"{self.service_name}.{self.service_namespace}.svc.cluster.local"


def _port_name(port: Dict[str, Any]) -> str:
    return str(port.get("name") or port.get("port"))


def _target_port(port: Dict[str, Any]) -> int:
    """Numeric target port; named target ports fall back to the service port."""
    target_port = port.get("targetPort")
    if isinstance(target_port, int):
        return target_port
    if isinstance(target_port, str) and target_port.isdigit():
        return int(target_port)
    return int(port["port"])


def routing_contexts(ingress: IngressConfig, service: Dict[str, Any], domain: str) -> List[RoutingContext]:
    """
    One RoutingContext per port of an exported Service.

    Args:
        ingress: Platform ingress settings
        service: Exported Service manifest
        domain: Cluster domain (only used by external mode)

    Returns:
        Contexts in the order the Service lists its ports
    """
    metadata = service.get("metadata", {})
    name, namespace = metadata["name"], metadata["namespace"]
    ports = (service.get("spec") or {}).get("ports") or []

    return [
        RoutingContext(
            ingress=ingress,
            public_service_name=f"{name}-{_port_name(port)}-{namespace}",
            service_name=name,
            service_namespace=namespace,
            service_target_port=_target_port(port),
            domain=domain,
        )
        for port in ports
    ]


# =============================================================================
# External
# =============================================================================

def create_route_manifest(ctx: RoutingContext) -> Dict[str, Any]:
    return {
        "apiVersion": "route.openshift.io/v1",
        "kind": "Route",
        "metadata": {
            "name": f"{ctx.public_service_name}-route",
            "namespace": ctx.ingress.gateway_namespace,
        },
        "spec": {
            "host": ctx.external_host,
            "port": {"targetPort": "https"},
            "tls": {
                "insecureEdgeTerminationPolicy": "Redirect",
                "termination": "passthrough",
            },
            "to": {
                "kind": "Service",
                "name": ctx.ingress.ingress_service,
                "weight": 100,
            },
            "wildcardPolicy": "None",
        },
    }


def create_ingress_virtual_service_manifest(ctx: RoutingContext) -> Dict[str, Any]:
    return {
        "apiVersion": "networking.istio.io/v1beta1",
        "kind": "VirtualService",
        "metadata": {
            "name": f"{ctx.public_service_name}-ingress",
            "namespace": ctx.ingress.gateway_namespace,
        },
        "spec": {
            "gateways": [ctx.ingress.ingress_service],
            "hosts": [ctx.external_host],
            "http": [
                {
                    "route": [
                        {
                            "destination": {
                                "host": ctx.service_host,
                                "port": {"number": ctx.service_target_port},
                            }
                        }
                    ]
                }
            ],
        },
    }


# =============================================================================
# Public
# =============================================================================

def create_public_service_manifest(ctx: RoutingContext) -> Dict[str, Any]:
    return {
        "apiVersion": "v1",
        "kind": "Service",
        "metadata": {
            "name": ctx.public_service_name,
            "namespace": ctx.ingress.gateway_namespace,
            "annotations": {
                "service.beta.openshift.io/serving-cert-secret-name": f"{ctx.public_service_name}-certs",
            },
        },
        "spec": {
            "ports": [
                {
                    "name": "https",
                    "port": 443,
                    "protocol": "TCP",
                    "targetPort": 8443,
                }
            ],
            "selector": {ctx.ingress.selector_key: ctx.ingress.selector_value},
            "type": "ClusterIP",
        },
    }


def create_gateway_manifest(ctx: RoutingContext) -> Dict[str, Any]:
    return {
        "apiVersion": "networking.istio.io/v1beta1",
        "kind": "Gateway",
        "metadata": {
            "name": ctx.public_service_name,
            "namespace": ctx.ingress.gateway_namespace,
        },
        "spec": {
            "selector": {ctx.ingress.selector_key: ctx.ingress.selector_value},
            "servers": [
                {
                    "hosts": ctx.public_hosts,
                    "port": {
                        "name": "https",
                        "number": 8443,
                        "protocol": "HTTPS",
                    },
                    "tls": {
                        "credentialName": f"{ctx.public_service_name}-certs",
                        "mode": "SIMPLE",
                    },
                }
            ],
        },
    }


def create_public_virtual_service_manifest(ctx: RoutingContext) -> Dict[str, Any]:
    return {
        "apiVersion": "networking.istio.io/v1beta1",
        "kind": "VirtualService",
        "metadata": {
            "name": ctx.public_service_name,
            "namespace": ctx.ingress.gateway_namespace,
        },
        "spec": {
            "gateways": ["mesh", ctx.public_service_name],
            "hosts": ctx.public_hosts,
            "http": [
                {
                    "route": [
                        {
                            "destination": {
                                "host": ctx.service_host,
                                "port": {"number": ctx.service_target_port},
                            }
                        }
                    ]
                }
            ],
        },
    }


def create_destination_rule_manifest(ctx: RoutingContext) -> Dict[str, Any]:
    return {
        "apiVersion": "networking.istio.io/v1beta1",
        "kind": "DestinationRule",
        "metadata": {
            "name": ctx.public_service_name,
            "namespace": ctx.ingress.gateway_namespace,
        },
        "spec": {
            "host": ctx.public_hosts[-1],
            "trafficPolicy": {"tls": {"mode": "DISABLE"}},
        },
    }


# =============================================================================
# Loader
# =============================================================================

_TEMPLATES: Dict[str, List[Callable[[RoutingContext], Dict[str, Any]]]] = {
    RouteType.EXTERNAL.value: [
        create_route_manifest,
        create_ingress_virtual_service_manifest,
    ],
    RouteType.PUBLIC.value: [
        create_public_service_manifest,
        create_gateway_manifest,
        create_public_virtual_service_manifest,
        create_destination_rule_manifest,
    ],
}


class StaticTemplateLoader:
    """Produces the desired routing resources for a mode."""

    def load(self, mode: str, ctx: RoutingContext) -> List[Dict[str, Any]]:
        """
        Build the resources for one mode and one service port.

        Args:
            mode: Route type
            ctx: Rendering context for the port

        Returns:
            Ordered manifests (empty for an unknown mode)
        """
        return [build(ctx) for build in _TEMPLATES.get(str(mode), [])]


def resolve_addresses(mode: str, ctx: RoutingContext) -> List[str]:
    """Addresses a mode makes a service port reachable at."""
    if mode == RouteType.EXTERNAL:
        return [ctx.external_host]
    if mode == RouteType.PUBLIC:
        return ctx.public_hosts
    return []
