"""
Authorization resource templates.

- AuthConfig (Authorino): anonymous access by default, Kubernetes token review
  plus a SubjectAccessReview when the workload asks for auth
- AuthorizationPolicy (Istio): sends requests to the workload through the
  external auth provider, except for health and metrics endpoints
"""

import copy
from enum import Enum
from typing import Any, Dict, List

from ....utils.unstructured import get_annotations
from ..metadata import ANNOTATION_AUTH_ENABLED

AUTHORINO_API_VERSION = "authorino.kuadrant.io/v1beta2"
ISTIO_SECURITY_API_VERSION = "security.istio.io/v1beta1"

# Paths that stay reachable without going through the auth provider
UNPROTECTED_PATHS = [
    "/healthz",
    "/debug/pprof/",
    "/metrics",
    "/wait-for-drain",
]


class AuthType(str, Enum):
    """
    Kind of authentication an AuthConfig enforces.

    Attributes:
        USER_DEFINED: Kubernetes token review and RBAC check
        ANONYMOUS: Everyone is let through
    """

    USER_DEFINED = "userdefined"
    ANONYMOUS = "anonymous"

    def __str__(self) -> str:
        return self.value


class AnnotationAuthTypeDetector:
    """Picks the auth type from an annotation ("true", any case, means user-defined)."""

    def __init__(self, annotation: str = ANNOTATION_AUTH_ENABLED):
        self.annotation = annotation

    def detect(self, target: Dict[str, Any]) -> AuthType:
        value = get_annotations(target).get(self.annotation)
        if value is not None and value.lower() == "true":
            return AuthType.USER_DEFINED
        return AuthType.ANONYMOUS


def _anonymous_spec(namespace: str, audiences: List[str]) -> Dict[str, Any]:
    return {
        "hosts": [],
        "authentication": {
            "anonymous-access": {
                "anonymous": {},
            },
        },
    }


def _user_defined_spec(namespace: str, audiences: List[str]) -> Dict[str, Any]:
    return {
        "hosts": [],
        "authentication": {
            "kubernetes-user": {
                "credentials": {"authorizationHeader": {}},
                "kubernetesTokenReview": {"audiences": list(audiences)},
            },
        },
        "authorization": {
            "kubernetes-rbac": {
                "kubernetesSubjectAccessReview": {
                    "user": {"selector": "auth.identity.user.username"},
                    "resourceAttributes": {
                        "verb": {"value": "get"},
                        "group": {"value": ""},
                        "resource": {"value": "services"},
                        "namespace": {"value": namespace},
                    },
                },
            },
        },
    }


class StaticTemplateLoader:
    """
    Builds AuthConfig manifests from the built-in templates.

    Args:
        audiences: Token review audiences for user-defined auth
    """

    _SPECS = {
        AuthType.ANONYMOUS: _anonymous_spec,
        AuthType.USER_DEFINED: _user_defined_spec,
    }

    def __init__(self, audiences: List[str]):
        self.audiences = list(audiences)

    def load(self, auth_type: AuthType, name: str, namespace: str) -> Dict[str, Any]:
        """
        AuthConfig manifest for the given auth type.

        Args:
            auth_type: Anonymous or user-defined
            name: AuthConfig name
            namespace: AuthConfig namespace (also used in the RBAC check)

        Returns:
            AuthConfig manifest with an empty host list
        """
        build = self._SPECS.get(auth_type, _anonymous_spec)
        return {
            "apiVersion": AUTHORINO_API_VERSION,
            "kind": "AuthConfig",
            "metadata": {"name": name, "namespace": namespace},
            "spec": build(namespace, self.audiences),
        }


def create_auth_config_manifest(
    template: Dict[str, Any],
    hosts: List[str],
    labels: Dict[str, str],
    owner_ref: Dict[str, Any]
) -> Dict[str, Any]:
    """Fill a loaded AuthConfig template with hosts, labels and owner."""
    auth_config = copy.deepcopy(template)
    metadata = auth_config["metadata"]
    metadata["labels"] = dict(labels)
    metadata["ownerReferences"] = [owner_ref]
    auth_config["spec"]["hosts"] = list(hosts)
    return auth_config


def create_authorization_policy_manifest(
    name: str,
    namespace: str,
    ports: List[str],
    workload_selector: Dict[str, str],
    provider_name: str,
    labels: Dict[str, str],
    owner_ref: Dict[str, Any]
) -> Dict[str, Any]:
    """
    AuthorizationPolicy delegating the workload's ports to the auth provider.

    Args:
        name: Policy name (same as the watched resource)
        namespace: Policy namespace
        ports: Ports to protect, one rule each
        workload_selector: Resolved labels of the workload pods
        provider_name: Extension provider registered in the mesh
        labels: Labels for the policy
        owner_ref: ownerReference to the watched resource

    Returns:
        AuthorizationPolicy manifest
    """
    return {
        "apiVersion": ISTIO_SECURITY_API_VERSION,
        "kind": "AuthorizationPolicy",
        "metadata": {
            "name": name,
            "namespace": namespace,
            "labels": dict(labels),
            "ownerReferences": [owner_ref],
        },
        "spec": {
            "selector": {"matchLabels": dict(workload_selector)},
            "action": "CUSTOM",
            "provider": {"name": provider_name},
            "rules": [
                {
                    "to": [
                        {
                            "operation": {
                                "ports": [port],
                                "notPaths": list(UNPROTECTED_PATHS),
                            }
                        }
                    ]
                }
                for port in ports
            ],
        },
    }
