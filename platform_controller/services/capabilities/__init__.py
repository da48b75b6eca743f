"""
Capability controllers.

Each controller watches one configured resource kind and keeps the resources
implementing its capability converged:

- RoutingController: exposes workloads (public / external export modes)
- AuthorizationController: puts workloads behind the platform auth provider
"""

from .authorization import AuthorizationController
from .base import CapabilityController, LifecycleState
from .modes import ModeExtractor, RouteType
from .routing import RoutingController

__all__ = [
    "CapabilityController",
    "LifecycleState",
    "ModeExtractor",
    "RouteType",
    "RoutingController",
    "AuthorizationController",
]
