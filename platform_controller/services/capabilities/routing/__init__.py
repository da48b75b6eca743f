"""Routing capability: exposes workloads through the platform gateway."""

from .controller import RoutingController

__all__ = ["RoutingController"]
