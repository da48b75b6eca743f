"""
ODH platform capability controller.

Watches annotated workload resources and keeps the routing and authorization
resources they ask for converged in the cluster.
"""

__version__ = "0.1.0"
