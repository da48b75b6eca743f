"""
Exported service lookup.

A watched resource and the Services of its workload are created by different
actors in no particular order, so the first pass may run before the Services
exist. The lookup is retried with backoff while nothing matches; any API
error stops it straight away.
"""

import logging
from typing import Any, Dict, List

from ....errors import CollaboratorNotYetAvailableError
from ....utils.unstructured import get_namespace, object_key
from ...kubernetes.gvk import SERVICE
from ...kubernetes.retry import retry_until_available
from ..selectors import to_label_selector

logger = logging.getLogger(__name__)


class ExportedServiceLocator:
    """Finds the Services a watched resource wants exposed."""

    def __init__(self, k8s, settings):
        self.k8s = k8s
        self.settings = settings

    async def locate(self, target: Dict[str, Any], selector: Dict[str, str]) -> List[Dict[str, Any]]:
        """
        List Services in the target's namespace matching selector.

        Args:
            target: Watched resource
            selector: Resolved label selector

        Returns:
            Matching Services (never empty)

        Raises:
            CollaboratorNotYetAvailableError: Nothing matched within the retry budget
            ApiException: Listing failed
        """
        namespace = get_namespace(target)
        label_selector = to_label_selector(selector)

        async def _list():
            services = await self.k8s.list(SERVICE, namespace=namespace, label_selector=label_selector)
            if not services:
                raise CollaboratorNotYetAvailableError(
                    f"no exported services found for target {object_key(target)} "
                    f"({target.get('apiVersion')}, Kind={target.get('kind')})"
                )
            return services

        services = await retry_until_available(_list, self.settings)
        logger.debug(f"[ROUTING] Found {len(services)} exported service(s) for {object_key(target)}")
        return services
