"""
Finalizer and deletion handling for watched resources.

The finalizer keeps a watched resource around until every resource it owns
through labels has been deleted:

- FinalizerManager adds/removes the marker with optimistic-concurrency updates
- OwnedResourceCleaner deletes derived resources selected by ownership labels,
  either for every mode (watched resource going away) or only for the modes
  that are no longer requested
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

from kubernetes.client.rest import ApiException

from ...errors import is_not_found, raise_if_errors
from ...utils.unstructured import get_finalizers, get_name, get_namespace, object_key
from ..kubernetes.gvk import GroupVersionKind
from ..kubernetes.retry import retry_on_conflict
from .labels import ownership_selector

logger = logging.getLogger(__name__)


class FinalizerManager:
    """Adds and removes one finalizer on watched resources."""

    def __init__(self, k8s, finalizer: str, settings):
        self.k8s = k8s
        self.finalizer = finalizer
        self.settings = settings

    def has_finalizer(self, target: Dict[str, Any]) -> bool:
        return self.finalizer in get_finalizers(target)

    async def ensure(self, target: Dict[str, Any]) -> Dict[str, Any]:
        """
        Make sure the finalizer is present.

        Args:
            target: Watched resource as last read

        Returns:
            The watched resource carrying the finalizer (unchanged if it already did)
        """
        if self.has_finalizer(target):
            return target

        gvk = GroupVersionKind.of(target)
        name, namespace = get_name(target), get_namespace(target)

        async def _add():
            latest = await self.k8s.get(gvk, name, namespace)
            if self.has_finalizer(latest):
                return latest
            latest.setdefault("metadata", {})["finalizers"] = get_finalizers(latest) + [self.finalizer]
            return await self.k8s.update(latest)

        updated = await retry_on_conflict(_add, self.settings)
        logger.info(f"[FINALIZER] Added {self.finalizer} to {gvk.kind} {object_key(target)}")
        return updated

    async def remove(self, target: Dict[str, Any]) -> None:
        """Remove the finalizer; a watched resource that is already gone is fine."""
        if not self.has_finalizer(target):
            return

        gvk = GroupVersionKind.of(target)
        name, namespace = get_name(target), get_namespace(target)

        async def _remove():
            try:
                latest = await self.k8s.get(gvk, name, namespace)
                if not self.has_finalizer(latest):
                    return
                latest["metadata"]["finalizers"] = [
                    f for f in get_finalizers(latest) if f != self.finalizer
                ]
                await self.k8s.update(latest)
            except ApiException as e:
                if not is_not_found(e):
                    raise

        await retry_on_conflict(_remove, self.settings)
        logger.info(f"[FINALIZER] Removed {self.finalizer} from {gvk.kind} {object_key(target)}")


class OwnedResourceCleaner:
    """
    Deletes derived resources that are owned through labels.

    Args:
        k8s: KubernetesClient
        kinds_for_mode: Returns the resource kinds a mode produces
        namespace: Namespace the derived resources live in
    """

    def __init__(
        self,
        k8s,
        kinds_for_mode: Callable[[str], List[GroupVersionKind]],
        namespace: Optional[str]
    ):
        self.k8s = k8s
        self.kinds_for_mode = kinds_for_mode
        self.namespace = namespace

    def kinds_for_modes(self, modes: Iterable[str]) -> List[GroupVersionKind]:
        """Union of the kinds produced by modes, without duplicates, in first-seen order."""
        kinds: List[GroupVersionKind] = []
        for mode in modes:
            for gvk in self.kinds_for_mode(mode):
                if gvk not in kinds:
                    kinds.append(gvk)
        return kinds

    async def delete_owned(self, owner: Dict[str, Any], modes: Iterable[str]) -> int:
        """
        Delete everything owner produced under the given modes.

        Every kind is attempted even if an earlier one fails; failures are
        raised together at the end.

        Args:
            owner: Watched resource
            modes: Modes whose resources should go

        Returns:
            Number of resources deleted
        """
        modes = list(modes)
        if not modes:
            return 0

        selector = ownership_selector(owner, modes)
        deleted = 0
        errors: List[Exception] = []

        for gvk in self.kinds_for_modes(modes):
            try:
                count = await self.k8s.delete_all_of(gvk, self.namespace, selector)
            except ApiException as e:
                logger.error(f"[CLEANUP] ❌ Failed deleting {gvk.kind} owned by {object_key(owner)}: {e.reason}")
                errors.append(e)
                continue
            if count:
                logger.info(f"[CLEANUP] Deleted {count} {gvk.kind} owned by {object_key(owner)} (modes: {', '.join(map(str, modes))})")
            deleted += count

        raise_if_errors(errors)
        return deleted
