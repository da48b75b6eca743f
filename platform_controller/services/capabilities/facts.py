"""
Fact Propagator

Capabilities report facts (such as the addresses a workload is reachable at)
back onto the watched resource as annotations. Each capability owns a fixed
set of annotation keys, one per mode. During a pass it stages values for
active modes and removals for inactive ones in a FactSet; the propagator then
writes all staged changes in a single JSON merge patch that names only those
keys. Annotations written by other capabilities or users are never read back
and rewritten, so concurrent writers do not lose each other's updates.
"""

import logging
from typing import Any, Dict, Iterable, Optional

from ...utils.unstructured import get_annotations, get_name, get_namespace, object_key
from ..kubernetes.gvk import GroupVersionKind
from .metadata import ADDRESS_SEPARATOR

logger = logging.getLogger(__name__)


class FactSet:
    """Annotation changes staged during one reconcile pass."""

    def __init__(self, keys: Dict[str, str]):
        self._keys = dict(keys)
        self._changes: Dict[str, Optional[str]] = {}

    def report(self, mode: str, values: Iterable[str]) -> None:
        """Stage the facts for an active mode; an empty list stages removal."""
        joined = ADDRESS_SEPARATOR.join(values)
        self._changes[self._keys[mode]] = joined or None

    def retract(self, mode: str) -> None:
        """Stage removal of an inactive mode's fact."""
        self._changes[self._keys[mode]] = None

    def changes(self) -> Dict[str, Optional[str]]:
        return dict(self._changes)

    def __bool__(self) -> bool:
        return bool(self._changes)


class FactPropagator:
    """
    Writes one capability's staged facts onto watched resources.

    Args:
        k8s: KubernetesClient
        keys: Mode -> annotation key this capability owns
    """

    def __init__(self, k8s, keys: Dict[str, str]):
        self.k8s = k8s
        self.keys = dict(keys)

    def new_pass(self) -> FactSet:
        return FactSet(self.keys)

    @staticmethod
    def pending_changes(target: Dict[str, Any], facts: FactSet) -> Dict[str, Optional[str]]:
        """Staged changes that actually differ from the target's annotations."""
        current = get_annotations(target)
        patch: Dict[str, Optional[str]] = {}
        for key, value in facts.changes().items():
            if value is None:
                if key in current:
                    patch[key] = None
            elif current.get(key) != value:
                patch[key] = value
        return patch

    async def propagate(self, target: Dict[str, Any], facts: FactSet) -> Dict[str, Any]:
        """
        Apply the staged facts to target.

        Args:
            target: Watched resource as last read
            facts: Changes staged during the pass

        Returns:
            The patched watched resource, or target itself when nothing changed
        """
        patch = self.pending_changes(target, facts)
        if not patch:
            return target

        gvk = GroupVersionKind.of(target)
        updated = await self.k8s.patch(
            gvk,
            get_name(target),
            get_namespace(target),
            {"metadata": {"annotations": patch}},
        )
        logger.info(f"[FACTS] Updated {', '.join(sorted(patch))} on {gvk.kind} {object_key(target)}")
        return updated
