"""
Base capability controller.

A capability controller watches one resource kind and keeps the resources
implementing its capability converged. Every pass:

1. Reads the watched resource (gone means nothing to do)
2. Picks the lifecycle state: DELETING when metadata.deletionTimestamp is set,
   ACTIVE otherwise
3. Runs converge() or finalize() for that state

Independent steps within a pass run to completion and their failures are
raised together at the end, so the runtime re-queues the pass once.
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from kubernetes.client.rest import ApiException

from ...errors import is_not_found
from ...utils.unstructured import is_marked_for_deletion
from ..kubernetes.gvk import GroupVersionKind

logger = logging.getLogger(__name__)

Step = Callable[[], Awaitable[Any]]


class LifecycleState(str, Enum):
    """
    Lifecycle of a watched resource as seen by a controller.

    Attributes:
        ACTIVE: Derived resources follow the requested modes
        DELETING: Derived resources are being cleaned up before removal
    """

    ACTIVE = "active"
    DELETING = "deleting"

    @classmethod
    def of(cls, target: Dict[str, Any]) -> "LifecycleState":
        return cls.DELETING if is_marked_for_deletion(target) else cls.ACTIVE


class CapabilityController(ABC):
    """
    Abstract base class for capability controllers.

    Subclasses set `capability` and implement converge() and finalize().
    Controllers that keep watched resources behind a finalizer set
    `uses_finalizer` so the runtime delivers their deletions.
    """

    capability: str = "capability"
    uses_finalizer: bool = False

    def __init__(self, k8s, target_gvk: GroupVersionKind, settings):
        self.k8s = k8s
        self.target_gvk = target_gvk
        self.settings = settings
        self.active = True
        self.name = f"{self.capability}-{target_gvk.kind.lower()}"

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def activate(self) -> None:
        self.active = True

    def deactivate(self) -> None:
        self.active = False

    async def reconcile(self, name: str, namespace: Optional[str]) -> None:
        """
        Run one reconcile pass for a watched resource.

        Args:
            name: Watched resource name
            namespace: Watched resource namespace

        Raises:
            Exception: Any failure of the pass; the caller re-queues it
        """
        if not self.active:
            logger.debug(f"[{self.name}] Controller is not active, skipping {namespace}/{name}")
            return

        try:
            target = await self.k8s.get(self.target_gvk, name, namespace)
        except ApiException as e:
            if is_not_found(e):
                logger.debug(f"[{self.name}] {self.target_gvk.kind} {namespace}/{name} no longer exists")
                return
            raise

        state = LifecycleState.of(target)
        logger.debug(f"[{self.name}] Reconciling {namespace}/{name} ({state.value})")

        if state is LifecycleState.DELETING:
            await self.finalize(target)
        else:
            await self.converge(target)

    @abstractmethod
    async def converge(self, target: Dict[str, Any]) -> None:
        """Bring the derived resources in line with an ACTIVE watched resource."""
        pass

    @abstractmethod
    async def finalize(self, target: Dict[str, Any]) -> None:
        """Clean up after a watched resource that is being deleted."""
        pass

    # =========================================================================
    # HELPERS
    # =========================================================================

    async def run_steps(self, steps: Sequence[Step]) -> List[Exception]:
        """
        Run independent steps one after another, collecting their failures.

        Returns:
            Errors raised by the steps, in order
        """
        errors: List[Exception] = []
        for step in steps:
            try:
                await step()
            except Exception as e:
                logger.error(f"[{self.name}] ❌ {type(e).__name__}: {e}")
                errors.append(e)
        return errors
