"""
Error kinds raised while reconciling capabilities.

Store errors stay as kubernetes ApiException; the helpers at the bottom
classify them (not found, already exists, conflict).
"""

import json
from typing import List, Optional

from kubernetes.client.rest import ApiException


class CapabilityError(Exception):
    """Base class for controller errors."""


class InvalidConfigurationError(CapabilityError):
    """Configuration cannot be used as given. Never retried."""


class CollaboratorNotYetAvailableError(CapabilityError):
    """A resource the pass depends on does not exist (yet)."""


class AggregateReconcileError(CapabilityError):
    """
    Several independent steps of one pass failed.

    Each step runs to completion and its failure is collected here instead of
    stopping the remaining steps.
    """

    def __init__(self, errors: List[Exception]):
        self.errors = list(errors)
        details = "; ".join(f"{type(e).__name__}: {e}" for e in self.errors)
        super().__init__(f"{len(self.errors)} reconcile step(s) failed: {details}")


def raise_if_errors(errors: List[Exception]) -> None:
    """Raise the single error as-is, or all of them aggregated."""
    if not errors:
        return
    if len(errors) == 1:
        raise errors[0]
    raise AggregateReconcileError(errors)


# =============================================================================
# ApiException classification
# =============================================================================

def _status_reason(exc: ApiException) -> Optional[str]:
    """Read the Kubernetes Status reason (e.g. AlreadyExists) from the body."""
    body = getattr(exc, "body", None)
    if not body:
        return None
    try:
        return json.loads(body).get("reason")
    except (TypeError, ValueError, AttributeError):
        return None


def is_not_found(exc: BaseException) -> bool:
    return isinstance(exc, ApiException) and exc.status == 404


def is_already_exists(exc: BaseException) -> bool:
    return (
        isinstance(exc, ApiException)
        and exc.status == 409
        and _status_reason(exc) == "AlreadyExists"
    )


def is_conflict(exc: BaseException) -> bool:
    """Optimistic concurrency failure (stale resourceVersion)."""
    return (
        isinstance(exc, ApiException)
        and exc.status == 409
        and _status_reason(exc) != "AlreadyExists"
    )
