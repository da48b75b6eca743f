"""
Ownership Labeler

Derived resources that live in another namespace than their owner (or are
cluster-scoped) cannot use ownerReferences. They are tied to their owner with
labels instead:

- owner-name / owner-kind / owner-uid identify the watched resource
- type records the mode that produced the resource

Those labels are the only record of ownership, so cleanup selects on them
rather than on names. Same-namespace children (authorization) additionally
get a real ownerReference.
"""

import copy
from typing import Any, Dict, Iterable, List

from ... import __version__
from ...utils.unstructured import get_labels, get_name, get_uid
from .metadata import (
    LABEL_APP_COMPONENT,
    LABEL_APP_MANAGED_BY,
    LABEL_APP_NAME,
    LABEL_APP_PART_OF,
    LABEL_APP_VERSION,
    LABEL_OWNER_KIND,
    LABEL_OWNER_NAME,
    LABEL_OWNER_UID,
    LABEL_ROUTING_TYPE,
)

MANAGED_BY = "odh-platform"


def owner_labels(owner: Dict[str, Any]) -> Dict[str, str]:
    """Labels identifying the watched resource that owns a derived resource."""
    return {
        LABEL_OWNER_NAME: get_name(owner),
        LABEL_OWNER_KIND: owner.get("kind", ""),
        LABEL_OWNER_UID: get_uid(owner),
    }


def ownership_labels(owner: Dict[str, Any], mode: str, managed_by: str = MANAGED_BY) -> Dict[str, str]:
    """Full ownership record: owner identity, producing mode and manager."""
    labels = owner_labels(owner)
    labels[LABEL_ROUTING_TYPE] = str(mode)
    labels[LABEL_APP_MANAGED_BY] = managed_by
    return labels


def standard_labels(source: Dict[str, Any], managed_by: str = MANAGED_BY) -> Dict[str, str]:
    """
    Recommended app.kubernetes.io labels, derived from the source's own labels.

    Args:
        source: Watched resource
        managed_by: Value for app.kubernetes.io/managed-by

    Returns:
        Dict of labels
    """
    source_labels = get_labels(source)
    return {
        LABEL_APP_PART_OF: source_labels.get(LABEL_APP_NAME, ""),
        LABEL_APP_COMPONENT: source_labels.get(LABEL_APP_COMPONENT, ""),
        LABEL_APP_VERSION: __version__,
        LABEL_APP_MANAGED_BY: managed_by,
    }


def with_labels(resource: Dict[str, Any], labels: Dict[str, str]) -> Dict[str, Any]:
    """
    Return a copy of resource with labels merged in.

    Existing labels with other keys are kept; applying the same labels twice
    gives the same result.
    """
    labelled = copy.deepcopy(resource)
    metadata = labelled.setdefault("metadata", {})
    merged = dict(metadata.get("labels") or {})
    merged.update(labels)
    metadata["labels"] = merged
    return labelled


def with_ownership(resource: Dict[str, Any], owner: Dict[str, Any], mode: str, managed_by: str = MANAGED_BY) -> Dict[str, Any]:
    return with_labels(resource, ownership_labels(owner, mode, managed_by))


def owner_reference(owner: Dict[str, Any]) -> Dict[str, Any]:
    """Controller ownerReference pointing at the watched resource."""
    return {
        "apiVersion": owner.get("apiVersion", ""),
        "kind": owner.get("kind", ""),
        "name": get_name(owner),
        "uid": get_uid(owner),
        "controller": True,
    }


def ownership_selector(owner: Dict[str, Any], modes: Iterable[str]) -> str:
    """
    Label selector matching everything `owner` produced under `modes`.

    e.g. "platform.opendatahub.io/owner-name=comp1,...,routing.opendatahub.io/type in (public,external)"
    """
    parts: List[str] = [f"{key}={value}" for key, value in owner_labels(owner).items()]
    parts.append(f"{LABEL_ROUTING_TYPE} in ({','.join(str(mode) for mode in modes)})")
    return ",".join(parts)
