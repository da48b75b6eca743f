"""
Declarative create-or-update for derived resources.

apply() converges one resource to its desired manifest:
1. Fetch the current object; create it when it does not exist
2. A create that loses a race (AlreadyExists) falls through to step 3
3. Compare the fields the controller owns (spec, labels, annotations and
   owner references it sets); when they differ, re-fetch, overlay the desired
   fields and update with the fetched resourceVersion, retrying on conflict

Fields the API server or other actors add (defaults, extra labels) do not
count as drift, so an unchanged resource costs a single GET per pass.
"""

import copy
import logging
from enum import Enum
from typing import Any, Dict, List

from kubernetes.client.rest import ApiException

from ...errors import is_already_exists, is_not_found
from ...utils.unstructured import get_metadata, object_key
from .gvk import GroupVersionKind
from .retry import retry_on_conflict

logger = logging.getLogger(__name__)


class ApplyResult(str, Enum):
    """What apply() had to do to converge a resource."""
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


def contains(current: Any, desired: Any) -> bool:
    """
    Check that everything in `desired` is present with the same value in `current`.

    Mappings may carry extra keys in `current`; lists must match element-wise.
    """
    if isinstance(desired, dict):
        if not isinstance(current, dict):
            return False
        return all(key in current and contains(current[key], value) for key, value in desired.items())
    if isinstance(desired, list):
        if not isinstance(current, list) or len(current) != len(desired):
            return False
        return all(contains(c, d) for c, d in zip(current, desired))
    return current == desired


def _owner_uids(metadata: Dict[str, Any]) -> List[str]:
    return [ref.get("uid") for ref in metadata.get("ownerReferences") or []]


def is_in_sync(current: Dict[str, Any], desired: Dict[str, Any]) -> bool:
    """True when the current object already carries everything the desired one sets."""
    if "spec" in desired and not contains(current.get("spec"), desired["spec"]):
        return False

    current_meta = get_metadata(current)
    desired_meta = get_metadata(desired)

    for field in ("labels", "annotations"):
        if not contains(current_meta.get(field) or {}, desired_meta.get(field) or {}):
            return False

    current_owners = _owner_uids(current_meta)
    return all(uid in current_owners for uid in _owner_uids(desired_meta))


def overlay_desired(current: Dict[str, Any], desired: Dict[str, Any]) -> Dict[str, Any]:
    """
    Return a copy of `current` with the desired managed fields applied.

    spec is replaced as a whole; labels and annotations are merged so keys
    written by others survive; missing owner references are appended.
    resourceVersion is kept for the optimistic-concurrency check.
    """
    merged = copy.deepcopy(current)
    metadata = merged.setdefault("metadata", {})
    desired_meta = get_metadata(desired)

    if "spec" in desired:
        merged["spec"] = copy.deepcopy(desired["spec"])

    for field in ("labels", "annotations"):
        if desired_meta.get(field):
            values = dict(metadata.get(field) or {})
            values.update(desired_meta[field])
            metadata[field] = values

    owner_refs = list(metadata.get("ownerReferences") or [])
    known = {ref.get("uid") for ref in owner_refs}
    for ref in desired_meta.get("ownerReferences") or []:
        if ref.get("uid") not in known:
            owner_refs.append(copy.deepcopy(ref))
    if owner_refs:
        metadata["ownerReferences"] = owner_refs

    return merged


async def apply(k8s, desired: Dict[str, Any], settings) -> ApplyResult:
    """
    Create or update a resource so it matches the desired manifest.

    Args:
        k8s: KubernetesClient (or any object with the same async methods)
        desired: Desired manifest, ownership labels already applied
        settings: Settings carrying the conflict retry budget

    Returns:
        ApplyResult describing the write that was made (if any)

    Raises:
        ApiException: Any store error other than NotFound/AlreadyExists,
            or Conflict once the retry budget is spent
    """
    gvk = GroupVersionKind.of(desired)
    metadata = get_metadata(desired)
    name, namespace = metadata["name"], metadata.get("namespace")
    key = object_key(desired)

    try:
        current = await k8s.get(gvk, name, namespace)
    except ApiException as e:
        if not is_not_found(e):
            raise
        try:
            await k8s.create(desired)
            logger.info(f"[APPLY] ✅ Created {gvk.kind} {key}")
            return ApplyResult.CREATED
        except ApiException as create_error:
            if not is_already_exists(create_error):
                raise
            logger.debug(f"[APPLY] {gvk.kind} {key} was created concurrently, reconciling instead")
            current = await k8s.get(gvk, name, namespace)

    if is_in_sync(current, desired):
        logger.debug(f"[APPLY] {gvk.kind} {key} is up to date")
        return ApplyResult.UNCHANGED

    async def _update():
        latest = await k8s.get(gvk, name, namespace)
        if is_in_sync(latest, desired):
            return
        await k8s.update(overlay_desired(latest, desired))

    await retry_on_conflict(_update, settings)
    logger.info(f"[APPLY] Updated {gvk.kind} {key}")
    return ApplyResult.UPDATED
