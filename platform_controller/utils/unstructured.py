"""
Helpers for resources handled as plain manifest dictionaries.
"""

from typing import Any, Dict, List, Optional

_MISSING = object()


def get_nested(obj: Dict[str, Any], *path: str, default: Any = None) -> Any:
    """
    Read a nested field, e.g. get_nested(obj, "spec", "domain").

    Returns default when any segment along the path is missing or not a mapping.
    """
    current: Any = obj
    for key in path:
        if not isinstance(current, dict) or key not in current:
            return default
        current = current[key]
    return current


def has_nested(obj: Dict[str, Any], *path: str) -> bool:
    return get_nested(obj, *path, default=_MISSING) is not _MISSING


def get_metadata(obj: Dict[str, Any]) -> Dict[str, Any]:
    return obj.get("metadata") or {}


def get_name(obj: Dict[str, Any]) -> str:
    return get_metadata(obj).get("name", "")


def get_namespace(obj: Dict[str, Any]) -> Optional[str]:
    return get_metadata(obj).get("namespace")


def get_uid(obj: Dict[str, Any]) -> str:
    return get_metadata(obj).get("uid", "")


def get_labels(obj: Dict[str, Any]) -> Dict[str, str]:
    return dict(get_metadata(obj).get("labels") or {})


def get_annotations(obj: Dict[str, Any]) -> Dict[str, str]:
    return dict(get_metadata(obj).get("annotations") or {})


def get_finalizers(obj: Dict[str, Any]) -> List[str]:
    return list(get_metadata(obj).get("finalizers") or [])


def is_marked_for_deletion(obj: Dict[str, Any]) -> bool:
    return bool(get_metadata(obj).get("deletionTimestamp"))


def object_key(obj: Dict[str, Any]) -> str:
    """namespace/name (or just name for cluster-scoped objects), for logs."""
    namespace = get_namespace(obj)
    name = get_name(obj)
    return f"{namespace}/{name}" if namespace else name
