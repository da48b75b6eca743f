"""
Selector Resolver

Capability configuration describes how to find a workload's resources with
label selectors whose keys and values may reference fields of the watched
resource, e.g.:

    {"routing.opendatahub.io/exported": "true",
     "serving.kserve.io/inferenceservice": "{{.metadata.name}}"}

Only field references (`{{ .path.to.field }}`) are supported. They are
evaluated against a read-only copy of the watched resource; a reference to a
missing field is a configuration error, never an empty string.
"""

import copy
import re
from types import MappingProxyType
from typing import Any, Dict, Mapping

from ...errors import InvalidConfigurationError

TEMPLATE_MARKER = "{{"

_EXPRESSION = re.compile(r"\{\{(.*?)\}\}")
_FIELD_PATH = re.compile(r"^\.[A-Za-z0-9_\-]+(\.[A-Za-z0-9_\-]+)*$")


def _freeze(value: Any) -> Any:
    if isinstance(value, dict):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, list):
        return tuple(_freeze(v) for v in value)
    return value


def read_only_view(source: Dict[str, Any]) -> Mapping[str, Any]:
    """Deep, immutable projection of a manifest dictionary."""
    return _freeze(copy.deepcopy(source))


def _lookup(view: Mapping[str, Any], expression: str) -> str:
    expression = expression.strip()
    if not _FIELD_PATH.match(expression):
        raise InvalidConfigurationError(f"unsupported template expression '{expression}'")

    current: Any = view
    for segment in expression[1:].split("."):
        if not isinstance(current, Mapping) or segment not in current:
            raise InvalidConfigurationError(f"map has no entry for key \"{segment}\" in '{expression}'")
        current = current[segment]

    if isinstance(current, bool):
        return "true" if current else "false"
    if isinstance(current, (str, int, float)):
        return str(current)
    raise InvalidConfigurationError(f"'{expression}' does not point at a scalar value")


def render(template: str, view: Mapping[str, Any]) -> str:
    """
    Substitute every `{{ .field.path }}` in template.

    Raises:
        InvalidConfigurationError: If an expression is unsupported or points nowhere
    """
    if template.count("{{") != len(_EXPRESSION.findall(template)):
        raise InvalidConfigurationError(f"could not parse template '{template}': unclosed action")

    try:
        return _EXPRESSION.sub(lambda match: _lookup(view, match.group(1)), template)
    except InvalidConfigurationError as e:
        raise InvalidConfigurationError(f"could not execute template: {e}") from e


def resolve_selectors(expressions: Dict[str, str], source: Dict[str, Any]) -> Dict[str, str]:
    """
    Resolve templated selector keys and values against the watched resource.

    Args:
        expressions: Selector key -> value, either of which may be templated
        source: The watched resource as a manifest dictionary

    Returns:
        Concrete label selector map

    Raises:
        InvalidConfigurationError: If a key or value cannot be resolved
    """
    view = read_only_view(source)
    resolved = {}

    for key, value in expressions.items():
        resolved_key = key
        if TEMPLATE_MARKER in key:
            try:
                resolved_key = render(key, view)
            except InvalidConfigurationError as e:
                raise InvalidConfigurationError(f"could not resolve key {key}: {e}") from e

        resolved_value = value
        if TEMPLATE_MARKER in value:
            try:
                resolved_value = render(value, view)
            except InvalidConfigurationError as e:
                raise InvalidConfigurationError(f"could not resolve value {value}: {e}") from e

        resolved[resolved_key] = resolved_value

    return resolved


def to_label_selector(labels: Dict[str, str]) -> str:
    """Format a label map as a selector string ("a=b,c=d")."""
    return ",".join(f"{key}={value}" for key, value in labels.items())
