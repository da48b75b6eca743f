"""
Host extraction for protected resources.

AuthConfigs must list every host a workload is reachable at. Hosts come from
two places:
- the address annotations the routing controller writes back
- fields of the watched resource named in the capability config (hostPaths),
  such as status.url

URLs are reduced to their host part and duplicates are dropped.
"""

import logging
from typing import Any, Callable, Dict, Iterable, List
from urllib.parse import urlparse

from ....errors import InvalidConfigurationError
from ....utils.unstructured import get_annotations, get_nested, has_nested, object_key
from ..metadata import ADDRESS_SEPARATOR, ANNOTATION_EXTERNAL_ADDRESSES, ANNOTATION_PUBLIC_ADDRESSES

logger = logging.getLogger(__name__)

HostExtractor = Callable[[Dict[str, Any]], List[str]]

UNKNOWN_HOST = "unknown.host.com"


def annotation_host_extractor(
    separator: str = ADDRESS_SEPARATOR,
    keys: Iterable[str] = (ANNOTATION_EXTERNAL_ADDRESSES, ANNOTATION_PUBLIC_ADDRESSES)
) -> HostExtractor:
    """Hosts listed in annotations, split on separator."""
    keys = list(keys)

    def extract(target: Dict[str, Any]) -> List[str]:
        annotations = get_annotations(target)
        hosts: List[str] = []
        for key in keys:
            if key in annotations:
                hosts.extend(h for h in annotations[key].split(separator) if h)
        return hosts

    return extract


def path_expression_extractor(paths: Iterable[str]) -> HostExtractor:
    """
    Hosts read from dotted field paths, e.g. "status.url".

    A path may point at a string or a list of strings. Paths that are not set
    yet are skipped; anything else at the path is a configuration error.
    """
    paths = list(paths)

    def extract(target: Dict[str, Any]) -> List[str]:
        hosts: List[str] = []
        for path in paths:
            segments = path.split(".")
            if not has_nested(target, *segments):
                logger.debug(f"[AUTHZ] No host at {path} on {object_key(target)} yet")
                continue

            value = get_nested(target, *segments)
            if isinstance(value, str):
                hosts.append(value)
            elif isinstance(value, list) and all(isinstance(v, str) for v in value):
                hosts.extend(value)
            else:
                raise InvalidConfigurationError(
                    f"neither string nor slice of strings found at path {path}"
                )
        return hosts

    return extract


def _host_of(value: str) -> str:
    if value.startswith("http://") or value.startswith("https://"):
        return urlparse(value).netloc
    return value


def unified_host_extractor(*extractors: HostExtractor) -> HostExtractor:
    """
    Combine extractors: URLs become hosts, duplicates are dropped, order is kept.

    Falls back to a placeholder host when nothing is found, since an AuthConfig
    needs at least one.
    """

    def extract(target: Dict[str, Any]) -> List[str]:
        hosts: List[str] = []
        for extractor in extractors:
            for value in extractor(target):
                host = _host_of(value)
                if host and host not in hosts:
                    hosts.append(host)
        return hosts or [UNKNOWN_HOST]

    return extract
