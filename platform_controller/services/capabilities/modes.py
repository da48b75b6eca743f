"""
Capability modes requested through annotations.

A watched resource asks for a mode with an annotation `<prefix><mode>: "true"`.
"""

import logging
from enum import Enum
from typing import Dict, Iterable, List, Sequence

from .metadata import ROUTING_EXPORT_MODE_PREFIX

logger = logging.getLogger(__name__)


class RouteType(str, Enum):
    """
    Ways a workload can be exposed.

    Attributes:
        PUBLIC: Reachable inside the cluster through the platform gateway
        EXTERNAL: Reachable from outside the cluster through a Route
    """

    PUBLIC = "public"
    EXTERNAL = "external"

    def __str__(self) -> str:
        return self.value


class ModeExtractor:
    """Reads requested modes from a resource's annotations."""

    def __init__(self, prefix: str = ROUTING_EXPORT_MODE_PREFIX, known_modes: Sequence[str] = tuple(RouteType)):
        self.prefix = prefix
        self.known_modes = list(known_modes)

    def extract(self, annotations: Dict[str, str]) -> List[str]:
        """
        Return the valid modes requested in `annotations`.

        Keys without the prefix are ignored, values other than "true" mean
        "not requested" and unknown mode names are logged and skipped. The
        result follows the order of known_modes and has no duplicates.

        Args:
            annotations: Annotations of the watched resource

        Returns:
            Requested modes (members of known_modes)
        """
        requested = set()
        for key, value in (annotations or {}).items():
            if not key.startswith(self.prefix):
                continue

            suffix = key[len(self.prefix):]
            mode = next((m for m in self.known_modes if m == suffix), None)
            if mode is None:
                logger.warning(f"[MODES] Ignoring invalid mode '{suffix}' in annotation {key}")
                continue

            if value == "true":
                requested.add(mode)

        return [mode for mode in self.known_modes if mode in requested]

    def unused(self, active: Iterable[str]) -> List[str]:
        """Known modes that are not in `active`."""
        active = set(active)
        return [mode for mode in self.known_modes if mode not in active]
