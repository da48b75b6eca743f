"""
Group/version/kind identifiers for the resources the controller touches.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class GroupVersionKind:
    group: str
    version: str
    kind: str

    @property
    def api_version(self) -> str:
        """apiVersion as written in manifests ("v1" for the core group)."""
        if not self.group:
            return self.version
        return f"{self.group}/{self.version}"

    @classmethod
    def from_api_version(cls, api_version: str, kind: str) -> "GroupVersionKind":
        if "/" in api_version:
            group, version = api_version.split("/", 1)
        else:
            group, version = "", api_version
        return cls(group=group, version=version, kind=kind)

    @classmethod
    def of(cls, obj: dict) -> "GroupVersionKind":
        """GVK of a manifest dictionary."""
        return cls.from_api_version(obj.get("apiVersion", ""), obj.get("kind", ""))

    def __str__(self) -> str:
        return f"{self.api_version}, Kind={self.kind}"


SERVICE = GroupVersionKind("", "v1", "Service")
OPENSHIFT_INGRESS_CONFIG = GroupVersionKind("config.openshift.io", "v1", "Ingress")
