"""
Capability configuration models.

These mirror the JSON documents found in the CONFIG_CAPABILITIES directory:

- RoutingTarget: a resource kind to expose plus the selector that finds the
  Services backing each instance
- ProtectedResource: a resource kind to protect plus the selector that finds
  its workload, the paths to read hosts from and the ports to guard
"""

from typing import Dict, List

from pydantic import BaseModel, Field

from .services.kubernetes.gvk import GroupVersionKind


class ResourceReference(BaseModel):
    """Points at the resource kind a capability watches."""
    group: str = Field(default="", description="API group (empty for core)")
    version: str = Field(..., description="API version")
    kind: str = Field(..., description="Resource kind")
    resources: str = Field(default="", description="Plural resource name")

    @property
    def gvk(self) -> GroupVersionKind:
        return GroupVersionKind(group=self.group, version=self.version, kind=self.kind)


class RoutingTarget(BaseModel):
    """A resource kind that can ask to be exposed through the platform gateway."""
    ref: ResourceReference
    service_selector: Dict[str, str] = Field(default_factory=dict, alias="serviceSelector")

    class Config:
        populate_by_name = True


class ProtectedResource(BaseModel):
    """A resource kind whose workload is put behind the platform auth provider."""
    ref: ResourceReference
    workload_selector: Dict[str, str] = Field(default_factory=dict, alias="workloadSelector")
    host_paths: List[str] = Field(default_factory=list, alias="hostPaths")
    ports: List[str] = Field(default_factory=list)

    class Config:
        populate_by_name = True
