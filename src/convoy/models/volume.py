"""Volume resource models."""

from typing import Any, Dict, Literal, Optional

from pydantic import Field

from convoy.models.meta import ManagedResource, ResourceStatus, SchemaModel


class VolumeParameters(SchemaModel):
    """Desired volume configuration. Volumes are immutable once created."""
    name: Optional[str] = Field(None, description="Engine volume name")
    driver: Optional[str] = Field(None, description="Volume driver, defaults to local")
    driver_opts: Dict[str, str] = Field(default_factory=dict)
    labels: Dict[str, str] = Field(default_factory=dict)


class VolumeUsageData(SchemaModel):
    size: int = -1
    ref_count: int = -1


class VolumeObservation(SchemaModel):
    name: Optional[str] = None
    driver: Optional[str] = None
    mountpoint: Optional[str] = None
    created_at: Optional[str] = None
    scope: Optional[str] = None
    options: Dict[str, str] = Field(default_factory=dict)
    labels: Dict[str, str] = Field(default_factory=dict)
    usage_data: Optional[VolumeUsageData] = None

    @classmethod
    def from_engine(cls, data: Dict[str, Any]) -> "VolumeObservation":
        """Build an observation from an engine inspect payload."""
        usage = data.get("UsageData")
        return cls(
            name=data.get("Name"),
            driver=data.get("Driver"),
            mountpoint=data.get("Mountpoint"),
            created_at=data.get("CreatedAt"),
            scope=data.get("Scope"),
            options=data.get("Options") or {},
            labels=data.get("Labels") or {},
            usage_data=VolumeUsageData(
                size=usage.get("Size", -1),
                ref_count=usage.get("RefCount", -1),
            ) if usage else None,
        )


class VolumeSpec(SchemaModel):
    for_provider: VolumeParameters = Field(default_factory=VolumeParameters)


class VolumeStatus(ResourceStatus):
    at_provider: Optional[VolumeObservation] = None


class Volume(ManagedResource):
    """Volume record."""
    kind: Literal["Volume"] = "Volume"
    spec: VolumeSpec = Field(default_factory=VolumeSpec)
    status: VolumeStatus = Field(default_factory=VolumeStatus)
