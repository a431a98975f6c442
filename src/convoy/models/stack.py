"""Compose stack resource models."""

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import Field, model_validator

from convoy.models.container import (
    ContainerHealth,
    EnvVar,
    KeySelector,
    PortSpec,
    ResourceRequirements,
    RestartPolicy,
)
from convoy.models.meta import ManagedResource, ResourceStatus, SchemaModel


class ComposeReference(SchemaModel):
    """Reference to a document held in a config map or secret."""
    config_map_ref: Optional[KeySelector] = None
    secret_ref: Optional[KeySelector] = None

    @model_validator(mode="after")
    def check_one_source(self):
        """Exactly one of configMapRef and secretRef must be set."""
        if (self.config_map_ref is None) == (self.secret_ref is None):
            raise ValueError("exactly one of configMapRef or secretRef must be set")
        return self


class ServiceOverride(SchemaModel):
    """Patch applied to one service after decomposition."""
    replicas: Optional[int] = Field(None, ge=0)
    resources: Optional[ResourceRequirements] = None
    environment: List[EnvVar] = Field(default_factory=list)
    labels: Dict[str, str] = Field(default_factory=dict)
    restart_policy: Optional[RestartPolicy] = None


class ComposeStackParameters(SchemaModel):
    """Desired stack configuration."""
    compose: Optional[str] = Field(None, description="Inline stack document")
    compose_ref: Optional[ComposeReference] = None
    project_name: Optional[str] = None
    environment: List[EnvVar] = Field(default_factory=list)
    env_files: List[ComposeReference] = Field(default_factory=list)
    service_overrides: Dict[str, ServiceOverride] = Field(default_factory=dict)
    working_dir: Optional[str] = None
    remove_volumes: bool = Field(default=False)

    @model_validator(mode="after")
    def check_document_source(self):
        """Exactly one of compose and composeRef must be set."""
        if (self.compose is None) == (self.compose_ref is None):
            raise ValueError("exactly one of compose or composeRef must be set")
        return self


class ServiceStatus(SchemaModel):
    name: str
    container_id: Optional[str] = Field(None, alias="containerID")
    state: Literal[
        "pending", "creating", "running", "restarting", "exited", "paused", "dead", "unknown"
    ] = "unknown"
    image: Optional[str] = None
    ports: List[PortSpec] = Field(default_factory=list)
    health: Optional[ContainerHealth] = None
    created_at: Optional[str] = None
    started_at: Optional[str] = None


class StackNetworkStatus(SchemaModel):
    name: str
    id: Optional[str] = None
    driver: Optional[str] = None
    created_at: Optional[str] = None


class StackVolumeStatus(SchemaModel):
    name: str
    id: Optional[str] = None
    driver: Optional[str] = None
    mountpoint: Optional[str] = None
    created_at: Optional[str] = None


class StackResources(SchemaModel):
    """Engine objects created on behalf of a stack."""
    containers: List[str] = Field(default_factory=list)
    networks: List[str] = Field(default_factory=list)
    volumes: List[str] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.containers or self.networks or self.volumes)


class ComposeStackObservation(SchemaModel):
    project_name: Optional[str] = None
    services: Dict[str, ServiceStatus] = Field(default_factory=dict)
    networks: List[StackNetworkStatus] = Field(default_factory=list)
    volumes: List[StackVolumeStatus] = Field(default_factory=list)
    parsed_at: Optional[datetime] = None
    compose_version: Optional[str] = None
    resources: StackResources = Field(default_factory=StackResources)


class ComposeStackSpec(SchemaModel):
    for_provider: ComposeStackParameters


class ComposeStackStatus(ResourceStatus):
    at_provider: ComposeStackObservation = Field(default_factory=ComposeStackObservation)


class ComposeStack(ManagedResource):
    """Compose stack record."""
    kind: Literal["ComposeStack"] = "ComposeStack"
    spec: ComposeStackSpec
    status: ComposeStackStatus = Field(default_factory=ComposeStackStatus)

    @property
    def project_name(self) -> str:
        """Project name, defaulting to the record name."""
        return self.spec.for_provider.project_name or self.metadata.name
