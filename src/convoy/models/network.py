"""Network resource models."""

from typing import Any, Dict, List, Literal, Optional

from pydantic import Field

from convoy.models.meta import ManagedResource, ResourceStatus, SchemaModel


class IPAMPool(SchemaModel):
    subnet: Optional[str] = None
    ip_range: Optional[str] = None
    gateway: Optional[str] = None
    aux_addresses: Dict[str, str] = Field(default_factory=dict)


class IPAMConfig(SchemaModel):
    driver: Optional[str] = Field(None, description="IPAM driver, defaults to default")
    config: List[IPAMPool] = Field(default_factory=list)
    options: Dict[str, str] = Field(default_factory=dict)


class NetworkParameters(SchemaModel):
    """Desired network configuration. Networks are immutable once created."""
    name: Optional[str] = Field(None, description="Engine network name")
    driver: Optional[str] = Field(None, description="Network driver, defaults to bridge")
    internal: bool = False
    attachable: bool = False
    ingress: bool = False
    enable_ipv6: bool = Field(default=False, alias="enableIPv6")
    ipam: Optional[IPAMConfig] = None
    options: Dict[str, str] = Field(default_factory=dict)
    labels: Dict[str, str] = Field(default_factory=dict)


class NetworkContainer(SchemaModel):
    name: Optional[str] = None
    endpoint_id: Optional[str] = Field(None, alias="endpointID")
    mac_address: Optional[str] = None
    ipv4_address: Optional[str] = None
    ipv6_address: Optional[str] = None


class NetworkObservation(SchemaModel):
    id: Optional[str] = None
    name: Optional[str] = None
    driver: Optional[str] = None
    scope: Optional[str] = None
    internal: bool = False
    attachable: bool = False
    ingress: bool = False
    enable_ipv6: bool = Field(default=False, alias="enableIPv6")
    created_at: Optional[str] = None
    ipam: Optional[IPAMConfig] = None
    options: Dict[str, str] = Field(default_factory=dict)
    labels: Dict[str, str] = Field(default_factory=dict)
    containers: Dict[str, NetworkContainer] = Field(default_factory=dict)

    @classmethod
    def from_engine(cls, data: Dict[str, Any]) -> "NetworkObservation":
        """Build an observation from an engine inspect payload."""
        raw_ipam = data.get("IPAM")
        ipam = None
        if raw_ipam:
            ipam = IPAMConfig(
                driver=raw_ipam.get("Driver"),
                config=[
                    IPAMPool(
                        subnet=pool.get("Subnet"),
                        ip_range=pool.get("IPRange"),
                        gateway=pool.get("Gateway"),
                        aux_addresses=pool.get("AuxiliaryAddresses") or {},
                    )
                    for pool in raw_ipam.get("Config") or []
                ],
                options=raw_ipam.get("Options") or {},
            )
        return cls(
            id=data.get("Id"),
            name=data.get("Name"),
            driver=data.get("Driver"),
            scope=data.get("Scope"),
            internal=bool(data.get("Internal")),
            attachable=bool(data.get("Attachable")),
            ingress=bool(data.get("Ingress")),
            enable_ipv6=bool(data.get("EnableIPv6")),
            created_at=data.get("Created"),
            ipam=ipam,
            options=data.get("Options") or {},
            labels=data.get("Labels") or {},
            containers={
                container_id: NetworkContainer(
                    name=endpoint.get("Name"),
                    endpoint_id=endpoint.get("EndpointID"),
                    mac_address=endpoint.get("MacAddress"),
                    ipv4_address=endpoint.get("IPv4Address"),
                    ipv6_address=endpoint.get("IPv6Address"),
                )
                for container_id, endpoint in (data.get("Containers") or {}).items()
            },
        )


class NetworkSpec(SchemaModel):
    for_provider: NetworkParameters = Field(default_factory=NetworkParameters)


class NetworkStatus(ResourceStatus):
    at_provider: Optional[NetworkObservation] = None


class Network(ManagedResource):
    """Network record."""
    kind: Literal["Network"] = "Network"
    spec: NetworkSpec = Field(default_factory=NetworkSpec)
    status: NetworkStatus = Field(default_factory=NetworkStatus)
