"""Container resource models."""

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import Field

from convoy.models.meta import ManagedResource, ResourceStatus, SchemaModel


RestartPolicy = Literal["no", "on-failure", "always", "unless-stopped"]


class KeySelector(SchemaModel):
    """Selects one key of an externally held config map or secret."""
    name: str
    namespace: Optional[str] = None
    key: str
    optional: bool = Field(default=False)


class EnvVarSource(SchemaModel):
    """Source of an environment value held outside the record."""
    secret_key_ref: Optional[KeySelector] = None
    config_map_key_ref: Optional[KeySelector] = None


class EnvVar(SchemaModel):
    """Environment variable entry."""
    name: str
    value: Optional[str] = None
    value_from: Optional[EnvVarSource] = None


class PortSpec(SchemaModel):
    """Container port, optionally published on the host."""
    container_port: int = Field(..., ge=1, le=65535)
    host_port: Optional[int] = Field(None, ge=0, le=65535)
    host_ip: Optional[str] = Field(None, alias="hostIP")
    protocol: Literal["TCP", "UDP", "SCTP"] = Field(default="TCP")


class HostPathVolumeSource(SchemaModel):
    path: str


class NamedVolumeSource(SchemaModel):
    volume_name: str = ""


class BindVolumeSource(SchemaModel):
    source_path: str
    propagation: Optional[
        Literal["private", "rprivate", "shared", "rshared", "slave", "rslave"]
    ] = None


class EmptyDirVolumeSource(SchemaModel):
    size_limit: Optional[str] = None


class SecretVolumeSource(SchemaModel):
    secret_name: str


class ConfigMapVolumeSource(SchemaModel):
    name: str


class VolumeSource(SchemaModel):
    """Exactly one source must be set."""
    host_path: Optional[HostPathVolumeSource] = None
    volume: Optional[NamedVolumeSource] = None
    bind: Optional[BindVolumeSource] = None
    empty_dir: Optional[EmptyDirVolumeSource] = None
    secret: Optional[SecretVolumeSource] = None
    config_map: Optional[ConfigMapVolumeSource] = None

    def configured(self) -> List[str]:
        """Names of the source kinds that are set."""
        return [name for name in type(self).model_fields if getattr(self, name) is not None]


class VolumeMount(SchemaModel):
    """Volume mounted into the container."""
    name: str
    mount_path: str
    read_only: bool = Field(default=False)
    volume_source: VolumeSource = Field(default_factory=VolumeSource)


class NetworkAttachment(SchemaModel):
    """Attachment of the container to a network."""
    name: str
    ipv4_address: Optional[str] = None
    ipv6_address: Optional[str] = None
    aliases: List[str] = Field(default_factory=list)
    links: List[str] = Field(default_factory=list)


class ResourceRequirements(SchemaModel):
    limits: Dict[str, Union[str, int, float]] = Field(default_factory=dict)
    requests: Dict[str, Union[str, int, float]] = Field(default_factory=dict)


class Capabilities(SchemaModel):
    add: List[str] = Field(default_factory=list)
    drop: List[str] = Field(default_factory=list)


class SELinuxOptions(SchemaModel):
    user: Optional[str] = None
    role: Optional[str] = None
    type: Optional[str] = None
    level: Optional[str] = None


class ProfileSpec(SchemaModel):
    """Seccomp or AppArmor profile selection."""
    type: Literal["RuntimeDefault", "Unconfined", "Localhost"]
    localhost_profile: Optional[str] = None


class SecurityContext(SchemaModel):
    run_as_user: Optional[int] = None
    run_as_group: Optional[int] = None
    read_only_root_filesystem: Optional[bool] = None
    capabilities: Optional[Capabilities] = None
    se_linux_options: Optional[SELinuxOptions] = None
    seccomp_profile: Optional[ProfileSpec] = None
    app_armor_profile: Optional[ProfileSpec] = None


class HealthCheck(SchemaModel):
    """Health check definition. Durations use Go syntax, e.g. "30s"."""
    test: List[str] = Field(default_factory=list)
    interval: Optional[str] = None
    timeout: Optional[str] = None
    start_period: Optional[str] = None
    retries: Optional[int] = None


class ContainerParameters(SchemaModel):
    """Desired container configuration."""
    image: str = Field(..., description="Image reference")
    name: Optional[str] = Field(None, description="Engine container name")
    command: List[str] = Field(default_factory=list)
    args: List[str] = Field(default_factory=list)
    env: List[EnvVar] = Field(default_factory=list)
    ports: List[PortSpec] = Field(default_factory=list)
    volumes: List[VolumeMount] = Field(default_factory=list)
    network_mode: Optional[str] = None
    networks: List[NetworkAttachment] = Field(default_factory=list)
    restart_policy: Optional[RestartPolicy] = None
    maximum_retry_count: Optional[int] = Field(None, ge=0)
    working_dir: Optional[str] = None
    user: Optional[str] = None
    hostname: Optional[str] = None
    dns: List[str] = Field(default_factory=list)
    dns_search: List[str] = Field(default_factory=list)
    dns_options: List[str] = Field(default_factory=list)
    extra_hosts: List[str] = Field(default_factory=list)
    labels: Dict[str, str] = Field(default_factory=dict)
    resources: Optional[ResourceRequirements] = None
    security_context: Optional[SecurityContext] = None
    health_check: Optional[HealthCheck] = None
    privileged: Optional[bool] = None
    init: Optional[bool] = None
    auto_remove: Optional[bool] = None
    start_on_create: Optional[bool] = None


class HealthLog(SchemaModel):
    start: Optional[str] = None
    end: Optional[str] = None
    exit_code: Optional[int] = None
    output: Optional[str] = None


class ContainerHealth(SchemaModel):
    status: Optional[str] = None
    failing_streak: int = 0
    log: List[HealthLog] = Field(default_factory=list)


class ContainerState(SchemaModel):
    status: Optional[str] = None
    running: bool = False
    paused: bool = False
    restarting: bool = False
    oom_killed: bool = False
    dead: bool = False
    pid: int = 0
    exit_code: int = 0
    error: Optional[str] = None
    started_at: Optional[str] = None
    finished_at: Optional[str] = None
    health: Optional[ContainerHealth] = None


class ContainerImage(SchemaModel):
    name: Optional[str] = None
    id: Optional[str] = None


class ContainerPort(SchemaModel):
    ip: Optional[str] = None
    private_port: int
    public_port: Optional[int] = None
    type: str = "tcp"


class EndpointInfo(SchemaModel):
    network_id: Optional[str] = Field(None, alias="networkID")
    endpoint_id: Optional[str] = Field(None, alias="endpointID")
    gateway: Optional[str] = None
    ip_address: Optional[str] = None
    ip_prefix_len: Optional[int] = None
    ipv6_gateway: Optional[str] = None
    global_ipv6_address: Optional[str] = Field(None, alias="globalIPv6Address")
    global_ipv6_prefix_len: Optional[int] = Field(None, alias="globalIPv6PrefixLen")
    mac_address: Optional[str] = None


class ContainerObservation(SchemaModel):
    """Observed container state, derived from one inspect call."""
    id: Optional[str] = None
    name: Optional[str] = None
    state: ContainerState = Field(default_factory=ContainerState)
    image: ContainerImage = Field(default_factory=ContainerImage)
    created: Optional[str] = None
    started: Optional[str] = None
    ports: List[ContainerPort] = Field(default_factory=list)
    networks: Dict[str, EndpointInfo] = Field(default_factory=dict)

    @classmethod
    def from_engine(cls, data: Dict[str, Any]) -> "ContainerObservation":
        """Build an observation from an engine inspect payload."""
        raw_state = data.get("State") or {}
        health = None
        if raw_state.get("Health"):
            raw_health = raw_state["Health"]
            health = ContainerHealth(
                status=raw_health.get("Status"),
                failing_streak=raw_health.get("FailingStreak") or 0,
                log=[
                    HealthLog(
                        start=entry.get("Start"),
                        end=entry.get("End"),
                        exit_code=entry.get("ExitCode"),
                        output=entry.get("Output"),
                    )
                    for entry in raw_health.get("Log") or []
                ],
            )
        state = ContainerState(
            status=raw_state.get("Status"),
            running=bool(raw_state.get("Running")),
            paused=bool(raw_state.get("Paused")),
            restarting=bool(raw_state.get("Restarting")),
            oom_killed=bool(raw_state.get("OOMKilled")),
            dead=bool(raw_state.get("Dead")),
            pid=raw_state.get("Pid") or 0,
            exit_code=raw_state.get("ExitCode") or 0,
            error=raw_state.get("Error") or None,
            started_at=raw_state.get("StartedAt"),
            finished_at=raw_state.get("FinishedAt"),
            health=health,
        )

        settings = data.get("NetworkSettings") or {}
        ports = []
        for key, bindings in (settings.get("Ports") or {}).items():
            port, _, proto = key.partition("/")
            if not bindings:
                ports.append(ContainerPort(private_port=int(port), type=proto or "tcp"))
                continue
            for binding in bindings:
                host_port = binding.get("HostPort")
                ports.append(ContainerPort(
                    ip=binding.get("HostIp") or None,
                    private_port=int(port),
                    public_port=int(host_port) if host_port else None,
                    type=proto or "tcp",
                ))

        networks = {
            name: EndpointInfo(
                network_id=endpoint.get("NetworkID"),
                endpoint_id=endpoint.get("EndpointID"),
                gateway=endpoint.get("Gateway"),
                ip_address=endpoint.get("IPAddress"),
                ip_prefix_len=endpoint.get("IPPrefixLen"),
                ipv6_gateway=endpoint.get("IPv6Gateway"),
                global_ipv6_address=endpoint.get("GlobalIPv6Address"),
                global_ipv6_prefix_len=endpoint.get("GlobalIPv6PrefixLen"),
                mac_address=endpoint.get("MacAddress"),
            )
            for name, endpoint in (settings.get("Networks") or {}).items()
        }

        return cls(
            id=data.get("Id"),
            name=(data.get("Name") or "").lstrip("/") or None,
            state=state,
            image=ContainerImage(
                name=(data.get("Config") or {}).get("Image"),
                id=data.get("Image"),
            ),
            created=data.get("Created"),
            started=raw_state.get("StartedAt"),
            ports=ports,
            networks=networks,
        )


class ContainerSpec(SchemaModel):
    for_provider: ContainerParameters


class ContainerStatus(ResourceStatus):
    at_provider: Optional[ContainerObservation] = None


class Container(ManagedResource):
    """Container record."""
    kind: Literal["Container"] = "Container"
    spec: ContainerSpec
    status: ContainerStatus = Field(default_factory=ContainerStatus)
