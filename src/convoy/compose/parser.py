"""Decomposition of a stack document into atomic resource definitions."""

import logging
import os
import re
import shlex
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pydantic import ValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from convoy.compose.interpolate import interpolate_tree
from convoy.errors import DependencyCycleError, StackDocumentError
from convoy.models.container import (
    BindVolumeSource,
    Capabilities,
    ContainerParameters,
    EmptyDirVolumeSource,
    EnvVar,
    HealthCheck,
    HostPathVolumeSource,
    NamedVolumeSource,
    NetworkAttachment,
    PortSpec,
    ResourceRequirements,
    SecurityContext,
    VolumeMount,
    VolumeSource,
)
from convoy.models.network import IPAMConfig, IPAMPool, NetworkParameters
from convoy.models.volume import VolumeParameters


logger = logging.getLogger(__name__)

PROJECT_LABEL = "com.docker.compose.project"
SERVICE_LABEL = "com.docker.compose.service"
NETWORK_LABEL = "com.docker.compose.network"
VOLUME_LABEL = "com.docker.compose.volume"

DEFAULT_NETWORK = "default"

_RESTART_POLICIES = ("no", "always", "on-failure", "unless-stopped")
_PROPAGATION_MODES = ("private", "rprivate", "shared", "rshared", "slave", "rslave")
_MEMORY = re.compile(r"^(\d+(?:\.\d+)?)\s*([bkmg]?)b?$", re.IGNORECASE)
_DIGITS = re.compile(r"[0-9]+")
_MEMORY_UNITS = {"": 1, "b": 1, "k": 1 << 10, "m": 1 << 20, "g": 1 << 30}


def container_name(project: str, service: str, index: int = 1) -> str:
    """Engine name of one service container."""
    return f"{project}_{service}_{index}"


def resource_name(project: str, name: str) -> str:
    """Engine name of a stack network or volume."""
    return f"{project}_{name}"


@dataclass
class ServiceDefinition:
    """One service of a stack, translated to container parameters."""
    service: str
    name: str
    parameters: ContainerParameters
    project: str
    replicas: int = 1

    def container_names(self) -> List[str]:
        return [container_name(self.project, self.service, i) for i in range(1, self.replicas + 1)]


@dataclass
class NetworkDefinition:
    key: str
    parameters: NetworkParameters
    external: bool = False

    @property
    def name(self) -> str:
        return self.parameters.name


@dataclass
class VolumeDefinition:
    key: str
    parameters: VolumeParameters
    external: bool = False

    @property
    def name(self) -> str:
        return self.parameters.name


@dataclass
class StackDecomposition:
    """Everything a stack document asks the engine for."""
    project: str
    version: Optional[str] = None
    services: List[ServiceDefinition] = field(default_factory=list)
    networks: List[NetworkDefinition] = field(default_factory=list)
    volumes: List[VolumeDefinition] = field(default_factory=list)
    dependencies: Dict[str, List[str]] = field(default_factory=dict)

    def get_service(self, service: str) -> Optional[ServiceDefinition]:
        for definition in self.services:
            if definition.service == service:
                return definition
        return None

    def creation_order(self) -> List[str]:
        """Service names with every service after the services it depends on."""
        return order_services([definition.service for definition in self.services], self.dependencies)


def order_services(services: List[str], dependencies: Dict[str, List[str]]) -> List[str]:
    """Topologically sort services, keeping document order where unconstrained.

    Raises DependencyCycleError when services depend on each other in a cycle.
    """
    ordered: List[str] = []
    visited = set()
    processing: List[str] = []

    def visit(name: str):
        if name in processing:
            raise DependencyCycleError(processing[processing.index(name):] + [name])
        if name in visited:
            return
        processing.append(name)
        for dependency in dependencies.get(name, []):
            if dependency in services:
                visit(dependency)
        processing.pop()
        visited.add(name)
        ordered.append(name)

    for name in services:
        visit(name)
    return ordered


def load_document(document: str) -> Dict[str, Any]:
    """Parse YAML syntax only."""
    yaml = YAML(typ="safe", pure=True)
    try:
        data = yaml.load(document)
    except YAMLError as e:
        raise StackDocumentError(f"invalid stack document: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise StackDocumentError("stack document must be a mapping")
    return data


def decompose(
    document: str,
    project: str,
    environment: Optional[Dict[str, str]] = None,
    working_dir: Optional[str] = None,
) -> StackDecomposition:
    """Decompose a stack document.

    environment supplies the variables for interpolation; the process
    environment is not consulted.
    """
    data = interpolate_tree(load_document(document), environment or {})

    version = data.get("version")
    result = StackDecomposition(
        project=project,
        version=str(version) if version is not None else None,
    )

    networks = _mapping(data.get("networks"), "networks")
    for key, config in networks.items():
        result.networks.append(_network_definition(project, key, config))

    volumes = _mapping(data.get("volumes"), "volumes")
    for key, config in volumes.items():
        result.volumes.append(_volume_definition(project, key, config))

    network_names = {definition.key: definition.name for definition in result.networks}
    volume_names = {definition.key: definition.name for definition in result.volumes}

    services = _mapping(data.get("services"), "services")
    for service, config in services.items():
        if not isinstance(config, dict):
            raise StackDocumentError(f"service {service} must be a mapping")
        try:
            parameters = _service_parameters(
                project, service, config, network_names, volume_names, working_dir
            )
        except ValidationError as e:
            raise StackDocumentError(f"invalid service {service}: {e}") from e
        result.services.append(ServiceDefinition(
            service=service,
            name=f"{project}-{service}",
            parameters=parameters,
            project=project,
        ))
        result.dependencies[service] = _depends_on(service, config.get("depends_on"))

    for service, upstream in result.dependencies.items():
        for dependency in upstream:
            if dependency not in services:
                raise StackDocumentError(
                    f"service {service} depends on undefined service {dependency}"
                )

    # A service naming the default network without declaring it gets one
    if DEFAULT_NETWORK not in network_names and any(
        attachment.name == resource_name(project, DEFAULT_NETWORK)
        for definition in result.services
        for attachment in definition.parameters.networks
    ):
        result.networks.append(_network_definition(project, DEFAULT_NETWORK, None))

    logger.debug(
        f"Decomposed stack {project}: {len(result.services)} services, "
        f"{len(result.networks)} networks, {len(result.volumes)} volumes"
    )
    return result


def _mapping(value: Any, what: str) -> Dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise StackDocumentError(f"{what} must be a mapping")
    return value


def _pools(network: str, value: Any) -> List[Dict[str, Any]]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise StackDocumentError(f"ipam config of network {network} must be a list")
    return [_mapping(pool, f"ipam pool of network {network}") for pool in value]


def _string_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value]
    return [str(value)]


def _string_map(value: Any, what: str) -> Dict[str, str]:
    """Read a mapping or a list of key=value strings."""
    if value is None:
        return {}
    if isinstance(value, dict):
        return {str(k): "" if v is None else _scalar(v) for k, v in value.items()}
    if isinstance(value, list):
        result = {}
        for item in value:
            key, _, val = str(item).partition("=")
            result[key] = val
        return result
    raise StackDocumentError(f"{what} must be a mapping or a list")


def _scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _is_external(config: Dict[str, Any]) -> bool:
    external = config.get("external")
    return bool(external) if not isinstance(external, dict) else True


def _external_name(config: Dict[str, Any]) -> Optional[str]:
    external = config.get("external")
    if isinstance(external, dict):
        return external.get("name")
    return None


def _network_definition(project: str, key: str, config: Any) -> NetworkDefinition:
    config = _mapping(config, f"network {key}")
    external = _is_external(config)
    name = config.get("name") or _external_name(config) or (key if external else resource_name(project, key))

    ipam = None
    if config.get("ipam"):
        raw = _mapping(config["ipam"], f"ipam of network {key}")
        ipam = IPAMConfig(
            driver=raw.get("driver"),
            config=[
                IPAMPool(
                    subnet=pool.get("subnet"),
                    ip_range=pool.get("ip_range"),
                    gateway=pool.get("gateway"),
                    aux_addresses=pool.get("aux_addresses") or {},
                )
                for pool in _pools(key, raw.get("config"))
            ],
            options=_string_map(raw.get("options"), f"ipam options of network {key}"),
        )

    labels = _string_map(config.get("labels"), f"labels of network {key}")
    labels.update({PROJECT_LABEL: project, NETWORK_LABEL: key})
    return NetworkDefinition(
        key=key,
        external=external,
        parameters=NetworkParameters(
            name=name,
            driver=config.get("driver"),
            internal=bool(config.get("internal", False)),
            attachable=bool(config.get("attachable", False)),
            enable_ipv6=bool(config.get("enable_ipv6", False)),
            ipam=ipam,
            options=_string_map(config.get("driver_opts"), f"driver_opts of network {key}"),
            labels=labels,
        ),
    )


def _volume_definition(project: str, key: str, config: Any) -> VolumeDefinition:
    config = _mapping(config, f"volume {key}")
    external = _is_external(config)
    name = config.get("name") or _external_name(config) or (key if external else resource_name(project, key))

    labels = _string_map(config.get("labels"), f"labels of volume {key}")
    labels.update({PROJECT_LABEL: project, VOLUME_LABEL: key})
    return VolumeDefinition(
        key=key,
        external=external,
        parameters=VolumeParameters(
            name=name,
            driver=config.get("driver"),
            driver_opts=_string_map(config.get("driver_opts"), f"driver_opts of volume {key}"),
            labels=labels,
        ),
    )


def _service_parameters(
    project: str,
    service: str,
    config: Dict[str, Any],
    network_names: Dict[str, str],
    volume_names: Dict[str, str],
    working_dir: Optional[str],
) -> ContainerParameters:
    image = config.get("image")
    if not image:
        raise StackDocumentError(f"service {service} has no image")

    restart_policy, retries = _restart(service, config.get("restart"))

    labels = _string_map(config.get("labels"), f"labels of service {service}")
    labels.update({PROJECT_LABEL: project, SERVICE_LABEL: service})

    security = None
    if config.get("read_only") is not None or config.get("cap_add") or config.get("cap_drop"):
        security = SecurityContext(
            read_only_root_filesystem=config.get("read_only"),
            capabilities=Capabilities(
                add=_string_list(config.get("cap_add")),
                drop=_string_list(config.get("cap_drop")),
            ),
        )

    network_mode = config.get("network_mode")
    networks = [] if network_mode else _networks(project, service, config.get("networks"), network_names)

    return ContainerParameters(
        image=str(image),
        name=container_name(project, service),
        command=_command(config.get("command")),
        env=_environment(config.get("environment")),
        ports=_ports(service, config.get("ports")),
        volumes=_volumes(service, config.get("volumes"), volume_names, working_dir),
        network_mode=network_mode,
        networks=networks,
        restart_policy=restart_policy,
        maximum_retry_count=retries,
        working_dir=config.get("working_dir"),
        user=str(config["user"]) if config.get("user") is not None else None,
        hostname=config.get("hostname"),
        dns=_string_list(config.get("dns")),
        dns_search=_string_list(config.get("dns_search")),
        dns_options=_string_list(config.get("dns_opt")),
        extra_hosts=_extra_hosts(config.get("extra_hosts")),
        labels=labels,
        resources=_resources(service, config),
        security_context=security,
        health_check=_healthcheck(service, config.get("healthcheck")),
        privileged=config.get("privileged"),
        init=config.get("init"),
    )


def _command(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return shlex.split(value)
    return [str(item) for item in value]


def _environment(value: Any) -> List[EnvVar]:
    """Translate environment entries; unset values keep the bare name."""
    if value is None:
        return []
    entries = []
    if isinstance(value, dict):
        for name, val in value.items():
            entries.append(EnvVar(name=str(name), value=None if val is None else _scalar(val)))
    elif isinstance(value, list):
        for item in value:
            name, sep, val = str(item).partition("=")
            entries.append(EnvVar(name=name, value=val if sep else None))
    else:
        raise StackDocumentError("environment must be a mapping or a list")
    return entries


def _restart(service: str, value: Any):
    if value is None:
        return None, None
    policy, _, retries = str(value).partition(":")
    if policy not in _RESTART_POLICIES:
        raise StackDocumentError(f"service {service} has invalid restart policy {value!r}")
    if retries:
        if policy != "on-failure" or not _DIGITS.fullmatch(retries):
            raise StackDocumentError(f"service {service} has invalid restart policy {value!r}")
        return policy, int(retries)
    return policy, None


def _port_range(text: str) -> List[int]:
    start, sep, end = text.partition("-")
    if not _DIGITS.fullmatch(start) or (sep and not _DIGITS.fullmatch(end)):
        raise ValueError(text)
    if not sep:
        return [int(start)]
    first, last = int(start), int(end)
    if last < first:
        raise ValueError(text)
    return list(range(first, last + 1))


def _parse_short_port(entry: str) -> List[PortSpec]:
    spec, _, protocol = entry.partition("/")
    protocol = (protocol or "tcp").upper()

    host_ip = None
    if spec.startswith("["):
        closing = spec.index("]")
        host_ip = spec[1:closing]
        spec = spec[closing + 2:]
        parts = spec.split(":")
        published, target = (parts[0], parts[1]) if len(parts) == 2 else ("", parts[0])
    else:
        parts = spec.split(":")
        if len(parts) == 1:
            published, target = "", parts[0]
        elif len(parts) == 2:
            published, target = parts
        elif len(parts) == 3:
            host_ip, published, target = parts
        else:
            raise ValueError(entry)

    targets = _port_range(target)
    hosts = _port_range(published) if published else []
    if hosts and len(hosts) != len(targets):
        if len(targets) != 1:
            raise ValueError(entry)
        hosts = hosts[:1]

    return [
        PortSpec(
            container_port=container_port,
            host_port=hosts[i] if hosts else None,
            host_ip=host_ip or None,
            protocol=protocol,
        )
        for i, container_port in enumerate(targets)
    ]


def _ports(service: str, value: Any) -> List[PortSpec]:
    ports: List[PortSpec] = []
    for entry in value or []:
        try:
            if isinstance(entry, dict):
                published = entry.get("published")
                ports.append(PortSpec(
                    container_port=int(entry["target"]),
                    host_port=int(published) if published not in (None, "") else None,
                    host_ip=entry.get("host_ip"),
                    protocol=str(entry.get("protocol") or "tcp").upper(),
                ))
            else:
                ports.extend(_parse_short_port(str(entry)))
        except (KeyError, ValueError) as e:
            raise StackDocumentError(f"service {service} has invalid port {entry!r}") from e
    return ports


def _host_path(path: str, working_dir: Optional[str]) -> str:
    if path.startswith("~"):
        return os.path.expanduser(path)
    if path.startswith(".") and working_dir:
        return os.path.normpath(os.path.join(working_dir, path))
    return path


def _named_source(service: str, source: str, volume_names: Dict[str, str]) -> VolumeSource:
    if source not in volume_names:
        raise StackDocumentError(f"service {service} refers to undefined volume {source}")
    return VolumeSource(volume=NamedVolumeSource(volume_name=volume_names[source]))


def _volumes(
    service: str,
    value: Any,
    volume_names: Dict[str, str],
    working_dir: Optional[str],
) -> List[VolumeMount]:
    mounts: List[VolumeMount] = []
    for index, entry in enumerate(value or [], start=1):
        name = f"{service}-volume-{index}"
        if isinstance(entry, dict):
            mounts.append(_long_volume(service, name, entry, volume_names, working_dir))
            continue

        parts = str(entry).split(":")
        if len(parts) == 1:
            mounts.append(VolumeMount(
                name=name, mount_path=parts[0],
                volume_source=VolumeSource(volume=NamedVolumeSource()),
            ))
            continue
        if len(parts) > 3:
            raise StackDocumentError(f"service {service} has invalid volume {entry!r}")

        source, target = parts[0], parts[1]
        options = parts[2].split(",") if len(parts) == 3 else []
        read_only = "ro" in options
        propagation = next((opt for opt in options if opt in _PROPAGATION_MODES), None)

        if source.startswith(("/", ".", "~")):
            path = _host_path(source, working_dir)
            if propagation:
                volume_source = VolumeSource(bind=BindVolumeSource(source_path=path, propagation=propagation))
            else:
                volume_source = VolumeSource(host_path=HostPathVolumeSource(path=path))
        else:
            volume_source = _named_source(service, source, volume_names)
        mounts.append(VolumeMount(
            name=name, mount_path=target, read_only=read_only, volume_source=volume_source,
        ))
    return mounts


def _long_volume(
    service: str,
    name: str,
    entry: Dict[str, Any],
    volume_names: Dict[str, str],
    working_dir: Optional[str],
) -> VolumeMount:
    kind = entry.get("type", "volume")
    target = entry.get("target")
    if not target:
        raise StackDocumentError(f"service {service} has a volume without target")
    source = entry.get("source")
    read_only = bool(entry.get("read_only", False))

    if kind == "volume":
        if source:
            volume_source = _named_source(service, source, volume_names)
        else:
            volume_source = VolumeSource(volume=NamedVolumeSource())
    elif kind == "bind":
        if not source:
            raise StackDocumentError(f"service {service} has a bind mount without source")
        path = _host_path(str(source), working_dir)
        propagation = _mapping(entry.get("bind"), f"bind options of service {service}").get("propagation")
        if propagation:
            volume_source = VolumeSource(bind=BindVolumeSource(source_path=path, propagation=propagation))
        else:
            volume_source = VolumeSource(host_path=HostPathVolumeSource(path=path))
    elif kind == "tmpfs":
        size = _mapping(entry.get("tmpfs"), f"tmpfs options of service {service}").get("size")
        volume_source = VolumeSource(empty_dir=EmptyDirVolumeSource(
            size_limit=normalize_memory(size) if size is not None else None
        ))
    else:
        raise StackDocumentError(f"service {service} has unsupported volume type {kind!r}")

    return VolumeMount(name=name, mount_path=target, read_only=read_only, volume_source=volume_source)


def _networks(
    project: str,
    service: str,
    value: Any,
    network_names: Dict[str, str],
) -> List[NetworkAttachment]:
    if value is None:
        return []
    if isinstance(value, list):
        value = {name: None for name in value}
    if not isinstance(value, dict):
        raise StackDocumentError(f"networks of service {service} must be a mapping or a list")

    attachments = []
    for key, config in value.items():
        if key in network_names:
            name = network_names[key]
        elif key == DEFAULT_NETWORK:
            name = resource_name(project, DEFAULT_NETWORK)
        else:
            raise StackDocumentError(f"service {service} refers to undefined network {key}")
        config = _mapping(config, f"network {key} of service {service}")
        attachments.append(NetworkAttachment(
            name=name,
            ipv4_address=config.get("ipv4_address"),
            ipv6_address=config.get("ipv6_address"),
            aliases=_string_list(config.get("aliases")),
        ))
    return attachments


def _extra_hosts(value: Any) -> List[str]:
    if isinstance(value, dict):
        return [f"{host}:{address}" for host, address in value.items()]
    return _string_list(value)


def normalize_memory(value: Any) -> str:
    """Convert a document memory size such as "512m" or "1.5g" into bytes."""
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    match = _MEMORY.match(str(value).strip())
    if not match:
        raise StackDocumentError(f"invalid memory size {value!r}")
    return str(int(float(match.group(1)) * _MEMORY_UNITS[match.group(2).lower()]))


def _resources(service: str, config: Dict[str, Any]) -> Optional[ResourceRequirements]:
    limits: Dict[str, str] = {}
    requests: Dict[str, str] = {}

    deploy = _mapping(config.get("deploy"), f"deploy of service {service}")
    deploy = _mapping(deploy.get("resources"), f"deploy.resources of service {service}")
    deploy_limits = _mapping(deploy.get("limits"), f"resource limits of service {service}")
    reservations = _mapping(deploy.get("reservations"), f"resource reservations of service {service}")

    memory = deploy_limits.get("memory", config.get("mem_limit"))
    if memory is not None:
        limits["memory"] = normalize_memory(memory)
    cpus = deploy_limits.get("cpus", config.get("cpus"))
    if cpus is not None:
        limits["cpu"] = str(cpus)
    reservation = reservations.get("memory", config.get("mem_reservation"))
    if reservation is not None:
        requests["memory"] = normalize_memory(reservation)

    if not limits and not requests:
        return None
    return ResourceRequirements(limits=limits, requests=requests)


def _healthcheck(service: str, value: Any) -> Optional[HealthCheck]:
    if not value:
        return None
    value = _mapping(value, f"healthcheck of service {service}")
    if value.get("disable"):
        return HealthCheck(test=["NONE"])

    test = value.get("test")
    if isinstance(test, str):
        test = ["CMD-SHELL", test]
    return HealthCheck(
        test=[str(item) for item in test or []],
        interval=value.get("interval"),
        timeout=value.get("timeout"),
        start_period=value.get("start_period"),
        retries=value.get("retries"),
    )


def _depends_on(service: str, value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, dict):
        return [str(name) for name in value]
    if isinstance(value, list):
        return [str(name) for name in value]
    raise StackDocumentError(f"depends_on of service {service} must be a mapping or a list")
