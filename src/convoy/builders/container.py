"""Translation of container parameters into an engine creation request.

Every function here is pure. Malformed input raises BuildError and no
partial request is returned.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from convoy.clients.engine import ContainerCreateRequest
from convoy.errors import BuildError
from convoy.models.container import (
    ContainerParameters,
    EnvVar,
    HealthCheck,
    NetworkAttachment,
    PortSpec,
    ProfileSpec,
    ResourceRequirements,
    SecurityContext,
    VolumeMount,
)
from convoy.utils.units import parse_byte_size, parse_cpu, parse_duration


logger = logging.getLogger(__name__)

_SECCOMP_OPTIONS = {
    "RuntimeDefault": "seccomp:runtime/default",
    "Unconfined": "seccomp:unconfined",
}

_APPARMOR_OPTIONS = {
    "RuntimeDefault": "apparmor:docker-default",
    "Unconfined": "apparmor:unconfined",
}


def build_container_request(
    params: ContainerParameters,
    resolved_env: Optional[Dict[str, str]] = None,
    name: Optional[str] = None,
) -> ContainerCreateRequest:
    """Build the container, host and networking configuration for params.

    resolved_env holds values for environment entries sourced from config
    maps or secrets, keyed by variable name. Sourced entries missing from it
    are left out.
    """
    config: Dict[str, Any] = {"Image": params.image}
    host_config: Dict[str, Any] = {}

    cmd = list(params.command) + list(params.args)
    if cmd:
        config["Cmd"] = cmd

    env = build_env(params.env, resolved_env or {})
    if env:
        config["Env"] = env

    if params.labels:
        config["Labels"] = dict(params.labels)
    if params.working_dir:
        config["WorkingDir"] = params.working_dir
    if params.user:
        config["User"] = params.user
    if params.hostname:
        config["Hostname"] = params.hostname

    exposed, bindings = build_ports(params.ports)
    if exposed:
        config["ExposedPorts"] = exposed
    if bindings:
        host_config["PortBindings"] = bindings

    binds, mounts = build_mounts(params.volumes)
    if binds:
        host_config["Binds"] = binds
    if mounts:
        host_config["Mounts"] = mounts

    if params.restart_policy:
        host_config["RestartPolicy"] = build_restart_policy(
            params.restart_policy, params.maximum_retry_count
        )

    if params.network_mode:
        host_config["NetworkMode"] = params.network_mode
    if params.dns:
        host_config["Dns"] = list(params.dns)
    if params.dns_search:
        host_config["DnsSearch"] = list(params.dns_search)
    if params.dns_options:
        host_config["DnsOptions"] = list(params.dns_options)
    if params.extra_hosts:
        host_config["ExtraHosts"] = list(params.extra_hosts)
    if params.privileged is not None:
        host_config["Privileged"] = params.privileged
    if params.init is not None:
        host_config["Init"] = params.init
    if params.auto_remove is not None:
        host_config["AutoRemove"] = params.auto_remove

    if params.resources:
        host_config.update(build_resources(params.resources))

    if params.security_context:
        user, security = build_security(params.security_context)
        if user:
            config["User"] = user
        host_config.update(security)

    if params.health_check is not None:
        config["Healthcheck"] = build_healthcheck(params.health_check)

    return ContainerCreateRequest(
        config=config,
        host_config=host_config,
        networking_config=build_networking_config(params.networks),
        name=name if name is not None else params.name,
    )


def build_env(entries: List[EnvVar], resolved: Dict[str, str]) -> List[str]:
    """Render environment entries as NAME=value strings.

    An entry with neither a value nor a source renders as the bare name so
    that the engine inherits the value.
    """
    env = []
    for entry in entries:
        if entry.value is not None:
            env.append(f"{entry.name}={entry.value}")
        elif entry.value_from is not None:
            if entry.name in resolved:
                env.append(f"{entry.name}={resolved[entry.name]}")
        else:
            env.append(entry.name)
    return env


def build_ports(ports: List[PortSpec]) -> Tuple[Dict[str, dict], Dict[str, List[Dict[str, str]]]]:
    """Build the exposed port set and the host bindings."""
    exposed: Dict[str, dict] = {}
    bindings: Dict[str, List[Dict[str, str]]] = {}
    for port in ports:
        key = f"{port.container_port}/{(port.protocol or 'tcp').lower()}"
        exposed[key] = {}
        if port.host_port is not None:
            bindings.setdefault(key, []).append({
                "HostIp": port.host_ip or "",
                "HostPort": str(port.host_port),
            })
    return exposed, bindings


def build_mounts(volumes: List[VolumeMount]) -> Tuple[List[str], List[Dict[str, Any]]]:
    """Build legacy bind strings and typed mounts."""
    binds: List[str] = []
    mounts: List[Dict[str, Any]] = []
    for volume in volumes:
        configured = volume.volume_source.configured()
        if len(configured) != 1:
            raise BuildError(f"unsupported volume source type for volume {volume.name}")

        source = volume.volume_source
        kind = configured[0]
        if kind == "host_path":
            bind = f"{source.host_path.path}:{volume.mount_path}"
            if volume.read_only:
                bind += ":ro"
            binds.append(bind)
        elif kind == "volume":
            mount = {"Type": "volume", "Target": volume.mount_path, "ReadOnly": volume.read_only}
            if source.volume.volume_name:
                mount["Source"] = source.volume.volume_name
            mounts.append(mount)
        elif kind == "bind":
            mount = {
                "Type": "bind",
                "Source": source.bind.source_path,
                "Target": volume.mount_path,
                "ReadOnly": volume.read_only,
            }
            if source.bind.propagation:
                mount["BindOptions"] = {"Propagation": source.bind.propagation}
            mounts.append(mount)
        elif kind == "empty_dir":
            mount = {"Type": "tmpfs", "Target": volume.mount_path, "ReadOnly": volume.read_only}
            if source.empty_dir.size_limit:
                try:
                    size = parse_byte_size(source.empty_dir.size_limit)
                except BuildError as e:
                    raise BuildError(f"invalid size limit for volume {volume.name}: {e}") from e
                mount["TmpfsOptions"] = {"SizeBytes": size}
            mounts.append(mount)
        else:
            # secret and configMap sources are materialized by the control plane
            logger.warning(f"Skipping volume {volume.name}: {kind} sources are not mounted")
    return binds, mounts


def build_networking_config(attachments: List[NetworkAttachment]) -> Optional[Dict[str, Any]]:
    """Build per-network endpoint settings, or None without attachments."""
    if not attachments:
        return None

    endpoints: Dict[str, Dict[str, Any]] = {}
    for attachment in attachments:
        endpoint: Dict[str, Any] = {}
        ipam = {}
        if attachment.ipv4_address:
            ipam["IPv4Address"] = attachment.ipv4_address
        if attachment.ipv6_address:
            ipam["IPv6Address"] = attachment.ipv6_address
        if ipam:
            endpoint["IPAMConfig"] = ipam
        if attachment.aliases:
            endpoint["Aliases"] = list(attachment.aliases)
        if attachment.links:
            endpoint["Links"] = list(attachment.links)
        endpoints[attachment.name] = endpoint
    return {"EndpointsConfig": endpoints}


def build_restart_policy(name: str, maximum_retry_count: Optional[int]) -> Dict[str, Any]:
    policy: Dict[str, Any] = {"Name": name}
    if name == "on-failure" and maximum_retry_count is not None:
        policy["MaximumRetryCount"] = maximum_retry_count
    return policy


def build_resources(resources: ResourceRequirements) -> Dict[str, int]:
    """Map limits and requests onto engine resource fields."""
    host_config: Dict[str, int] = {}
    if "memory" in resources.limits:
        host_config["Memory"] = parse_byte_size(resources.limits["memory"])
    if "cpu" in resources.limits:
        host_config["NanoCpus"] = parse_cpu(resources.limits["cpu"])
    if "memory" in resources.requests:
        host_config["MemoryReservation"] = parse_byte_size(resources.requests["memory"])
    return host_config


def build_security(context: SecurityContext) -> Tuple[Optional[str], Dict[str, Any]]:
    """Return the user string and the host config security fields."""
    user = None
    if context.run_as_user is not None:
        user = str(context.run_as_user)
        if context.run_as_group is not None:
            user += f":{context.run_as_group}"

    host_config: Dict[str, Any] = {}
    if context.read_only_root_filesystem is not None:
        host_config["ReadonlyRootfs"] = context.read_only_root_filesystem
    if context.capabilities:
        if context.capabilities.add:
            host_config["CapAdd"] = list(context.capabilities.add)
        if context.capabilities.drop:
            host_config["CapDrop"] = list(context.capabilities.drop)

    options = []
    selinux = context.se_linux_options
    if selinux:
        parts = [
            f"{field}:{value}"
            for field, value in (
                ("user", selinux.user),
                ("role", selinux.role),
                ("type", selinux.type),
                ("level", selinux.level),
            )
            if value
        ]
        if parts:
            options.append("label:" + ",".join(parts))
    for kind, profile, fixed in (
        ("seccomp", context.seccomp_profile, _SECCOMP_OPTIONS),
        ("apparmor", context.app_armor_profile, _APPARMOR_OPTIONS),
    ):
        option = _profile_option(kind, profile, fixed) if profile else None
        if option:
            options.append(option)
    if options:
        host_config["SecurityOpt"] = options

    return user, host_config


def _profile_option(kind: str, profile: ProfileSpec, fixed: Dict[str, str]) -> Optional[str]:
    if profile.type in fixed:
        return fixed[profile.type]
    # Localhost without a path leaves the engine default in place
    if not profile.localhost_profile:
        return None
    return f"{kind}:{profile.localhost_profile}"


def build_healthcheck(check: HealthCheck) -> Dict[str, Any]:
    """Build the engine health check. Durations are emitted in nanoseconds."""
    if not check.test:
        raise BuildError("health check test command is required")

    healthcheck: Dict[str, Any] = {"Test": list(check.test)}
    for field, key in (("interval", "Interval"), ("timeout", "Timeout"), ("start_period", "StartPeriod")):
        value = getattr(check, field)
        if value:
            try:
                healthcheck[key] = parse_duration(value)
            except BuildError as e:
                raise BuildError(f"invalid health check {field}: {e}") from e
    if check.retries is not None:
        healthcheck["Retries"] = check.retries
    return healthcheck
