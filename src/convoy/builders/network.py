"""Translation of network parameters into an engine creation request."""

from typing import Any, Dict, Optional

from convoy.clients.engine import NetworkCreateRequest
from convoy.models.network import IPAMConfig, NetworkParameters


DEFAULT_NETWORK_DRIVER = "bridge"
DEFAULT_IPAM_DRIVER = "default"


def build_ipam(ipam: Optional[IPAMConfig]) -> Optional[Dict[str, Any]]:
    """Build the engine IPAM block, or None to let the engine decide."""
    if ipam is None:
        return None

    pools = []
    for pool in ipam.config:
        entry: Dict[str, Any] = {}
        if pool.subnet:
            entry["Subnet"] = pool.subnet
        if pool.ip_range:
            entry["IPRange"] = pool.ip_range
        if pool.gateway:
            entry["Gateway"] = pool.gateway
        if pool.aux_addresses:
            entry["AuxiliaryAddresses"] = dict(pool.aux_addresses)
        pools.append(entry)

    return {
        "Driver": ipam.driver or DEFAULT_IPAM_DRIVER,
        "Config": pools,
        "Options": dict(ipam.options),
    }


def build_network_request(params: NetworkParameters, default_name: str) -> NetworkCreateRequest:
    return NetworkCreateRequest(
        name=params.name or default_name,
        driver=params.driver or DEFAULT_NETWORK_DRIVER,
        internal=params.internal,
        attachable=params.attachable,
        ingress=params.ingress,
        enable_ipv6=params.enable_ipv6,
        ipam=build_ipam(params.ipam),
        options=dict(params.options),
        labels=dict(params.labels),
    )
