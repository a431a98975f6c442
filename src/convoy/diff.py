"""Convergence checks between desired parameters and observed engine objects.

Checks run in a fixed order and stop at the first mismatch, so a drifted
result carries exactly one reason.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from convoy.builders.network import DEFAULT_NETWORK_DRIVER
from convoy.builders.volume import DEFAULT_VOLUME_DRIVER
from convoy.models.container import ContainerParameters
from convoy.models.network import NetworkParameters
from convoy.models.volume import VolumeParameters


@dataclass
class DiffResult:
    """Outcome of a convergence check."""
    up_to_date: bool
    reasons: List[str] = field(default_factory=list)

    @classmethod
    def converged(cls) -> "DiffResult":
        return cls(up_to_date=True)

    @classmethod
    def drifted(cls, reason: str) -> "DiffResult":
        return cls(up_to_date=False, reasons=[reason])


def parse_env(entries: Optional[List[str]]) -> Dict[str, str]:
    """Split NAME=value strings on the first '='; a bare name maps to ""."""
    env = {}
    for entry in entries or []:
        name, _, value = entry.partition("=")
        env[name] = value
    return env


def _missing_from(desired: Dict[str, str], observed: Dict[str, str]) -> Optional[str]:
    for key, value in desired.items():
        if key not in observed:
            return f"{key} is missing"
        if observed[key] != value:
            return f"{key} is {observed[key]!r}, want {value!r}"
    return None


def container_up_to_date(params: ContainerParameters, observed: Dict[str, Any]) -> DiffResult:
    """Compare container parameters with an engine inspect payload.

    Ports, mounts and the running state are not compared.
    """
    config = observed.get("Config") or {}
    host_config = observed.get("HostConfig") or {}

    observed_image = config.get("Image")
    if observed_image != params.image:
        return DiffResult.drifted(f"image is {observed_image!r}, want {params.image!r}")

    if params.restart_policy:
        policy = host_config.get("RestartPolicy") or {}
        observed_name = policy.get("Name") or "no"
        if observed_name != params.restart_policy:
            return DiffResult.drifted(
                f"restart policy is {observed_name!r}, want {params.restart_policy!r}"
            )
        if params.restart_policy == "on-failure" and params.maximum_retry_count is not None:
            observed_count = policy.get("MaximumRetryCount", 0)
            if observed_count != params.maximum_retry_count:
                return DiffResult.drifted(
                    f"restart retry count is {observed_count}, want {params.maximum_retry_count}"
                )

    # Sourced values are resolved outside the record, bare names are inherited
    desired_env = {entry.name: entry.value for entry in params.env if entry.value is not None}
    mismatch = _missing_from(desired_env, parse_env(config.get("Env")))
    if mismatch:
        return DiffResult.drifted(f"environment variable {mismatch}")

    mismatch = _missing_from(params.labels, config.get("Labels") or {})
    if mismatch:
        return DiffResult.drifted(f"label {mismatch}")

    if params.privileged is not None:
        observed_privileged = bool(host_config.get("Privileged"))
        if observed_privileged != params.privileged:
            return DiffResult.drifted(
                f"privileged is {observed_privileged}, want {params.privileged}"
            )

    health = (observed.get("State") or {}).get("Health") or {}
    if health.get("Status") == "unhealthy":
        return DiffResult.drifted("container is unhealthy")

    return DiffResult.converged()


def volume_up_to_date(params: VolumeParameters, observed: Dict[str, Any]) -> DiffResult:
    """Compare volume parameters with an engine inspect payload."""
    driver = params.driver or DEFAULT_VOLUME_DRIVER
    if observed.get("Driver") != driver:
        return DiffResult.drifted(f"driver is {observed.get('Driver')!r}, want {driver!r}")

    mismatch = _missing_from(params.labels, observed.get("Labels") or {})
    if mismatch:
        return DiffResult.drifted(f"label {mismatch}")
    return DiffResult.converged()


def network_up_to_date(params: NetworkParameters, observed: Dict[str, Any]) -> DiffResult:
    """Compare network parameters with an engine inspect payload."""
    driver = params.driver or DEFAULT_NETWORK_DRIVER
    if observed.get("Driver") != driver:
        return DiffResult.drifted(f"driver is {observed.get('Driver')!r}, want {driver!r}")

    mismatch = _missing_from(params.labels, observed.get("Labels") or {})
    if mismatch:
        return DiffResult.drifted(f"label {mismatch}")
    return DiffResult.converged()
