"""Container engine client boundary.

Controllers depend on the narrow operation sets below rather than on a
concrete transport. Every call raises NotFoundError when the engine reports
that the target object does not exist and EngineError for any other failure.
None of the calls retry.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class ContainerCreateRequest:
    """Engine-native container creation request."""
    config: Dict[str, Any]
    host_config: Dict[str, Any]
    networking_config: Optional[Dict[str, Any]] = None
    name: Optional[str] = None

    def to_body(self) -> Dict[str, Any]:
        """Full request body as sent to the engine."""
        body = dict(self.config)
        body["HostConfig"] = self.host_config
        if self.networking_config is not None:
            body["NetworkingConfig"] = self.networking_config
        return body


@dataclass
class VolumeCreateRequest:
    name: str
    driver: str = "local"
    driver_opts: Dict[str, str] = field(default_factory=dict)
    labels: Dict[str, str] = field(default_factory=dict)


@dataclass
class NetworkCreateRequest:
    name: str
    driver: str = "bridge"
    internal: bool = False
    attachable: bool = False
    ingress: bool = False
    enable_ipv6: bool = False
    ipam: Optional[Dict[str, Any]] = None
    options: Dict[str, str] = field(default_factory=dict)
    labels: Dict[str, str] = field(default_factory=dict)


class ContainerOperations(ABC):
    """Container operations."""

    @abstractmethod
    async def container_create(self, request: ContainerCreateRequest) -> str:
        """Create a container and return its ID."""
        pass

    @abstractmethod
    async def container_start(self, container_id: str) -> None:
        """Start a container."""
        pass

    @abstractmethod
    async def container_stop(self, container_id: str, timeout: int) -> None:
        """Stop a container, killing it after timeout seconds."""
        pass

    @abstractmethod
    async def container_restart(self, container_id: str, timeout: int) -> None:
        """Restart a container."""
        pass

    @abstractmethod
    async def container_remove(self, container_id: str, force: bool = False) -> None:
        """Remove a container."""
        pass

    @abstractmethod
    async def container_inspect(self, container_id: str) -> Dict[str, Any]:
        """Inspect a container by ID or name."""
        pass

    @abstractmethod
    async def container_list(
        self, labels: Optional[Dict[str, str]] = None, all: bool = True
    ) -> List[Dict[str, Any]]:
        """List containers carrying all of the given labels."""
        pass


class VolumeOperations(ABC):
    """Volume operations."""

    @abstractmethod
    async def volume_create(self, request: VolumeCreateRequest) -> Dict[str, Any]:
        """Create a volume and return its engine description."""
        pass

    @abstractmethod
    async def volume_inspect(self, name: str) -> Dict[str, Any]:
        """Inspect a volume."""
        pass

    @abstractmethod
    async def volume_remove(self, name: str, force: bool = False) -> None:
        """Remove a volume."""
        pass

    @abstractmethod
    async def volume_list(self, labels: Optional[Dict[str, str]] = None) -> List[Dict[str, Any]]:
        """List volumes carrying all of the given labels."""
        pass


class NetworkOperations(ABC):
    """Network operations."""

    @abstractmethod
    async def network_create(self, request: NetworkCreateRequest) -> str:
        """Create a network and return its ID."""
        pass

    @abstractmethod
    async def network_inspect(self, network_id: str) -> Dict[str, Any]:
        """Inspect a network by ID or name."""
        pass

    @abstractmethod
    async def network_remove(self, network_id: str) -> None:
        """Remove a network."""
        pass

    @abstractmethod
    async def network_list(self, labels: Optional[Dict[str, str]] = None) -> List[Dict[str, Any]]:
        """List networks carrying all of the given labels."""
        pass


class SystemOperations(ABC):
    """Connectivity probes."""

    @abstractmethod
    async def ping(self) -> bool:
        """Check that the engine answers."""
        pass


class EngineClient(ContainerOperations, VolumeOperations, NetworkOperations, SystemOperations):
    """Complete engine client."""

    async def close(self) -> None:
        """Release the underlying transport."""
        pass


def label_filters(labels: Optional[Dict[str, str]]) -> Dict[str, List[str]]:
    """Engine list filter matching every given label."""
    if not labels:
        return {}
    return {"label": [f"{key}={value}" for key, value in labels.items()]}
