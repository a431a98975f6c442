"""Container engine clients."""

from convoy.clients.engine import (
    ContainerCreateRequest,
    ContainerOperations,
    EngineClient,
    NetworkCreateRequest,
    NetworkOperations,
    SystemOperations,
    VolumeCreateRequest,
    VolumeOperations,
)
from convoy.clients.docker import DockerEngineClient

__all__ = [
    "ContainerCreateRequest",
    "ContainerOperations",
    "DockerEngineClient",
    "EngineClient",
    "NetworkCreateRequest",
    "NetworkOperations",
    "SystemOperations",
    "VolumeCreateRequest",
    "VolumeOperations",
]
