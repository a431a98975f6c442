"""Lifecycle providers for each record kind."""

from convoy.providers.base import BaseProvider, Observation, ProviderStatus
from convoy.providers.container import ContainerProvider
from convoy.providers.network import NetworkProvider
from convoy.providers.registry import ProviderRegistry
from convoy.providers.stack import StackProvider
from convoy.providers.volume import VolumeProvider

__all__ = [
    "BaseProvider",
    "ContainerProvider",
    "NetworkProvider",
    "Observation",
    "ProviderRegistry",
    "ProviderStatus",
    "StackProvider",
    "VolumeProvider",
]
