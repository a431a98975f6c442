"""Provider registry for managing resource providers."""

import logging
from typing import Dict, Optional, Type

from convoy.clients.engine import EngineClient
from convoy.providers.base import BaseProvider
from convoy.providers.container import ContainerProvider
from convoy.providers.network import NetworkProvider
from convoy.providers.stack import StackProvider
from convoy.providers.volume import VolumeProvider
from convoy.resolvers import ReferenceResolver


logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Registry mapping record kinds to providers."""

    def __init__(self, engine: EngineClient, resolver: Optional[ReferenceResolver] = None):
        """Initialize provider registry."""
        self.engine = engine
        self.resolver = resolver
        self._providers: Dict[str, BaseProvider] = {}
        self._provider_classes: Dict[str, Type[BaseProvider]] = {
            ContainerProvider.kind: ContainerProvider,
            VolumeProvider.kind: VolumeProvider,
            NetworkProvider.kind: NetworkProvider,
            StackProvider.kind: StackProvider,
        }

    async def initialize(self, config):
        """Initialize all providers with two-pass injection."""
        # Phase 1: Instantiate all providers
        for kind, provider_class in self._provider_classes.items():
            try:
                self._providers[kind] = provider_class()
            except Exception as e:
                logger.error(f"Failed to instantiate provider {kind}: {e}")
                raise

        # Phase 2: Initialize and inject registry
        for kind, provider in self._providers.items():
            try:
                await provider.initialize(config, self)
                logger.debug(f"Initialized provider: {kind}")
            except Exception as e:
                logger.error(f"Failed to initialize provider {kind}: {e}")
                raise

    def get_provider(self, kind: str) -> Optional[BaseProvider]:
        """Get a provider by record kind."""
        return self._providers.get(kind)

    def list_providers(self) -> list[str]:
        """List registered record kinds."""
        return list(self._providers.keys())
