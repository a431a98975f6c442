"""Network provider."""

import logging
from typing import Optional, TYPE_CHECKING

from convoy.builders.network import build_network_request
from convoy.clients.engine import NetworkOperations
from convoy.diff import network_up_to_date
from convoy.errors import NotFoundError
from convoy.models.meta import available, deleting
from convoy.models.network import Network, NetworkObservation
from convoy.providers.base import BaseProvider, Observation, ProviderStatus

if TYPE_CHECKING:
    from convoy.providers.registry import ProviderRegistry

logger = logging.getLogger(__name__)


class NetworkProvider(BaseProvider):
    """Provider for managing engine networks."""

    kind = "Network"

    def __init__(self, engine: Optional[NetworkOperations] = None):
        """Initialize network provider."""
        self.engine = engine

    async def initialize(self, config, registry: "ProviderRegistry") -> None:
        """Initialize provider with configuration and registry."""
        self.engine = registry.engine

    async def observe(self, record: Network) -> Observation:
        network_id = record.get_external_name()
        if not network_id:
            return Observation.absent()

        try:
            data = await self.engine.network_inspect(network_id)
        except NotFoundError:
            logger.debug(f"Network {network_id} not found")
            return Observation.absent()

        record.status.at_provider = NetworkObservation.from_engine(data)
        record.status.set_conditions(available())

        diff = network_up_to_date(record.spec.for_provider, data)
        if not diff.up_to_date:
            logger.debug(f"Network {record.metadata.name} drifted: {'; '.join(diff.reasons)}")
            return Observation(ProviderStatus.DRIFTED, diff.reasons)
        return Observation(ProviderStatus.UP_TO_DATE)

    async def create(self, record: Network) -> None:
        request = build_network_request(record.spec.for_provider, record.metadata.name)
        logger.info(f"Creating network {request.name}")
        try:
            network_id = await self.engine.network_create(request)
        except Exception as e:
            logger.error(f"Failed to create network {request.name}: {e}")
            raise
        record.set_external_name(network_id)

        data = await self.engine.network_inspect(network_id)
        record.status.at_provider = NetworkObservation.from_engine(data)
        record.status.set_conditions(available())

    async def update(self, record: Network) -> None:
        """Networks are immutable; drift is resolved by recreation."""
        logger.debug(f"Network {record.metadata.name} cannot be updated, skipping")

    async def delete(self, record: Network) -> None:
        network_id = record.get_external_name()
        if not network_id:
            return

        record.status.set_conditions(deleting())
        await self.remove_network(network_id)

    async def remove_network(self, network_id: str) -> None:
        """Remove a network. Absence is success."""
        logger.info(f"Removing network {network_id}")
        try:
            await self.engine.network_remove(network_id)
        except NotFoundError:
            logger.debug(f"Network {network_id} already gone")
