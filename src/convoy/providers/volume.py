"""Volume provider."""

import logging
from typing import Optional, TYPE_CHECKING

from convoy.builders.volume import build_volume_request
from convoy.clients.engine import VolumeOperations
from convoy.diff import volume_up_to_date
from convoy.errors import NotFoundError
from convoy.models.meta import available, deleting
from convoy.models.volume import Volume, VolumeObservation
from convoy.providers.base import BaseProvider, Observation, ProviderStatus

if TYPE_CHECKING:
    from convoy.providers.registry import ProviderRegistry

logger = logging.getLogger(__name__)


class VolumeProvider(BaseProvider):
    """Provider for managing engine volumes."""

    kind = "Volume"

    def __init__(self, engine: Optional[VolumeOperations] = None):
        """Initialize volume provider."""
        self.engine = engine

    async def initialize(self, config, registry: "ProviderRegistry") -> None:
        """Initialize provider with configuration and registry."""
        self.engine = registry.engine

    async def observe(self, record: Volume) -> Observation:
        name = record.get_external_name()
        if not name:
            return Observation.absent()

        try:
            data = await self.engine.volume_inspect(name)
        except NotFoundError:
            logger.debug(f"Volume {name} not found")
            return Observation.absent()

        record.status.at_provider = VolumeObservation.from_engine(data)
        record.status.set_conditions(available())

        diff = volume_up_to_date(record.spec.for_provider, data)
        if not diff.up_to_date:
            logger.debug(f"Volume {name} drifted: {'; '.join(diff.reasons)}")
            return Observation(ProviderStatus.DRIFTED, diff.reasons)
        return Observation(ProviderStatus.UP_TO_DATE)

    async def create(self, record: Volume) -> None:
        request = build_volume_request(record.spec.for_provider, record.metadata.name)
        logger.info(f"Creating volume {request.name}")
        try:
            data = await self.engine.volume_create(request)
        except Exception as e:
            logger.error(f"Failed to create volume {request.name}: {e}")
            raise

        record.set_external_name(data.get("Name") or request.name)
        record.status.at_provider = VolumeObservation.from_engine(data)
        record.status.set_conditions(available())

    async def update(self, record: Volume) -> None:
        """Volumes are immutable; drift is resolved by recreation."""
        logger.debug(f"Volume {record.metadata.name} cannot be updated, skipping")

    async def delete(self, record: Volume) -> None:
        name = record.get_external_name()
        if not name:
            return

        record.status.set_conditions(deleting())
        await self.remove_volume(name)

    async def remove_volume(self, name: str) -> None:
        """Force removal. Absence is success."""
        logger.info(f"Removing volume {name}")
        try:
            await self.engine.volume_remove(name, force=True)
        except NotFoundError:
            logger.debug(f"Volume {name} already gone")
