"""Container provider."""

import logging
from typing import Optional, TYPE_CHECKING

from convoy.builders.container import build_container_request
from convoy.clients.engine import ContainerOperations
from convoy.diff import container_up_to_date
from convoy.errors import NotFoundError, UpdateNotSupportedError
from convoy.models.container import Container, ContainerObservation, ContainerParameters
from convoy.models.meta import Condition, available, creating, deleting, unavailable
from convoy.providers.base import BaseProvider, Observation, ProviderStatus
from convoy.resolvers import ReferenceResolver, resolve_env

if TYPE_CHECKING:
    from convoy.providers.registry import ProviderRegistry

logger = logging.getLogger(__name__)

DEFAULT_STOP_TIMEOUT = 10


def container_condition(observation: ContainerObservation) -> Condition:
    """Ready condition for an observed container."""
    state = observation.state
    if state.running:
        return available()
    if state.dead:
        return unavailable("container is dead")
    if state.oom_killed:
        return unavailable("container was OOM killed")
    if state.error:
        return unavailable(f"container error: {state.error}")
    return unavailable(f"container status: {state.status}")


class ContainerProvider(BaseProvider):
    """Provider for managing engine containers."""

    kind = "Container"

    def __init__(
        self,
        engine: Optional[ContainerOperations] = None,
        resolver: Optional[ReferenceResolver] = None,
        stop_timeout: int = DEFAULT_STOP_TIMEOUT,
    ):
        """Initialize container provider."""
        self.engine = engine
        self.resolver = resolver
        self.stop_timeout = stop_timeout

    async def initialize(self, config, registry: "ProviderRegistry") -> None:
        """Initialize provider with configuration and registry."""
        self.engine = registry.engine
        self.resolver = registry.resolver
        self.stop_timeout = config.engine.stop_timeout

    async def observe(self, record: Container) -> Observation:
        """Inspect the bound container and compare it with the record."""
        container_id = record.get_external_name()
        if not container_id:
            return Observation.absent()

        try:
            data = await self.engine.container_inspect(container_id)
        except NotFoundError:
            logger.debug(f"Container {container_id} for {record.metadata.name} not found")
            return Observation.absent()

        observation = ContainerObservation.from_engine(data)
        record.status.at_provider = observation
        record.status.set_conditions(container_condition(observation))

        diff = container_up_to_date(record.spec.for_provider, data)
        if not diff.up_to_date:
            logger.debug(f"Container {record.metadata.name} drifted: {'; '.join(diff.reasons)}")
            return Observation(ProviderStatus.DRIFTED, diff.reasons)
        return Observation(ProviderStatus.UP_TO_DATE)

    async def create(self, record: Container) -> None:
        """Create the container, bind it to the record and start it."""
        params = record.spec.for_provider
        logger.info(f"Creating container {record.metadata.name}")

        container_id = await self.create_container(params, record.metadata.namespace)
        record.set_external_name(container_id)
        record.status.set_conditions(creating())

        if params.start_on_create is not False:
            await self.start_container(container_id)

    async def update(self, record: Container) -> None:
        """Containers cannot be changed in place."""
        logger.warning(f"Container {record.metadata.name} drifted and cannot be updated in place")
        raise UpdateNotSupportedError(
            f"updating container {record.metadata.name} is not implemented, recreate it instead"
        )

    async def delete(self, record: Container) -> None:
        """Stop and remove the bound container."""
        container_id = record.get_external_name()
        if not container_id:
            logger.debug(f"Container {record.metadata.name} was never created")
            return

        record.status.set_conditions(deleting())
        await self.remove_container(container_id)

    async def create_container(
        self,
        params: ContainerParameters,
        namespace: Optional[str] = None,
        name: Optional[str] = None,
    ) -> str:
        """Build and issue a create request, returning the container ID."""
        resolved = await resolve_env(self.resolver, params.env, namespace)
        request = build_container_request(params, resolved, name=name)
        try:
            container_id = await self.engine.container_create(request)
        except Exception as e:
            logger.error(f"Failed to create container {request.name or params.image}: {e}")
            raise
        logger.debug(f"Created container {request.name or ''} with ID {container_id}")
        return container_id

    async def start_container(self, container_id: str) -> None:
        logger.info(f"Starting container {container_id}")
        try:
            await self.engine.container_start(container_id)
        except Exception as e:
            logger.error(f"Failed to start container {container_id}: {e}")
            raise

    async def remove_container(self, container_id: str) -> None:
        """Stop with a bounded wait, then force removal. Absence is success."""
        logger.info(f"Removing container {container_id}")
        try:
            await self.engine.container_stop(container_id, timeout=self.stop_timeout)
        except NotFoundError:
            logger.debug(f"Container {container_id} already gone")
            return
        except Exception as e:
            logger.error(f"Failed to stop container {container_id}: {e}")
            raise

        try:
            await self.engine.container_remove(container_id, force=True)
        except NotFoundError:
            logger.debug(f"Container {container_id} already gone")
