"""Compose stack provider.

A stack is reconciled by decomposing its document and driving the
container, network and volume logic directly for every part. Parts that
already exist are left alone, so create can be repeated after a partial
failure. A failure aborts the remaining creates without rolling back what
was already created.
"""

import io
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, TYPE_CHECKING

from dotenv import dotenv_values

from convoy.builders.network import build_network_request
from convoy.builders.volume import build_volume_request
from convoy.clients.engine import EngineClient
from convoy.compose.overrides import apply_overrides
from convoy.compose.parser import PROJECT_LABEL, StackDecomposition, decompose
from convoy.errors import NotFoundError
from convoy.models.container import ContainerObservation, PortSpec
from convoy.models.meta import available, creating, deleting, unavailable
from convoy.models.stack import (
    ComposeStack,
    ServiceStatus,
    StackNetworkStatus,
    StackVolumeStatus,
)
from convoy.providers.base import BaseProvider, Observation, ProviderStatus
from convoy.providers.container import ContainerProvider
from convoy.providers.network import NetworkProvider
from convoy.providers.volume import VolumeProvider
from convoy.resolvers import ReferenceResolver, resolve_document, resolve_env

if TYPE_CHECKING:
    from convoy.providers.registry import ProviderRegistry

logger = logging.getLogger(__name__)

_SERVICE_STATES = {
    "created": "creating",
    "running": "running",
    "restarting": "restarting",
    "exited": "exited",
    "paused": "paused",
    "dead": "dead",
}


def service_status(service: str, data: Dict) -> ServiceStatus:
    """Summarize one inspected service container."""
    observation = ContainerObservation.from_engine(data)
    return ServiceStatus(
        name=service,
        container_id=observation.id,
        state=_SERVICE_STATES.get(observation.state.status or "", "unknown"),
        image=observation.image.name,
        ports=[
            PortSpec(
                container_port=port.private_port,
                host_port=port.public_port,
                host_ip=port.ip,
                protocol=port.type.upper(),
            )
            for port in observation.ports
        ],
        health=observation.state.health,
        created_at=observation.created,
        started_at=observation.started,
    )


class StackProvider(BaseProvider):
    """Provider for multi-service stacks."""

    kind = "ComposeStack"

    def __init__(
        self,
        engine: Optional[EngineClient] = None,
        resolver: Optional[ReferenceResolver] = None,
        containers: Optional[ContainerProvider] = None,
    ):
        """Initialize stack provider."""
        self.engine = engine
        self.resolver = resolver
        self.containers = containers or ContainerProvider(engine, resolver)
        self.networks = NetworkProvider(engine)
        self.volumes = VolumeProvider(engine)

    async def initialize(self, config, registry: "ProviderRegistry") -> None:
        """Initialize provider with configuration and registry."""
        self.engine = registry.engine
        self.resolver = registry.resolver

        # Inject sibling providers explicitly
        self.containers = registry.get_provider("Container")
        self.networks = registry.get_provider("Network")
        self.volumes = registry.get_provider("Volume")

    async def load(self, record: ComposeStack) -> StackDecomposition:
        """Resolve the document and environment, then decompose."""
        params = record.spec.for_provider
        namespace = record.metadata.namespace

        if params.compose is not None:
            document = params.compose
        else:
            document = await resolve_document(self.resolver, params.compose_ref, namespace)

        environment: Dict[str, str] = {}
        for reference in params.env_files:
            content = await resolve_document(self.resolver, reference, namespace)
            values = dotenv_values(stream=io.StringIO(content))
            environment.update({key: value for key, value in values.items() if value is not None})
        environment.update(
            {entry.name: entry.value for entry in params.environment if entry.value is not None}
        )
        environment.update(await resolve_env(self.resolver, params.environment, namespace))

        decomposition = decompose(document, record.project_name, environment, params.working_dir)
        apply_overrides(decomposition, params.service_overrides)

        observation = record.status.at_provider
        observation.project_name = record.project_name
        observation.compose_version = decomposition.version
        observation.parsed_at = datetime.now(timezone.utc)
        return decomposition

    async def observe(self, record: ComposeStack) -> Observation:
        """Inspect every service container and aggregate their state."""
        decomposition = await self.load(record)
        observation = record.status.at_provider

        services: Dict[str, ServiceStatus] = {}
        missing: List[str] = []
        not_running: List[str] = []
        for definition in decomposition.services:
            for name in definition.container_names():
                try:
                    data = await self.engine.container_inspect(name)
                except NotFoundError:
                    logger.debug(f"Container {name} of stack {record.project_name} not found")
                    missing.append(name)
                    services.setdefault(
                        definition.service, ServiceStatus(name=definition.service, state="pending")
                    )
                    continue

                status = service_status(definition.service, data)
                if status.state != "running":
                    not_running.append(name)
                    services[definition.service] = status
                else:
                    services.setdefault(definition.service, status)

        observation.services = services
        observation.networks = await self._network_statuses(decomposition)
        observation.volumes = await self._volume_statuses(decomposition)

        if missing:
            record.status.set_conditions(unavailable(f"containers not found: {', '.join(missing)}"))
            return Observation.absent()
        if not_running:
            record.status.set_conditions(creating())
            return Observation(ProviderStatus.DRIFTED, [f"container {name} is not running" for name in not_running])
        record.status.set_conditions(available())
        return Observation(ProviderStatus.UP_TO_DATE)

    async def _network_statuses(self, decomposition: StackDecomposition) -> List[StackNetworkStatus]:
        statuses = []
        for definition in decomposition.networks:
            try:
                data = await self.engine.network_inspect(definition.name)
            except NotFoundError:
                continue
            statuses.append(StackNetworkStatus(
                name=definition.name,
                id=data.get("Id"),
                driver=data.get("Driver"),
                created_at=data.get("Created"),
            ))
        return statuses

    async def _volume_statuses(self, decomposition: StackDecomposition) -> List[StackVolumeStatus]:
        statuses = []
        for definition in decomposition.volumes:
            try:
                data = await self.engine.volume_inspect(definition.name)
            except NotFoundError:
                continue
            statuses.append(StackVolumeStatus(
                name=definition.name,
                id=data.get("Name"),
                driver=data.get("Driver"),
                mountpoint=data.get("Mountpoint"),
                created_at=data.get("CreatedAt"),
            ))
        return statuses

    async def create(self, record: ComposeStack) -> None:
        """Create missing networks, volumes and containers."""
        logger.info(f"Creating stack {record.project_name}")
        await self._converge(record, start_stopped=False)

    async def update(self, record: ComposeStack) -> None:
        """Create anything missing and start stopped service containers."""
        logger.info(f"Updating stack {record.project_name}")
        await self._converge(record, start_stopped=True)

    async def _converge(self, record: ComposeStack, start_stopped: bool) -> None:
        decomposition = await self.load(record)
        # Fails on dependency cycles before touching the engine
        order = decomposition.creation_order()
        tracked = record.status.at_provider.resources

        for definition in decomposition.networks:
            if definition.external:
                continue
            try:
                await self.engine.network_inspect(definition.name)
                continue
            except NotFoundError:
                pass
            request = build_network_request(definition.parameters, definition.name)
            logger.info(f"Creating network {request.name} for stack {record.project_name}")
            tracked.networks.append(await self.engine.network_create(request))

        for definition in decomposition.volumes:
            if definition.external:
                continue
            try:
                await self.engine.volume_inspect(definition.name)
                continue
            except NotFoundError:
                pass
            request = build_volume_request(definition.parameters, definition.name)
            logger.info(f"Creating volume {request.name} for stack {record.project_name}")
            data = await self.engine.volume_create(request)
            tracked.volumes.append(data.get("Name") or request.name)

        record.status.set_conditions(creating())
        for service in order:
            definition = decomposition.get_service(service)
            for name in definition.container_names():
                try:
                    data = await self.engine.container_inspect(name)
                except NotFoundError:
                    data = None

                if data is not None:
                    running = (data.get("State") or {}).get("Running")
                    if start_stopped and not running:
                        await self.containers.start_container(data["Id"])
                    else:
                        logger.debug(f"Container {name} already exists, skipping")
                    continue

                try:
                    container_id = await self.containers.create_container(
                        definition.parameters, record.metadata.namespace, name=name
                    )
                    tracked.containers.append(container_id)
                    if definition.parameters.start_on_create is not False:
                        await self.containers.start_container(container_id)
                except Exception as e:
                    logger.error(f"Failed to create service {service} of stack {record.project_name}: {e}")
                    raise

    async def delete(self, record: ComposeStack) -> None:
        """Remove the stack's containers and networks, and volumes if asked to."""
        params = record.spec.for_provider
        tracked = record.status.at_provider.resources
        record.status.set_conditions(deleting())

        if not tracked.is_empty():
            logger.info(f"Deleting stack {record.project_name} by tracked resources")
            for container_id in reversed(tracked.containers):
                await self.containers.remove_container(container_id)
            for network_id in tracked.networks:
                await self.networks.remove_network(network_id)
            if params.remove_volumes:
                for name in tracked.volumes:
                    await self.volumes.remove_volume(name)
        else:
            labels = {PROJECT_LABEL: record.project_name}
            logger.info(f"Deleting stack {record.project_name} by label {PROJECT_LABEL}")
            for container in await self.engine.container_list(labels, all=True):
                await self.containers.remove_container(container["Id"])
            for network in await self.engine.network_list(labels):
                await self.networks.remove_network(network["Id"])
            if params.remove_volumes:
                for volume in await self.engine.volume_list(labels):
                    await self.volumes.remove_volume(volume["Name"])

        tracked.containers.clear()
        tracked.networks.clear()
        tracked.volumes.clear()
