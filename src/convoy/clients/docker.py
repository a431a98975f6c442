"""Engine client backed by the Docker SDK low-level API."""

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional

import docker
import docker.errors
import requests.exceptions

from convoy.clients.engine import (
    ContainerCreateRequest,
    EngineClient,
    NetworkCreateRequest,
    VolumeCreateRequest,
    label_filters,
)
from convoy.errors import EngineError, NotFoundError
from convoy.models.config import EngineConfig


logger = logging.getLogger(__name__)


class DockerEngineClient(EngineClient):
    """EngineClient over docker.APIClient.

    Blocking SDK calls run in worker threads so that cancelling the awaiting
    task returns control to the caller immediately.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        """Initialize the client without connecting."""
        self.config = config or EngineConfig()
        self._api: Optional[docker.APIClient] = None

    async def connect(self) -> None:
        """Open the connection and negotiate the API version."""
        if self._api is not None:
            return
        if self.config.host:
            kwargs: Dict[str, Any] = {"base_url": self.config.host}
        else:
            kwargs = docker.utils.kwargs_from_env()
        kwargs["version"] = self.config.api_version
        kwargs["timeout"] = self.config.timeout

        try:
            self._api = await asyncio.to_thread(docker.APIClient, **kwargs)
        except (docker.errors.DockerException, requests.exceptions.RequestException) as e:
            raise EngineError("connect", kwargs.get("base_url"), e) from e
        logger.debug(f"Connected to engine at {self._api.base_url}")

    @property
    def api(self) -> docker.APIClient:
        """Low-level SDK client."""
        if self._api is None:
            raise EngineError("use client", None, "not connected")
        return self._api

    async def close(self) -> None:
        """Close the connection."""
        if self._api is not None:
            await asyncio.to_thread(self._api.close)
            self._api = None

    async def _call(self, operation: str, resource_id: Optional[str], func: Callable, *args, **kwargs):
        """Run one SDK call in a thread, translating SDK errors."""
        try:
            return await asyncio.to_thread(func, *args, **kwargs)
        except docker.errors.NotFound as e:
            raise NotFoundError(operation, resource_id, e.explanation or e) from e
        except (docker.errors.DockerException, requests.exceptions.RequestException) as e:
            raise EngineError(operation, resource_id, e) from e

    # Containers

    async def container_create(self, request: ContainerCreateRequest) -> str:
        result = await self._call(
            "create container", request.name,
            self.api.create_container_from_config, request.to_body(), request.name,
        )
        for warning in result.get("Warnings") or []:
            logger.warning(f"Engine warning creating container {request.name or ''}: {warning}")
        return result["Id"]

    async def container_start(self, container_id: str) -> None:
        await self._call("start container", container_id, self.api.start, container_id)

    async def container_stop(self, container_id: str, timeout: int) -> None:
        await self._call("stop container", container_id, self.api.stop, container_id, timeout=timeout)

    async def container_restart(self, container_id: str, timeout: int) -> None:
        await self._call("restart container", container_id, self.api.restart, container_id, timeout=timeout)

    async def container_remove(self, container_id: str, force: bool = False) -> None:
        await self._call(
            "remove container", container_id, self.api.remove_container, container_id, force=force
        )

    async def container_inspect(self, container_id: str) -> Dict[str, Any]:
        return await self._call("inspect container", container_id, self.api.inspect_container, container_id)

    async def container_list(
        self, labels: Optional[Dict[str, str]] = None, all: bool = True
    ) -> List[Dict[str, Any]]:
        return await self._call(
            "list containers", None, self.api.containers, all=all, filters=label_filters(labels)
        )

    # Volumes

    async def volume_create(self, request: VolumeCreateRequest) -> Dict[str, Any]:
        return await self._call(
            "create volume", request.name, self.api.create_volume,
            name=request.name,
            driver=request.driver,
            driver_opts=request.driver_opts or None,
            labels=request.labels or None,
        )

    async def volume_inspect(self, name: str) -> Dict[str, Any]:
        return await self._call("inspect volume", name, self.api.inspect_volume, name)

    async def volume_remove(self, name: str, force: bool = False) -> None:
        await self._call("remove volume", name, self.api.remove_volume, name, force=force)

    async def volume_list(self, labels: Optional[Dict[str, str]] = None) -> List[Dict[str, Any]]:
        result = await self._call("list volumes", None, self.api.volumes, filters=label_filters(labels))
        return (result or {}).get("Volumes") or []

    # Networks

    async def network_create(self, request: NetworkCreateRequest) -> str:
        result = await self._call(
            "create network", request.name, self.api.create_network,
            request.name,
            driver=request.driver,
            options=request.options or None,
            ipam=request.ipam,
            internal=request.internal,
            labels=request.labels or None,
            enable_ipv6=request.enable_ipv6,
            attachable=request.attachable,
            ingress=request.ingress,
        )
        if result.get("Warning"):
            logger.warning(f"Engine warning creating network {request.name}: {result['Warning']}")
        return result["Id"]

    async def network_inspect(self, network_id: str) -> Dict[str, Any]:
        return await self._call("inspect network", network_id, self.api.inspect_network, network_id)

    async def network_remove(self, network_id: str) -> None:
        await self._call("remove network", network_id, self.api.remove_network, network_id)

    async def network_list(self, labels: Optional[Dict[str, str]] = None) -> List[Dict[str, Any]]:
        return await self._call("list networks", None, self.api.networks, filters=label_filters(labels))

    async def ping(self) -> bool:
        try:
            return bool(await self._call("ping", None, self.api.ping))
        except EngineError as e:
            logger.debug(f"Engine ping failed: {e}")
            return False
