"""Shared fixtures."""

import itertools
from typing import Any, Dict, List, Optional

import pytest

from convoy.clients.engine import (
    ContainerCreateRequest,
    EngineClient,
    NetworkCreateRequest,
    VolumeCreateRequest,
)
from convoy.errors import EngineError, NotFoundError
from convoy.resolvers import StaticReferenceResolver


def _has_labels(labels: Optional[Dict[str, str]], observed: Optional[Dict[str, str]]) -> bool:
    observed = observed or {}
    return all(observed.get(key) == value for key, value in (labels or {}).items())


class FakeEngine(EngineClient):
    """In-memory engine keeping inspect-shaped objects."""

    def __init__(self):
        self.containers: Dict[str, Dict[str, Any]] = {}
        self.volumes: Dict[str, Dict[str, Any]] = {}
        self.networks: Dict[str, Dict[str, Any]] = {}
        self.requests: List[ContainerCreateRequest] = []
        self.calls: List[tuple] = []
        self.fail_on: Dict[str, Exception] = {}
        self._ids = itertools.count(1)
        self.connected = False
        self.closed = False

    def _record(self, operation: str, *args):
        self.calls.append((operation,) + args)
        if operation in self.fail_on:
            raise self.fail_on[operation]

    def _find_container(self, operation: str, ref: str) -> Dict[str, Any]:
        for data in self.containers.values():
            if data["Id"] == ref or data["Name"] == f"/{ref}":
                return data
        raise NotFoundError(operation, ref, "No such container")

    def _find_network(self, operation: str, ref: str) -> Dict[str, Any]:
        for data in self.networks.values():
            if data["Id"] == ref or data["Name"] == ref:
                return data
        raise NotFoundError(operation, ref, "No such network")

    async def container_create(self, request: ContainerCreateRequest) -> str:
        self._record("container_create", request.name)
        if request.name and any(d["Name"] == f"/{request.name}" for d in self.containers.values()):
            raise EngineError("create container", request.name, "Conflict")
        container_id = f"c{next(self._ids):063d}"
        config = dict(request.config)
        config.setdefault("Labels", {})
        self.containers[container_id] = {
            "Id": container_id,
            "Name": f"/{request.name or container_id[:12]}",
            "Image": "sha256:" + "0" * 64,
            "Created": "2024-01-01T00:00:00Z",
            "Config": config,
            "HostConfig": dict(request.host_config),
            "State": {"Status": "created", "Running": False},
            "NetworkSettings": {"Ports": {}, "Networks": {}},
        }
        self.requests.append(request)
        return container_id

    async def container_start(self, container_id: str) -> None:
        self._record("container_start", container_id)
        data = self._find_container("start container", container_id)
        data["State"] = {"Status": "running", "Running": True, "StartedAt": "2024-01-01T00:00:01Z"}

    async def container_stop(self, container_id: str, timeout: int) -> None:
        self._record("container_stop", container_id, timeout)
        data = self._find_container("stop container", container_id)
        data["State"] = {"Status": "exited", "Running": False}

    async def container_restart(self, container_id: str, timeout: int) -> None:
        self._record("container_restart", container_id, timeout)
        data = self._find_container("restart container", container_id)
        data["State"] = {"Status": "running", "Running": True}

    async def container_remove(self, container_id: str, force: bool = False) -> None:
        self._record("container_remove", container_id, force)
        data = self._find_container("remove container", container_id)
        del self.containers[data["Id"]]

    async def container_inspect(self, container_id: str) -> Dict[str, Any]:
        self._record("container_inspect", container_id)
        return self._find_container("inspect container", container_id)

    async def container_list(self, labels=None, all: bool = True) -> List[Dict[str, Any]]:
        self._record("container_list", labels)
        return [
            data for data in self.containers.values()
            if _has_labels(labels, data["Config"].get("Labels"))
            and (all or data["State"].get("Running"))
        ]

    async def volume_create(self, request: VolumeCreateRequest) -> Dict[str, Any]:
        self._record("volume_create", request.name)
        data = {
            "Name": request.name,
            "Driver": request.driver,
            "Mountpoint": f"/var/lib/docker/volumes/{request.name}/_data",
            "Scope": "local",
            "Options": dict(request.driver_opts),
            "Labels": dict(request.labels),
        }
        self.volumes[request.name] = data
        return data

    async def volume_inspect(self, name: str) -> Dict[str, Any]:
        self._record("volume_inspect", name)
        if name not in self.volumes:
            raise NotFoundError("inspect volume", name, "No such volume")
        return self.volumes[name]

    async def volume_remove(self, name: str, force: bool = False) -> None:
        self._record("volume_remove", name, force)
        if name not in self.volumes:
            raise NotFoundError("remove volume", name, "No such volume")
        del self.volumes[name]

    async def volume_list(self, labels=None) -> List[Dict[str, Any]]:
        self._record("volume_list", labels)
        return [data for data in self.volumes.values() if _has_labels(labels, data["Labels"])]

    async def network_create(self, request: NetworkCreateRequest) -> str:
        self._record("network_create", request.name)
        network_id = f"n{next(self._ids):063d}"
        self.networks[network_id] = {
            "Id": network_id,
            "Name": request.name,
            "Driver": request.driver,
            "Scope": "local",
            "Internal": request.internal,
            "Attachable": request.attachable,
            "EnableIPv6": request.enable_ipv6,
            "IPAM": request.ipam,
            "Options": dict(request.options),
            "Labels": dict(request.labels),
        }
        return network_id

    async def network_inspect(self, network_id: str) -> Dict[str, Any]:
        self._record("network_inspect", network_id)
        return self._find_network("inspect network", network_id)

    async def network_remove(self, network_id: str) -> None:
        self._record("network_remove", network_id)
        data = self._find_network("remove network", network_id)
        del self.networks[data["Id"]]

    async def network_list(self, labels=None) -> List[Dict[str, Any]]:
        self._record("network_list", labels)
        return [data for data in self.networks.values() if _has_labels(labels, data["Labels"])]

    async def ping(self) -> bool:
        return True

    async def connect(self) -> None:
        self.connected = True

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def engine():
    """Create an in-memory engine."""
    return FakeEngine()


@pytest.fixture
def resolver():
    """Create a resolver with one config map and one secret."""
    resolver = StaticReferenceResolver()
    resolver.add_config_map("app-config", {"LOG_LEVEL": "debug"})
    resolver.add_secret("db", {"password": "hunter2"})
    return resolver
