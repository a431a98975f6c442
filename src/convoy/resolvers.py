"""Lookups of values held in config maps and secrets."""

import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple

from convoy.errors import ReferenceNotFoundError
from convoy.models.container import EnvVar, KeySelector
from convoy.models.stack import ComposeReference


logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "default"


class ReferenceResolver(ABC):
    """Source of config map and secret values."""

    @abstractmethod
    async def get_config_map_value(self, namespace: str, name: str, key: str) -> str:
        """Return one config map value or raise ReferenceNotFoundError."""
        pass

    @abstractmethod
    async def get_secret_value(self, namespace: str, name: str, key: str) -> str:
        """Return one secret value or raise ReferenceNotFoundError."""
        pass


class StaticReferenceResolver(ReferenceResolver):
    """Resolver over config maps and secrets held in memory."""

    def __init__(self):
        """Initialize an empty resolver."""
        self._config_maps: Dict[Tuple[str, str], Dict[str, str]] = {}
        self._secrets: Dict[Tuple[str, str], Dict[str, str]] = {}

    def add_config_map(self, name: str, data: Dict[str, str], namespace: Optional[str] = None):
        self._config_maps[(namespace or DEFAULT_NAMESPACE, name)] = dict(data)

    def add_secret(self, name: str, data: Dict[str, str], namespace: Optional[str] = None):
        self._secrets[(namespace or DEFAULT_NAMESPACE, name)] = dict(data)

    @staticmethod
    def _lookup(store, kind: str, namespace: str, name: str, key: str) -> str:
        data = store.get((namespace, name))
        if data is None:
            raise ReferenceNotFoundError(f"{kind} {namespace}/{name} not found")
        if key not in data:
            raise ReferenceNotFoundError(f"key {key} not found in {kind} {namespace}/{name}")
        return data[key]

    async def get_config_map_value(self, namespace: str, name: str, key: str) -> str:
        return self._lookup(self._config_maps, "config map", namespace, name, key)

    async def get_secret_value(self, namespace: str, name: str, key: str) -> str:
        return self._lookup(self._secrets, "secret", namespace, name, key)


async def _resolve_selector(
    resolver: ReferenceResolver,
    selector: KeySelector,
    is_secret: bool,
    namespace: str,
) -> str:
    ns = selector.namespace or namespace
    if is_secret:
        return await resolver.get_secret_value(ns, selector.name, selector.key)
    return await resolver.get_config_map_value(ns, selector.name, selector.key)


async def resolve_env(
    resolver: Optional[ReferenceResolver],
    entries: List[EnvVar],
    namespace: Optional[str] = None,
) -> Dict[str, str]:
    """Resolve every sourced environment entry, keyed by variable name.

    Optional references that cannot be resolved are left out.
    """
    resolved: Dict[str, str] = {}
    for entry in entries:
        source = entry.value_from
        if entry.value is not None or source is None:
            continue

        selector = source.secret_key_ref or source.config_map_key_ref
        if selector is None:
            raise ReferenceNotFoundError(f"environment variable {entry.name} has an empty source")
        try:
            if resolver is None:
                raise ReferenceNotFoundError("no reference resolver configured")
            resolved[entry.name] = await _resolve_selector(
                resolver, selector, source.secret_key_ref is not None,
                namespace or DEFAULT_NAMESPACE,
            )
        except ReferenceNotFoundError as e:
            if not selector.optional:
                raise ReferenceNotFoundError(
                    f"cannot resolve environment variable {entry.name}: {e}"
                ) from e
            logger.debug(f"Skipping optional environment variable {entry.name}: {e}")
    return resolved


async def resolve_document(
    resolver: Optional[ReferenceResolver],
    reference: ComposeReference,
    namespace: Optional[str] = None,
) -> str:
    """Fetch a document held in a config map or secret."""
    if resolver is None:
        raise ReferenceNotFoundError("no reference resolver configured")
    selector = reference.secret_ref or reference.config_map_ref
    return await _resolve_selector(
        resolver, selector, reference.secret_ref is not None, namespace or DEFAULT_NAMESPACE
    )
