"""Tests for config map and secret resolution."""

import pytest

from convoy.errors import ReferenceNotFoundError
from convoy.models.container import EnvVar
from convoy.models.stack import ComposeReference
from convoy.resolvers import resolve_document, resolve_env


def env(var, source, optional=False, **selector):
    ref = "secretKeyRef" if source == "secret" else "configMapKeyRef"
    return EnvVar.model_validate({"name": var, "valueFrom": {ref: {"optional": optional, **selector}}})


@pytest.mark.asyncio
class TestResolveEnv:
    """Test environment resolution."""

    async def test_resolves_both_sources(self, resolver):
        entries = [
            EnvVar(name="LITERAL", value="x"),
            env("LEVEL", "configMap", name="app-config", key="LOG_LEVEL"),
            env("PASSWORD", "secret", name="db", key="password"),
        ]

        resolved = await resolve_env(resolver, entries)

        assert resolved == {"LEVEL": "debug", "PASSWORD": "hunter2"}

    async def test_missing_key_fails(self, resolver):
        with pytest.raises(ReferenceNotFoundError, match="PASSWORD"):
            await resolve_env(resolver, [env("PASSWORD", "secret", name="db", key="nope")])

    async def test_optional_missing_dropped(self, resolver):
        resolved = await resolve_env(resolver, [env("X", "secret", optional=True, name="absent", key="k")])

        assert resolved == {}

    async def test_namespace_lookup(self, resolver):
        resolver.add_secret("db", {"password": "other"}, namespace="prod")

        resolved = await resolve_env(resolver, [env("P", "secret", name="db", key="password")], "prod")

        assert resolved == {"P": "other"}

    async def test_no_resolver(self):
        with pytest.raises(ReferenceNotFoundError):
            await resolve_env(None, [env("P", "secret", name="db", key="password")])


@pytest.mark.asyncio
class TestResolveDocument:
    """Test document lookups."""

    async def test_config_map_document(self, resolver):
        resolver.add_config_map("stacks", {"app.yaml": "services: {}"})
        reference = ComposeReference.model_validate({"configMapRef": {"name": "stacks", "key": "app.yaml"}})

        assert await resolve_document(resolver, reference) == "services: {}"
