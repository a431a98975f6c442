"""Tests for the StateEngine."""

import pytest
import pytest_asyncio
from unittest.mock import AsyncMock, Mock

from convoy.agent.engine import StateEngine
from convoy.errors import UpdateNotSupportedError
from convoy.models import Container, Network, Volume
from convoy.models.config import ConvoyConfig
from convoy.providers.base import Observation, ProviderStatus
from convoy.providers.registry import ProviderRegistry


def container(name="web", ensure="present", image="nginx:1.25"):
    return Container.model_validate({
        "metadata": {"name": name}, "ensure": ensure,
        "spec": {"forProvider": {"image": image}},
    })


def volume(name="data", ensure="present"):
    return Volume.model_validate({"metadata": {"name": name}, "ensure": ensure, "spec": {"forProvider": {}}})


def network(name="backend", ensure="present"):
    return Network.model_validate({"metadata": {"name": name}, "ensure": ensure, "spec": {"forProvider": {}}})


def make_manager(*records):
    """Create a mock ConfigManager holding the given records."""
    manager = Mock()
    manager.records = {record.key: record for record in records}
    return manager


@pytest_asyncio.fixture
async def registry(engine, resolver):
    registry = ProviderRegistry(engine, resolver)
    await registry.initialize(ConvoyConfig())
    return registry


@pytest.mark.asyncio
class TestStateEngine:
    """Test reconciliation passes against the in-memory engine."""

    async def test_creates_missing_records(self, engine, registry):
        records = [container(), volume(), network()]
        state_engine = StateEngine(make_manager(*records), registry)

        results = await state_engine.reconcile()

        assert [(result.key, result.action) for result in results] == [
            ("Volume/default/data", "created"),
            ("Network/default/backend", "created"),
            ("Container/default/web", "created"),
        ]
        assert all(record.status.get_condition("Synced").status == "True" for record in records)

    async def test_second_pass_is_unchanged(self, engine, registry):
        state_engine = StateEngine(make_manager(container(), volume()), registry)
        await state_engine.reconcile()

        results = await state_engine.reconcile()

        assert {result.action for result in results} == {"unchanged"}

    async def test_absent_records_deleted_first(self, engine, registry):
        """Test that removals run before creations, in reverse kind order."""
        old_volume = volume("old")
        old_container = container("old")
        first = StateEngine(make_manager(old_volume, old_container), registry)
        await first.reconcile()

        old_volume.ensure = "absent"
        old_container.ensure = "absent"
        state_engine = StateEngine(make_manager(old_volume, old_container, container("new")), registry)
        results = await state_engine.reconcile()

        assert [(result.key, result.action) for result in results] == [
            ("Container/default/old", "deleted"),
            ("Volume/default/old", "deleted"),
            ("Container/default/new", "created"),
        ]
        assert old_container.get_external_name() is None
        assert "old" not in engine.volumes

    async def test_drift_without_recreate_fails(self, engine, registry):
        record = container()
        state_engine = StateEngine(make_manager(record), registry)
        await state_engine.reconcile()
        record.spec.for_provider.image = "nginx:1.26"

        results = await state_engine.reconcile()

        assert results[0].failed
        synced = record.status.get_condition("Synced")
        assert synced.reason == "ReconcileError"
        assert "recreate" in synced.message

    async def test_drift_with_recreate(self, engine, registry):
        record = container()
        state_engine = StateEngine(make_manager(record), registry, recreate_on_drift=True)
        await state_engine.reconcile()
        old_id = record.get_external_name()
        record.spec.for_provider.image = "nginx:1.26"

        results = await state_engine.reconcile()

        assert results[0].action == "recreated"
        assert record.get_external_name() != old_id
        assert old_id not in engine.containers
        assert engine.containers[record.get_external_name()]["Config"]["Image"] == "nginx:1.26"

    async def test_failure_isolated_per_record(self, engine, registry):
        """Test that one failing record does not stop the others."""
        broken = Container.model_validate({
            "metadata": {"name": "broken"},
            "spec": {"forProvider": {"image": "x", "resources": {"limits": {"memory": "lots"}}}},
        })
        state_engine = StateEngine(make_manager(broken, volume()), registry)

        results = await state_engine.reconcile()

        outcome = {result.key: result for result in results}
        assert outcome["Container/default/broken"].failed
        assert outcome["Volume/default/data"].action == "created"

    async def test_observe_all(self, engine, registry):
        records = [container(), volume(), container("gone", ensure="absent")]
        state_engine = StateEngine(make_manager(*records), registry)
        await state_engine.reconcile()

        observations = await state_engine.observe_all()

        assert set(observations) == {"Container/default/web", "Volume/default/data"}
        assert all(observation.up_to_date for observation in observations.values())


@pytest.mark.asyncio
class TestStateEngineActions:
    """Test action selection with mocked providers."""

    async def test_update_called_for_drift(self):
        provider = Mock()
        provider.observe = AsyncMock(return_value=Observation(ProviderStatus.DRIFTED, ["label x"]))
        provider.update = AsyncMock()
        registry = Mock()
        registry.get_provider.return_value = provider
        state_engine = StateEngine(make_manager(volume()), registry)

        results = await state_engine.reconcile()

        assert results[0].action == "updated"
        provider.update.assert_awaited_once()

    async def test_unknown_kind(self):
        registry = Mock()
        registry.get_provider.return_value = None
        state_engine = StateEngine(make_manager(volume()), registry)

        results = await state_engine.reconcile()

        assert results[0].failed

    async def test_update_not_supported_propagates_without_recreate(self):
        provider = Mock()
        provider.observe = AsyncMock(return_value=Observation(ProviderStatus.DRIFTED))
        provider.update = AsyncMock(side_effect=UpdateNotSupportedError("no"))
        provider.delete = AsyncMock()
        registry = Mock()
        registry.get_provider.return_value = provider
        state_engine = StateEngine(make_manager(container()), registry)

        results = await state_engine.reconcile()

        assert results[0].failed
        provider.delete.assert_not_awaited()
