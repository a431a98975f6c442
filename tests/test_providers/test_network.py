"""Tests for network provider."""

import pytest

from convoy.models.network import Network
from convoy.providers.base import ProviderStatus
from convoy.providers.network import NetworkProvider


def make_network(name="backend", **params) -> Network:
    return Network.model_validate({"metadata": {"name": name}, "spec": {"forProvider": params}})


@pytest.mark.asyncio
class TestNetworkProvider:
    """Test network provider."""

    async def test_create_binds_network_id(self, engine):
        """Test that the engine ID becomes the external name."""
        provider = NetworkProvider(engine)
        record = make_network(internal=True)

        await provider.create(record)

        network_id = record.get_external_name()
        assert engine.networks[network_id]["Name"] == "backend"
        assert engine.networks[network_id]["Driver"] == "bridge"
        assert record.status.at_provider.internal is True

    async def test_observe_after_create_is_up_to_date(self, engine):
        provider = NetworkProvider(engine)
        record = make_network(labels={"env": "test"})

        await provider.create(record)
        observation = await provider.observe(record)

        assert observation.status == ProviderStatus.UP_TO_DATE

    async def test_observe_driver_drift(self, engine):
        provider = NetworkProvider(engine)
        record = make_network()
        await provider.create(record)
        record.spec.for_provider.driver = "overlay"

        observation = await provider.observe(record)

        assert observation.status == ProviderStatus.DRIFTED

    async def test_delete_missing_network_succeeds(self, engine):
        record = make_network()
        record.set_external_name("gone")

        await NetworkProvider(engine).delete(record)

    async def test_delete(self, engine):
        provider = NetworkProvider(engine)
        record = make_network()
        await provider.create(record)

        await provider.delete(record)

        assert engine.networks == {}
