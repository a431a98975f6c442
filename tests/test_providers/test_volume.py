"""Tests for volume provider."""

import pytest

from convoy.models.volume import Volume
from convoy.providers.base import ProviderStatus
from convoy.providers.volume import VolumeProvider


def make_volume(name="data", **params) -> Volume:
    return Volume.model_validate({"metadata": {"name": name}, "spec": {"forProvider": params}})


@pytest.mark.asyncio
class TestVolumeProvider:
    """Test volume provider."""

    async def test_create_defaults_name_and_driver(self, engine):
        """Test that the record name and local driver are used by default."""
        provider = VolumeProvider(engine)
        record = make_volume("data")

        await provider.create(record)

        assert record.get_external_name() == "data"
        assert engine.volumes["data"]["Driver"] == "local"
        assert record.status.at_provider.mountpoint == "/var/lib/docker/volumes/data/_data"

    async def test_observe_after_create_is_up_to_date(self, engine):
        provider = VolumeProvider(engine)
        record = make_volume(name="pg", labels={"tier": "db"})

        await provider.create(record)
        observation = await provider.observe(record)

        assert observation.status == ProviderStatus.UP_TO_DATE

    async def test_observe_label_drift(self, engine):
        provider = VolumeProvider(engine)
        record = make_volume()
        await provider.create(record)
        record.spec.for_provider.labels = {"tier": "db"}

        observation = await provider.observe(record)

        assert observation.status == ProviderStatus.DRIFTED

    async def test_observe_unbound(self, engine):
        observation = await VolumeProvider(engine).observe(make_volume())

        assert observation.status == ProviderStatus.ABSENT

    async def test_delete(self, engine):
        provider = VolumeProvider(engine)
        record = make_volume()
        await provider.create(record)

        await provider.delete(record)

        assert engine.volumes == {}
        assert ("volume_remove", "data", True) in engine.calls

    async def test_delete_missing_volume_succeeds(self, engine):
        record = make_volume()
        record.set_external_name("data")

        await VolumeProvider(engine).delete(record)
