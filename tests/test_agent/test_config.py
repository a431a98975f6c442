"""Tests for agent configuration management."""

import base64
import logging

import pytest
from unittest.mock import AsyncMock, patch

from convoy.agent.config import ConfigManager
from convoy.models.meta import EXTERNAL_NAME_ANNOTATION, available


@pytest.fixture
def config_dir(tmp_path):
    """Create a temporary config directory structure."""
    (tmp_path / "resources").mkdir()
    (tmp_path / "refs").mkdir()

    (tmp_path / "config.yaml").write_text("""
agent:
  log_level: debug
  state_dir: ./state
engine:
  stop_timeout: 2
""")
    (tmp_path / "resources" / "web.yaml").write_text("""
kind: Volume
metadata:
  name: static
spec:
  forProvider:
    labels:
      app: web
---
kind: Container
metadata:
  name: web
spec:
  forProvider:
    image: nginx:1.25
    env:
      - name: PASSWORD
        valueFrom:
          secretKeyRef:
            name: db
            key: password
""")
    password = base64.b64encode(b"hunter2").decode()
    (tmp_path / "refs" / "refs.yaml").write_text(f"""
kind: Secret
metadata:
  name: db
data:
  password: {password}
stringData:
  user: admin
---
kind: ConfigMap
metadata:
  name: settings
  namespace: shop
data:
  workers: 4
""")
    return tmp_path


@pytest.mark.asyncio
class TestConfigManager:
    """Test ConfigManager async operations."""

    async def test_load_config(self, config_dir):
        """Test that the main config and records are loaded."""
        manager = ConfigManager(config_dir)

        await manager.load()

        assert manager.config.agent.log_level == "DEBUG"
        assert manager.config.engine.stop_timeout == 2
        assert sorted(manager.records) == ["Container/default/web", "Volume/default/static"]
        assert manager.errors == []

    async def test_missing_main_config(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            await ConfigManager(tmp_path).load()

    async def test_references_loaded(self, config_dir):
        """Test that secrets are base64-decoded and config map values stringified."""
        manager = ConfigManager(config_dir)
        await manager.load()

        assert await manager.resolver.get_secret_value("default", "db", "password") == "hunter2"
        assert await manager.resolver.get_secret_value("default", "db", "user") == "admin"
        assert await manager.resolver.get_config_map_value("shop", "settings", "workers") == "4"

    async def test_invalid_records_collected(self, config_dir):
        (config_dir / "resources" / "bad.yaml").write_text("""
kind: Gadget
metadata:
  name: x
---
kind: Container
metadata:
  name: broken
spec:
  forProvider: {}
---
kind: Volume
metadata:
  name: static
spec:
  forProvider: {}
""")
        manager = ConfigManager(config_dir)

        await manager.load()

        assert len(manager.errors) == 3
        assert any("Unknown kind" in error for error in manager.errors)
        assert any("Duplicate record Volume/default/static" in error for error in manager.errors)
        assert len(manager.records) == 2

    async def test_state_round_trip(self, config_dir):
        """Test that markers and conditions survive a save and reload."""
        manager = ConfigManager(config_dir)
        await manager.load()
        record = manager.get_record("Container", "web")
        record.set_external_name("abc123")
        record.status.set_conditions(available())

        await manager.save_state()
        assert (config_dir / "state" / "state.yaml").exists()

        reloaded = ConfigManager(config_dir)
        await reloaded.load()
        restored = reloaded.get_record("Container", "web")
        assert restored.metadata.annotations[EXTERNAL_NAME_ANNOTATION] == "abc123"
        assert restored.status.get_condition("Ready").reason == "Available"

    async def test_state_of_removed_record_kept(self, config_dir, caplog):
        """Test that a marker survives when its record file is deleted."""
        manager = ConfigManager(config_dir)
        await manager.load()
        manager.get_record("Container", "web").set_external_name("abc123")
        await manager.save_state()

        (config_dir / "resources" / "web.yaml").unlink()
        reloaded = ConfigManager(config_dir)
        with caplog.at_level(logging.WARNING, logger="convoy.agent.config"):
            await reloaded.load()
        await reloaded.save_state()

        assert reloaded.get_record("Container", "web") is None
        assert "Container/default/web has no matching record" in caplog.text
        assert "abc123" in caplog.text
        assert "abc123" in (config_dir / "state" / "state.yaml").read_text()

    async def test_read_yaml_threading(self, config_dir):
        """Test that YAML reading is offloaded to a thread."""
        manager = ConfigManager(config_dir)
        test_file = config_dir / "test.yaml"
        test_file.write_text("key: value")

        with patch("asyncio.to_thread", new_callable=AsyncMock) as mock_to_thread:
            mock_to_thread.return_value = "key: value"

            result = await manager._read_yaml(test_file)

            assert result == {"key": "value"}
            mock_to_thread.assert_called_once()

    async def test_invalid_yaml_document(self, config_dir):
        (config_dir / "resources" / "broken.yaml").write_text("kind: [unclosed")
        manager = ConfigManager(config_dir)

        await manager.load()

        assert any("broken.yaml" in error for error in manager.errors)
