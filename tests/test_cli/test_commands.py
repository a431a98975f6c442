"""Tests for CLI command implementations."""

import io

import pytest
from unittest.mock import patch
from rich.console import Console

from convoy.cli.commands import reconcile_resources, show_status


@pytest.fixture
def config_dir(tmp_path):
    """Create a config directory with one stack and one volume."""
    (tmp_path / "config.yaml").write_text("agent:\n  state_dir: ./state\n")
    (tmp_path / "resources").mkdir()
    (tmp_path / "resources" / "app.yaml").write_text("""
kind: Volume
metadata:
  name: cache
spec:
  forProvider: {}
---
kind: ComposeStack
metadata:
  name: shop
spec:
  forProvider:
    compose: |
      services:
        web:
          image: nginx:1.25
""")
    return tmp_path


@pytest.fixture
def output():
    """Capture rich output at a width that avoids wrapping."""
    buffer = io.StringIO()
    with patch("convoy.cli.commands.console", Console(file=buffer, width=200)):
        yield buffer


@pytest.mark.asyncio
class TestReconcileCommand:
    """Tests for the one-shot reconcile and status commands."""

    async def test_reconcile_persists_state(self, config_dir, engine, output):
        """Test that a pass creates everything and writes the state file."""
        with patch("convoy.cli.commands.DockerEngineClient", return_value=engine):
            succeeded = await reconcile_resources(config_dir, quiet=True)

        assert succeeded is True
        assert engine.connected is True
        assert engine.closed is True
        assert "cache" in engine.volumes
        assert len(engine.containers) == 1
        state = (config_dir / "state" / "state.yaml").read_text()
        assert "Volume/default/cache" in state
        assert "ComposeStack/default/shop" in state
        assert "created" in output.getvalue()

    async def test_reconcile_reports_failure(self, config_dir, engine, output):
        (config_dir / "resources" / "bad.yaml").write_text("""
kind: Container
metadata:
  name: bad
spec:
  forProvider:
    image: x
    resources:
      limits:
        memory: lots
""")
        with patch("convoy.cli.commands.DockerEngineClient", return_value=engine):
            succeeded = await reconcile_resources(config_dir, quiet=True)

        assert succeeded is False
        assert "invalid size 'lots'" in output.getvalue()

    async def test_status_after_reconcile(self, config_dir, engine, output):
        with patch("convoy.cli.commands.DockerEngineClient", return_value=engine):
            await reconcile_resources(config_dir, quiet=True)
            await show_status(config_dir)

        text = output.getvalue()
        assert "Volume/default/cache" in text
        assert "ComposeStack/default/shop" in text
