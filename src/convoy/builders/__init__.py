"""Builders turning declarative parameters into engine requests."""

from convoy.builders.container import build_container_request
from convoy.builders.network import build_network_request
from convoy.builders.volume import build_volume_request

__all__ = ["build_container_request", "build_network_request", "build_volume_request"]
