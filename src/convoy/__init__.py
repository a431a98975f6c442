"""
Convoy - declarative Docker resource reconciliation.

Containers, volumes, networks and compose stacks are described as records
and driven toward their declared state against a Docker engine.
"""

__version__ = "0.1.0"

# Re-export key components for easier access
from convoy.models.config import ConvoyConfig
from convoy.models.container import Container
from convoy.models.network import Network
from convoy.models.stack import ComposeStack
from convoy.models.volume import Volume

__all__ = [
    "ComposeStack",
    "Container",
    "ConvoyConfig",
    "Network",
    "Volume",
]
