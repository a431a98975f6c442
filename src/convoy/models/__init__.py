"""Declarative record models."""

from convoy.models.meta import EXTERNAL_NAME_ANNOTATION, ManagedResource, ObjectMeta
from convoy.models.config import ConvoyConfig
from convoy.models.container import Container, ContainerParameters
from convoy.models.volume import Volume, VolumeParameters
from convoy.models.network import Network, NetworkParameters
from convoy.models.stack import ComposeStack, ComposeStackParameters

RECORD_KINDS = {
    "Container": Container,
    "Volume": Volume,
    "Network": Network,
    "ComposeStack": ComposeStack,
}

__all__ = [
    "EXTERNAL_NAME_ANNOTATION",
    "ManagedResource",
    "ObjectMeta",
    "ConvoyConfig",
    "Container",
    "ContainerParameters",
    "Volume",
    "VolumeParameters",
    "Network",
    "NetworkParameters",
    "ComposeStack",
    "ComposeStackParameters",
    "RECORD_KINDS",
]
