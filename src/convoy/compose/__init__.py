"""Stack document decomposition."""

from convoy.compose.overrides import apply_overrides
from convoy.compose.parser import (
    PROJECT_LABEL,
    SERVICE_LABEL,
    NetworkDefinition,
    ServiceDefinition,
    StackDecomposition,
    VolumeDefinition,
    container_name,
    decompose,
    order_services,
    resource_name,
)

__all__ = [
    "PROJECT_LABEL",
    "SERVICE_LABEL",
    "NetworkDefinition",
    "ServiceDefinition",
    "StackDecomposition",
    "VolumeDefinition",
    "apply_overrides",
    "container_name",
    "decompose",
    "order_services",
    "resource_name",
]
