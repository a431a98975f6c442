"""Base provider interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List

from convoy.models.meta import ManagedResource


class ProviderStatus(Enum):
    """Observed resource status."""
    ABSENT = "absent"
    UP_TO_DATE = "up-to-date"
    DRIFTED = "drifted"


@dataclass
class Observation:
    """Result of observing one record against the engine."""
    status: ProviderStatus
    reasons: List[str] = field(default_factory=list)

    @classmethod
    def absent(cls) -> "Observation":
        return cls(ProviderStatus.ABSENT)

    @property
    def exists(self) -> bool:
        return self.status != ProviderStatus.ABSENT

    @property
    def up_to_date(self) -> bool:
        return self.status == ProviderStatus.UP_TO_DATE


class BaseProvider(ABC):
    """Lifecycle controller interface that all providers must implement."""

    kind: str = ""

    @abstractmethod
    async def initialize(self, config: Any, registry: Any) -> None:
        """Initialize the provider with configuration and registry."""
        pass

    @abstractmethod
    async def observe(self, record: ManagedResource) -> Observation:
        """Refresh the record's status and report existence and convergence."""
        pass

    @abstractmethod
    async def create(self, record: ManagedResource) -> None:
        """Create the engine object and bind it to the record."""
        pass

    @abstractmethod
    async def update(self, record: ManagedResource) -> None:
        """Bring a drifted engine object back in line with the record."""
        pass

    @abstractmethod
    async def delete(self, record: ManagedResource) -> None:
        """Remove the engine object bound to the record."""
        pass
