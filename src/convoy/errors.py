"""Exceptions raised by reconciliation."""

from typing import Optional


class ConvoyError(Exception):
    """Base exception for all reconciliation errors."""

    pass


class EngineError(ConvoyError):
    """Exception raised when a container engine call fails."""

    def __init__(self, operation: str, resource_id: Optional[str], cause: object):
        self.operation = operation
        self.resource_id = resource_id
        self.cause = cause
        target = f" {resource_id}" if resource_id else ""
        super().__init__(f"{operation}{target}: {cause}")


class NotFoundError(EngineError):
    """Exception raised when the engine reports an object does not exist."""

    pass


class BuildError(ConvoyError):
    """Exception raised when a spec cannot be turned into an engine request."""

    pass


class UpdateNotSupportedError(ConvoyError):
    """Exception raised when an existing object cannot be updated in place."""

    pass


class DependencyCycleError(ConvoyError):
    """Exception raised when stack services depend on each other in a cycle."""

    def __init__(self, services):
        self.services = list(services)
        super().__init__(f"dependency cycle between services: {', '.join(self.services)}")


class StackDocumentError(ConvoyError):
    """Exception raised when a stack document cannot be decomposed."""

    pass


class ReferenceNotFoundError(ConvoyError):
    """Exception raised when a config map or secret reference cannot be resolved."""

    pass
