"""Per-service patches applied on top of a decomposed stack."""

import logging
from typing import Dict

from convoy.compose.parser import PROJECT_LABEL, SERVICE_LABEL, StackDecomposition
from convoy.models.stack import ServiceOverride


logger = logging.getLogger(__name__)


def apply_overrides(decomposition: StackDecomposition, overrides: Dict[str, ServiceOverride]) -> None:
    """Patch services in place.

    Environment entries and labels are merged by name, resources and the
    restart policy replace the document's, and replicas sets the number of
    containers for the service.
    """
    for service, override in overrides.items():
        definition = decomposition.get_service(service)
        if definition is None:
            logger.warning(f"Ignoring override for unknown service {service} in stack {decomposition.project}")
            continue

        params = definition.parameters
        if override.environment:
            names = {entry.name for entry in override.environment}
            params.env = [entry for entry in params.env if entry.name not in names]
            params.env.extend(entry.model_copy() for entry in override.environment)

        if override.labels:
            labels = dict(params.labels)
            labels.update(override.labels)
            # Generated labels identify the stack and cannot be overridden
            labels[PROJECT_LABEL] = decomposition.project
            labels[SERVICE_LABEL] = service
            params.labels = labels

        if override.resources is not None:
            params.resources = override.resources.model_copy(deep=True)

        if override.restart_policy is not None:
            params.restart_policy = override.restart_policy
            if override.restart_policy != "on-failure":
                params.maximum_retry_count = None

        if override.replicas is not None:
            definition.replicas = override.replicas
