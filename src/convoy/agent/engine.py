"""State reconciliation engine."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

from convoy.agent.config import ConfigManager
from convoy.errors import UpdateNotSupportedError
from convoy.models.meta import ManagedResource, reconcile_error, reconcile_success
from convoy.providers import Observation, ProviderRegistry


logger = logging.getLogger(__name__)

# Records a kind depends on come earlier; deletion runs in reverse
KIND_ORDER = ["Volume", "Network", "Container", "ComposeStack"]


@dataclass
class ReconcileResult:
    """Outcome of reconciling one record."""
    key: str
    action: str
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


class StateEngine:
    """Runs one observe and act pass over every record."""

    def __init__(
        self,
        config_manager: ConfigManager,
        provider_registry: ProviderRegistry,
        recreate_on_drift: bool = False,
    ):
        """Initialize state engine."""
        self.config_manager = config_manager
        self.provider_registry = provider_registry
        self.recreate_on_drift = recreate_on_drift
        self.last_reconciliation: Optional[datetime] = None
        self._reconciliation_lock = asyncio.Lock()

    def _ordered(self, records: List[ManagedResource], reverse: bool = False) -> List[ManagedResource]:
        ranked = sorted(
            records,
            key=lambda record: KIND_ORDER.index(record.kind) if record.kind in KIND_ORDER else len(KIND_ORDER),
        )
        return list(reversed(ranked)) if reverse else ranked

    async def reconcile(self) -> List[ReconcileResult]:
        """Perform full state reconciliation."""
        async with self._reconciliation_lock:
            start_time = datetime.now()
            logger.info("Starting state reconciliation")

            records = list(self.config_manager.records.values())
            removals = self._ordered([r for r in records if r.ensure == "absent"], reverse=True)
            present = self._ordered([r for r in records if r.ensure == "present"])

            results = []
            for record in removals + present:
                results.append(await self.reconcile_record(record))

            self.last_reconciliation = datetime.now()
            duration = (self.last_reconciliation - start_time).total_seconds()
            failed = sum(1 for result in results if result.failed)
            logger.info(f"State reconciliation completed in {duration:.2f}s, {failed} failed")
            return results

    async def reconcile_record(self, record: ManagedResource) -> ReconcileResult:
        """Reconcile a single record, recording the outcome on its status."""
        provider = self.provider_registry.get_provider(record.kind)
        if provider is None:
            logger.error(f"No provider for kind {record.kind}")
            return ReconcileResult(record.key, "failed", f"no provider for kind {record.kind}")

        try:
            if record.ensure == "absent":
                logger.info(f"Record {record.key} should be absent, deleting")
                await provider.delete(record)
                record.clear_external_name()
                action = "deleted"
            else:
                observation = await provider.observe(record)
                action = await self._act(provider, record, observation)
            record.status.set_conditions(reconcile_success())
            return ReconcileResult(record.key, action)
        except Exception as e:
            logger.error(f"Failed to reconcile {record.key}: {e}")
            record.status.set_conditions(reconcile_error(str(e)))
            return ReconcileResult(record.key, "failed", str(e))

    async def _act(self, provider, record: ManagedResource, observation: Observation) -> str:
        if not observation.exists:
            logger.info(f"Record {record.key} does not exist, creating")
            await provider.create(record)
            return "created"

        if observation.up_to_date:
            logger.debug(f"Record {record.key} is up to date")
            return "unchanged"

        logger.info(f"Record {record.key} drifted: {'; '.join(observation.reasons)}")
        try:
            await provider.update(record)
            return "updated"
        except UpdateNotSupportedError:
            if not self.recreate_on_drift:
                raise
        logger.info(f"Recreating {record.key}")
        await provider.delete(record)
        record.clear_external_name()
        await provider.create(record)
        return "recreated"

    async def observe_all(self) -> Dict[str, Optional[Observation]]:
        """Observe every present record without acting.

        A record whose observation fails maps to None and carries the error
        in its Synced condition.
        """
        observations = {}
        for record in self._ordered(list(self.config_manager.records.values())):
            if record.ensure == "absent":
                continue
            provider = self.provider_registry.get_provider(record.kind)
            if provider is None:
                continue
            try:
                observations[record.key] = await provider.observe(record)
            except Exception as e:
                logger.error(f"Failed to observe {record.key}: {e}")
                record.status.set_conditions(reconcile_error(str(e)))
                observations[record.key] = None
        return observations
