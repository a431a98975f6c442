"""Configuration management for the agent."""

import asyncio
import base64
import binascii
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from convoy.models import RECORD_KINDS
from convoy.models.config import ConvoyConfig
from convoy.models.meta import EXTERNAL_NAME_ANNOTATION, ManagedResource
from convoy.resolvers import StaticReferenceResolver


logger = logging.getLogger(__name__)

STATE_FILE = "state.yaml"


class ConfigManager:
    """Loads records and reference data, and persists record state."""

    def __init__(self, config_dir: Path):
        """Initialize configuration manager."""
        self.config_dir = Path(config_dir)
        self.yaml = YAML(typ="safe", pure=True)
        self.config: Optional[ConvoyConfig] = None
        self.records: Dict[str, ManagedResource] = {}
        self.orphaned_state: Dict[str, Any] = {}
        self.resolver = StaticReferenceResolver()
        self.errors: List[str] = []

    @property
    def state_file(self) -> Path:
        """Path of the persisted state file."""
        state_dir = Path(self.config.agent.state_dir if self.config else "./state")
        if not state_dir.is_absolute():
            state_dir = self.config_dir / state_dir
        return state_dir / STATE_FILE

    async def load(self):
        """Load all configuration files."""
        logger.info(f"Loading configuration from {self.config_dir}")
        self.errors.clear()
        self.orphaned_state.clear()

        await self._load_main_config()
        await self._load_references()
        await self._load_resources()
        await self._load_state()

        logger.info(f"Configuration loaded: {len(self.records)} records")

    async def _load_main_config(self):
        """Load main configuration file."""
        config_file = self.config_dir / "config.yaml"
        if not config_file.exists():
            raise FileNotFoundError(f"Main config not found: {config_file}")

        try:
            data = await self._read_yaml(config_file)
            self.config = ConvoyConfig(**(data or {}))
            logger.debug(f"Loaded main config: {config_file}")
        except ValidationError as e:
            logger.error(f"Invalid main config: {e}")
            raise

    async def _load_references(self):
        """Load config maps and secrets backing value references."""
        refs_dir = self.config_dir / "refs"
        if not refs_dir.exists():
            logger.debug(f"References directory not found: {refs_dir}")
            return

        self.resolver = StaticReferenceResolver()
        for yaml_file in sorted(refs_dir.glob("*.yaml")):
            try:
                for doc in await self._read_yaml_documents(yaml_file):
                    self._add_reference(doc)
                logger.debug(f"Loaded references from {yaml_file}")
            except (ValueError, KeyError) as e:
                self._record_error(f"Error loading {yaml_file}: {e}")

    def _add_reference(self, doc: Dict[str, Any]):
        metadata = doc.get("metadata") or {}
        name = metadata["name"]
        namespace = metadata.get("namespace")
        kind = doc.get("kind")

        if kind == "ConfigMap":
            data = {key: str(value) for key, value in (doc.get("data") or {}).items()}
            self.resolver.add_config_map(name, data, namespace)
        elif kind == "Secret":
            data = {}
            for key, value in (doc.get("data") or {}).items():
                try:
                    data[key] = base64.b64decode(str(value), validate=True).decode()
                except (binascii.Error, UnicodeDecodeError) as e:
                    raise ValueError(f"secret {name} key {key} is not valid base64: {e}") from e
            data.update({key: str(value) for key, value in (doc.get("stringData") or {}).items()})
            self.resolver.add_secret(name, data, namespace)
        else:
            raise ValueError(f"unsupported reference kind {kind!r}")

    async def _load_resources(self):
        """Load record definitions."""
        resources_dir = self.config_dir / "resources"
        if not resources_dir.exists():
            logger.warning(f"Resources directory not found: {resources_dir}")
            return

        self.records.clear()
        for yaml_file in sorted(resources_dir.glob("*.yaml")):
            try:
                docs = await self._read_yaml_documents(yaml_file)
            except ValueError as e:
                self._record_error(f"Error loading {yaml_file}: {e}")
                continue

            for doc in docs:
                kind = doc.get("kind")
                model = RECORD_KINDS.get(kind)
                if model is None:
                    self._record_error(f"Unknown kind {kind!r} in {yaml_file}")
                    continue
                try:
                    record = model.model_validate(doc)
                except ValidationError as e:
                    self._record_error(f"Invalid {kind} in {yaml_file}: {e}")
                    continue
                if record.key in self.records:
                    self._record_error(f"Duplicate record {record.key} in {yaml_file}")
                    continue
                self.records[record.key] = record
            logger.debug(f"Loaded records from {yaml_file}")

    async def _load_state(self):
        """Restore markers and status saved by a previous run."""
        if not self.state_file.exists():
            return

        state = await self._read_yaml(self.state_file) or {}
        for key, saved in state.items():
            record = self.records.get(key)
            if record is None:
                marker = (saved.get("annotations") or {}).get(EXTERNAL_NAME_ANNOTATION)
                if marker:
                    logger.warning(f"State of {key} has no matching record, engine object {marker} is left in place")
                self.orphaned_state[key] = saved
                continue
            annotations = dict(saved.get("annotations") or {})
            annotations.update(record.metadata.annotations)
            record.metadata.annotations = annotations
            if saved.get("status"):
                try:
                    record.status = type(record.status).model_validate(saved["status"])
                except ValidationError as e:
                    logger.warning(f"Discarding unreadable status of {key}: {e}")

    async def save_state(self):
        """Persist markers and status of every record.

        Entries restored for records that no longer exist are written back
        unchanged until their record returns or the entry is removed by hand.
        """
        state = dict(self.orphaned_state)
        state.update({
            key: {
                "annotations": dict(record.metadata.annotations),
                "status": record.status.to_wire(),
            }
            for key, record in self.records.items()
        })
        path = self.state_file
        await asyncio.to_thread(self._write_yaml, path, state)
        logger.debug(f"Saved state of {len(state)} records to {path}")

    def _write_yaml(self, path: Path, data: Dict[str, Any]):
        path.parent.mkdir(parents=True, exist_ok=True)
        yaml = YAML()
        yaml.default_flow_style = False
        with path.open("w") as stream:
            yaml.dump(data, stream)

    async def _read_yaml(self, file_path: Path) -> Any:
        """Read and parse a YAML file."""
        content = await asyncio.to_thread(file_path.read_text)
        try:
            return self.yaml.load(content)
        except YAMLError as e:
            raise ValueError(f"invalid YAML in {file_path}: {e}") from e

    async def _read_yaml_documents(self, file_path: Path) -> List[Dict[str, Any]]:
        """Read every non-empty document of a YAML file."""
        content = await asyncio.to_thread(file_path.read_text)
        try:
            docs = [doc for doc in self.yaml.load_all(content) if doc]
        except YAMLError as e:
            raise ValueError(f"invalid YAML: {e}") from e
        for doc in docs:
            if not isinstance(doc, dict):
                raise ValueError("every document must be a mapping")
        return docs

    def _record_error(self, message: str):
        logger.error(message)
        self.errors.append(message)

    def get_record(self, kind: str, name: str, namespace: Optional[str] = None) -> Optional[ManagedResource]:
        """Get a record by kind and name."""
        return self.records.get(f"{kind}/{namespace or 'default'}/{name}")
