"""Command implementations for CLI."""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Dict, List, Optional

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from convoy.agent.config import ConfigManager
from convoy.agent.engine import StateEngine
from convoy.builders.container import build_container_request
from convoy.clients.docker import DockerEngineClient
from convoy.compose.parser import decompose
from convoy.errors import ConvoyError
from convoy.models.meta import TYPE_READY
from convoy.providers import ProviderRegistry, StackProvider
from convoy.resolvers import resolve_env


console = Console()


@asynccontextmanager
async def open_session(config_dir: Path):
    """Load configuration and connect to the engine."""
    manager = ConfigManager(config_dir)
    await manager.load()

    engine = DockerEngineClient(manager.config.engine)
    await engine.connect()
    try:
        registry = ProviderRegistry(engine, manager.resolver)
        await registry.initialize(manager.config)
        yield manager, registry
    finally:
        await engine.close()


def _ready(record) -> str:
    condition = record.status.get_condition(TYPE_READY)
    if condition is None:
        return "-"
    color = "green" if condition.status == "True" else "yellow"
    text = condition.reason + (f": {condition.message}" if condition.message else "")
    return f"[{color}]{text}[/{color}]"


async def reconcile_resources(config_dir: Path, quiet: bool = False) -> bool:
    """Run one reconciliation pass and persist state. Returns success."""
    async with open_session(config_dir) as (manager, registry):
        engine = StateEngine(manager, registry, manager.config.agent.recreate_on_drift)
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            disable=quiet,
        ) as progress:
            task = progress.add_task("Reconciling...", total=None)
            try:
                results = await engine.reconcile()
            finally:
                await manager.save_state()
            progress.update(task, completed=True)

    table = Table(title="Reconciliation")
    table.add_column("Record", style="cyan")
    table.add_column("Action")
    table.add_column("Error", style="red")
    for result in results:
        action = f"[red]{result.action}[/red]" if result.failed else f"[green]{result.action}[/green]"
        table.add_row(result.key, action, result.error or "")
    console.print(table)

    return not any(result.failed for result in results)


async def show_status(config_dir: Path, kind: Optional[str] = None):
    """Observe every record and print its state."""
    async with open_session(config_dir) as (manager, registry):
        engine = StateEngine(manager, registry)
        observations = await engine.observe_all()

        table = Table(title="Status")
        table.add_column("Record", style="cyan")
        table.add_column("External name", style="dim")
        table.add_column("Exists")
        table.add_column("Up to date")
        table.add_column("Ready")
        table.add_column("Details", style="dim")

        for key, observation in observations.items():
            record = manager.records[key]
            if kind and record.kind != kind:
                continue
            if observation is None:
                table.add_row(key, record.get_external_name() or "", "?", "?", "[red]error[/red]", "")
                continue
            table.add_row(
                key,
                record.get_external_name() or "",
                "[green]●[/green]" if observation.exists else "[red]○[/red]",
                "[green]●[/green]" if observation.up_to_date else "[yellow]○[/yellow]",
                _ready(record),
                "; ".join(observation.reasons),
            )
        console.print(table)


async def validate_config(config_dir: Path) -> bool:
    """Load and dry-build every record without touching the engine."""
    manager = ConfigManager(config_dir)
    await manager.load()
    errors = list(manager.errors)

    stacks = StackProvider(resolver=manager.resolver)
    for key, record in manager.records.items():
        try:
            if record.kind == "Container":
                params = record.spec.for_provider
                resolved = await resolve_env(manager.resolver, params.env, record.metadata.namespace)
                build_container_request(params, resolved)
            elif record.kind == "ComposeStack":
                decomposition = await stacks.load(record)
                decomposition.creation_order()
        except ConvoyError as e:
            errors.append(f"{key}: {e}")

    if errors:
        for error in errors:
            console.print(f"[red]✗[/red] {error}")
        return False

    console.print(f"[green]✓[/green] Configuration is valid ({len(manager.records)} records)")
    return True


def decompose_document(
    path: Path,
    project: str,
    environment: Dict[str, str],
    working_dir: Optional[str] = None,
):
    """Print what a stack document decomposes into."""
    decomposition = decompose(path.read_text(), project, environment, working_dir)

    table = Table(title=f"Services of {project}")
    table.add_column("Service", style="cyan")
    table.add_column("Containers")
    table.add_column("Image", style="magenta")
    table.add_column("Depends on")
    for definition in decomposition.services:
        table.add_row(
            definition.name,
            ", ".join(definition.container_names()),
            definition.parameters.image,
            ", ".join(decomposition.dependencies.get(definition.service, [])),
        )
    console.print(table)

    if decomposition.networks or decomposition.volumes:
        table = Table(title="Networks and volumes")
        table.add_column("Kind")
        table.add_column("Name", style="cyan")
        table.add_column("Driver")
        table.add_column("External")
        for network in decomposition.networks:
            table.add_row("network", network.name, network.parameters.driver or "bridge", "yes" if network.external else "")
        for volume in decomposition.volumes:
            table.add_row("volume", volume.name, volume.parameters.driver or "local", "yes" if volume.external else "")
        console.print(table)

    order: List[str] = decomposition.creation_order()
    console.print(f"Creation order: {' → '.join(order)}")
    if decomposition.version:
        console.print(f"Document version: {decomposition.version}")
