"""Typer CLI: scope checks, discovery runs, name resolution and graph import."""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import TYPE_CHECKING, Any

import typer
import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from scopegraph import __version__
from scopegraph.assets.models import AssetType, BaseAsset, parse_asset
from scopegraph.assets.relations import RelationType
from scopegraph.errors import NoAddressesError, ScopeGraphError

if TYPE_CHECKING:
    from scopegraph.assets.relations import StoredAsset
    from scopegraph.config import Settings
    from scopegraph.core.registry import PluginRegistry

app = typer.Typer(
    name="scopegraph",
    help="scopegraph — attack-surface scope matching and address resolution",
    no_args_is_help=True,
)
console = Console()

# Field carrying the command-line VALUE for each checkable kind.
_VALUE_FIELDS = {
    AssetType.FQDN: "name",
    AssetType.IP_ADDRESS: "address",
    AssetType.NETBLOCK: "cidr",
    AssetType.AUTONOMOUS_SYSTEM: "number",
    AssetType.ORGANIZATION: "name",
    AssetType.EMAIL_ADDRESS: "address",
    AssetType.URL: "url",
    AssetType.DOMAIN_RECORD: "domain",
}


def _setup_logging(verbose: bool = False, config_level: str | None = None) -> None:
    if verbose:
        level = logging.DEBUG
    elif config_level:
        level = getattr(logging, config_level.upper(), logging.INFO)
    else:
        level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def build_asset(kind: str, value: str) -> BaseAsset:
    """Build an asset of ``kind`` from a single command-line value."""
    try:
        asset_type = AssetType(kind)
    except ValueError:
        raise typer.BadParameter(f"Unsupported kind: {kind}") from None
    field = _VALUE_FIELDS.get(asset_type)
    if field is None:
        raise typer.BadParameter(f"Unsupported kind: {kind}")
    try:
        return parse_asset({"asset_type": asset_type, field: value})
    except ValidationError as e:
        raise typer.BadParameter(f"Invalid {kind} value {value!r}: {e.errors()[0]['msg']}") from None


@app.command()
def check(
    kind: str = typer.Argument(help="Asset kind, e.g. fqdn, ip_address, netblock"),
    value: str = typer.Argument(help="Value to test against the configured scope"),
    config: str | None = typer.Option(None, help="Path to config YAML"),
    confidence: int = typer.Option(0, min=0, max=100, help="Minimum accuracy (0 = any)"),
    verbose: bool = typer.Option(False, "-v", "--verbose"),
):
    """Report whether a value falls inside the configured scope."""
    from scopegraph.config import Settings
    from scopegraph.scope import Scope

    settings = Settings.load(config)
    _setup_logging(verbose, config_level=settings.log_level)

    asset = build_asset(kind, value)
    match, accuracy = Scope.from_settings(settings.scope).is_in_scope(asset, confidence)
    if match is None:
        console.print(f"[yellow]{value}[/] is [bold]out of scope[/]")
        raise typer.Exit(1)
    matched = ", ".join(f"{k}={v}" for k, v in match.key_fields().items())
    console.print(
        f"[green]{value}[/] is in scope: matched {match.asset_type} {matched} "
        f"(accuracy {accuracy})"
    )


@app.command()
def resolve(
    names: list[str] = typer.Argument(help="Hostnames to resolve"),
    db: str = typer.Option("scopegraph.db", help="Path to the SQLite asset graph"),
    since_hours: float = typer.Option(
        0, "--since-hours", help="Only use relations seen in the last N hours (0 = all)",
    ),
    verbose: bool = typer.Option(False, "-v", "--verbose"),
):
    """Resolve hostnames to addresses from the asset graph."""
    _setup_logging(verbose)

    since = datetime.now(UTC) - timedelta(hours=since_hours) if since_hours > 0 else None
    try:
        pairs = asyncio.run(_resolve(db, names, since))
    except NoAddressesError as e:
        console.print(f"[red]{e}[/]")
        raise typer.Exit(1) from None
    except ScopeGraphError as e:
        console.print(f"[red]Error:[/] {e}")
        raise typer.Exit(2) from None

    table = Table(title="Resolved Addresses")
    table.add_column("Name", style="cyan")
    table.add_column("Address", style="green")
    table.add_column("Family", style="dim")
    for pair in sorted(pairs, key=lambda p: (p.fqdn.name, p.addr.address)):
        table.add_row(pair.fqdn.name, pair.addr.address, pair.addr.type)
    console.print(table)


async def _resolve(db: str, names: list[str], since: datetime | None) -> list[Any]:
    from scopegraph.graph import SQLiteAssetStore
    from scopegraph.resolve import resolve_addresses

    async with await SQLiteAssetStore.open(db) as store:
        return await resolve_addresses(store, names, since)


@app.command()
def discover(
    config: str | None = typer.Option(None, help="Path to config YAML"),
    plugin: list[str] | None = typer.Option(
        None, "--plugin", "-p", help="Run only these plugins (repeatable; default all)",
    ),
    verbose: bool = typer.Option(False, "-v", "--verbose"),
):
    """Run discovery plugins against the configured scope domains."""
    from scopegraph.config import Settings
    from scopegraph.core.registry import PluginRegistry

    settings = Settings.load(config)
    _setup_logging(verbose, config_level=settings.log_level)

    if not settings.scope.domains:
        console.print("[red]No scope domains configured[/]")
        raise typer.Exit(1)

    registry = PluginRegistry()
    registry.discover()
    if plugin:
        unknown = sorted(set(plugin) - set(registry.names))
        if unknown:
            raise typer.BadParameter(f"Unknown plugin(s): {', '.join(unknown)}")
        selected = PluginRegistry()
        for name in plugin:
            selected.register(registry.get(name))
        registry = selected

    try:
        found = asyncio.run(_discover(settings, registry))
    except ScopeGraphError as e:
        console.print(f"[red]Error:[/] {e}")
        raise typer.Exit(2) from None

    if not found:
        console.print("[yellow]No names discovered[/]")
        return
    table = Table(title="Discovered Names")
    table.add_column("Name", style="cyan")
    for name in sorted(s.asset.name for s in found):
        table.add_row(name)
    console.print(table)
    console.print(f"[green]Discovered {len(found)} names with {', '.join(registry.names)}[/]")


async def _discover(settings: Settings, registry: PluginRegistry) -> list[StoredAsset]:
    from scopegraph.assets.models import FQDN
    from scopegraph.core.session import Session

    async with await Session.create(settings) as session:
        seeds = [FQDN(name=domain) for domain in session.scope.domains()]
        return await registry.run(session, seeds)


@app.command(name="import")
def import_graph(
    file: Path = typer.Argument(help="YAML/JSON list of {from, relation, to} records"),
    db: str = typer.Option("scopegraph.db", help="Path to the SQLite asset graph"),
    verbose: bool = typer.Option(False, "-v", "--verbose"),
):
    """Load assets and relations into the SQLite asset graph."""
    _setup_logging(verbose)

    if not file.exists():
        console.print(f"[red]File not found: {file}[/]")
        raise typer.Exit(1)
    records = yaml.safe_load(file.read_text(encoding="utf-8")) or []
    if not isinstance(records, list):
        console.print("[red]Expected a list of records[/]")
        raise typer.Exit(1)

    try:
        count = asyncio.run(_import(db, records))
    except (ValidationError, ValueError, KeyError) as e:
        console.print(f"[red]Invalid record:[/] {e}")
        raise typer.Exit(1) from None
    console.print(f"[green]Imported {count} relations into {db}[/]")


async def _import(db: str, records: list[dict[str, Any]]) -> int:
    from scopegraph.graph import SQLiteAssetStore

    async with await SQLiteAssetStore.open(db) as store:
        for record in records:
            src = await store.create_asset(parse_asset(record["from"]))
            dst = await store.create_asset(parse_asset(record["to"]))
            await store.create_relation(RelationType(record["relation"]), src, dst)
    return len(records)


@app.command()
def version():
    """Show version."""
    console.print(f"scopegraph v{__version__}")


if __name__ == "__main__":
    app()
