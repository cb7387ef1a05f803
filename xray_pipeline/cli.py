"""
xray-pipeline CLI.

Command-line interface for host mapping, package unpacking and geolocation.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from .core.config import DEFAULT_CONFIG_PATH, Config, load_config, validate_directories
from .core.exceptions import ConfigurationError, XrayError
from .core.logging import setup_logging

app = typer.Typer(
    name="xray-pipeline",
    help="App artifact handling and host-to-company attribution",
    add_completion=False,
)

console = Console()

CfgOption = typer.Option(
    DEFAULT_CONFIG_PATH,
    "--cfg",
    "-c",
    help="Config file location",
)


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        from . import __version__
        console.print(f"xray-pipeline v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """xray-pipeline: package artifacts and host attribution."""


def _startup(cfg_file: Path) -> Config:
    """Load and validate configuration; any failure ends the process."""
    try:
        config = load_config(cfg_file)
        validate_directories(config)
    except ConfigurationError as e:
        console.print(f"[bold red]Failed to read config:[/bold red] {e}")
        raise typer.Exit(1)

    setup_logging(config)
    return config


@app.command("map-hosts")
def map_hosts(
    cfg_file: Path = CfgOption,
    store_dir: Optional[Path] = typer.Option(
        None,
        "--store",
        help="Host store directory (defaults to <datadir>/store)",
    ),
) -> None:
    """Map every recorded app host to its company and store the results."""
    config = _startup(cfg_file)

    async def run_async() -> None:
        from .orchestration import MappingOrchestrator
        from .services.attribution import AttributionClient
        from .storage import LocalHostStore

        store = LocalHostStore(store_dir or config.data_dir / "store")
        async with AttributionClient(config) as client:
            report = await MappingOrchestrator(store, client).run()

        table = Table(title="Host Mapping")
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="green")
        table.add_row("Records", str(report.records_seen))
        table.add_row("Hosts attempted", str(report.hosts_attempted))
        table.add_row("Mappings stored", str(report.mappings_stored))
        table.add_row("Failures", str(len(report.failures)))
        if report.failed_hosts:
            table.add_row("Failed hosts", ", ".join(report.failed_hosts))
        console.print(table)

        for failure in report.failures:
            target = failure.host_name or f"record {failure.app_host_id}"
            console.print(f"  [red]✗[/red] {target}: {failure.kind.value}")

    try:
        asyncio.run(run_async())
    except XrayError as e:
        console.print(f"[bold red]Host mapping failed:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def unpack(
    apk_path: Path = typer.Argument(
        ...,
        help="Path to the package to unpack",
        file_okay=True,
        dir_okay=False,
        resolve_path=True,
    ),
    cfg_file: Path = CfgOption,
    keep: bool = typer.Option(
        False,
        "--keep",
        help="Keep the artifact directory instead of removing it",
    ),
) -> None:
    """Unpack a package with apktool and report where it went."""
    config = _startup(cfg_file)

    async def run_async() -> None:
        from .models import App
        from .services.artifacts import ArtifactManager

        manager = ArtifactManager(config)
        app_ = App.by_path(apk_path)
        try:
            out_dir = await manager.unpack(app_)
            console.print(f"[bold green]✓ Unpacked to[/bold green] {out_dir}")
        finally:
            if not keep:
                await manager.cleanup(app_)

    try:
        asyncio.run(run_async())
    except XrayError as e:
        console.print(f"[bold red]Unpack failed:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def geoip(
    host: str = typer.Argument(..., help="Hostname to geolocate"),
    cfg_file: Path = CfgOption,
) -> None:
    """Geolocate every address a hostname resolves to."""
    config = _startup(cfg_file)

    async def run_async() -> None:
        from .services.attribution import AttributionClient

        async with AttributionClient(config) as client:
            locations = await client.geo_lookup(None, host)

        table = Table(title=f"GeoIP: {host}")
        table.add_column("IP", style="cyan")
        table.add_column("Country")
        table.add_column("Region")
        table.add_column("City")
        for loc in locations:
            table.add_row(loc.ip, loc.country_name, loc.region_name, loc.city)
        console.print(table)

    try:
        asyncio.run(run_async())
    except XrayError as e:
        console.print(f"[bold red]Lookup failed:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def config(cfg_file: Path = CfgOption) -> None:
    """Show the effective configuration."""
    try:
        cfg = load_config(cfg_file)
    except ConfigurationError as e:
        console.print(f"[bold red]Failed to read config:[/bold red] {e}")
        raise typer.Exit(1)

    table = Table(title="Current Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    table.add_row("App directory", str(cfg.app_dir))
    table.add_row("Unpacked app directory", str(cfg.unpack_dir))
    table.add_row("Message socket path", str(cfg.sock_path))
    table.add_row("Attribution endpoint", cfg.attribution.endpoint)
    table.add_row("GeoIP host", cfg.geoip_host)
    table.add_row("Database", f"{cfg.db.user}@{cfg.db.host}:{cfg.db.port}/{cfg.db.database}")
    table.add_row("Log Level", cfg.log_level)

    console.print(table)

    console.print("\n[dim]Override via environment variables:[/dim]")
    console.print("  XRAY_LOG_LEVEL, XRAY_ATTRIBUTION_ENDPOINT, XRAY_GEOIP_HOST, XRAY_UNPACK_DIR")


if __name__ == "__main__":
    app()
