"""Command-line interface for LumenWatch."""

import time
from pathlib import Path

import structlog
import typer
from rich.console import Console
from rich.table import Table

from lumenwatch.config import Settings, load_settings
from lumenwatch.exceptions import ConfigurationError
from lumenwatch.faults import FaultDeriver
from lumenwatch.ingestion import SupabaseSource, TelemetryNormalizer, TelemetrySimulator
from lumenwatch.ingestion.source import TelemetrySource
from lumenwatch.models import FleetSnapshot, LightStatus, MaintenanceAlert, Severity
from lumenwatch.refresh import RefreshLoop
from lumenwatch.storage import Storage

# Configure structured logging
structlog.configure(
    processors=[
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(),
    ]
)

app = typer.Typer(
    name="lumenwatch",
    help="Street light fault detection and predictive maintenance",
    no_args_is_help=True,
)
console = Console()

SEVERITY_STYLE = {
    Severity.HIGH: "[red]HIGH[/red]",
    Severity.MEDIUM: "[yellow]MEDIUM[/yellow]",
    Severity.LOW: "[blue]LOW[/blue]",
}


def _settings() -> Settings:
    try:
        return load_settings()
    except ConfigurationError as e:
        console.print(f"[bold red]{e}[/bold red]")
        raise typer.Exit(code=1) from e


def _build_source(settings: Settings, demo: bool, seed: int | None) -> TelemetrySource:
    if demo or not settings.supabase_url:
        if not demo:
            console.print("[yellow]No LUMENWATCH_SUPABASE_URL set, using simulated telemetry[/yellow]")
        return TelemetrySimulator(seed=seed)
    return SupabaseSource(
        settings.supabase_url,
        api_key=settings.supabase_key,
        table=settings.table,
        timeout=settings.http_timeout,
    )


def _close(source: TelemetrySource) -> None:
    if isinstance(source, SupabaseSource):
        source.close()


def _print_stats(snapshot: FleetSnapshot) -> None:
    stats = snapshot.stats
    console.print(
        f"Total lights: [bold blue]{stats.total}[/bold blue]   "
        f"Normal: [bold green]{stats.normal}[/bold green]   "
        f"Faulty: [bold red]{stats.faulty}[/bold red]   "
        f"Alerts: [bold dark_orange]{stats.alert_count}[/bold dark_orange]"
    )


def _print_alerts(alerts: list[MaintenanceAlert]) -> None:
    if not alerts:
        console.print("[green]No maintenance alerts at this time[/green]")
        return

    table = Table(title="Maintenance Alerts")
    table.add_column("Light", style="cyan")
    table.add_column("Severity", style="bold")
    table.add_column("Type")
    table.add_column("Due")
    table.add_column("Description")

    for alert in alerts:
        table.add_row(
            f"#{alert.pole_id}",
            SEVERITY_STYLE[alert.severity],
            alert.issue_type.value.replace("_", " "),
            alert.predicted_date.isoformat(),
            alert.description,
        )

    console.print(table)


def _print_lights(snapshot: FleetSnapshot) -> None:
    table = Table(title="Live Street Light Data")
    table.add_column("ID", style="cyan")
    table.add_column("Location")
    table.add_column("LDR", justify="right")
    table.add_column("Current (A)", justify="right")
    table.add_column("Status", style="bold")
    table.add_column("Coordinates")
    table.add_column("Last Updated")

    for light in snapshot.lights:
        r = light.reading
        status = (
            "[red]FAULT[/red]" if light.status == LightStatus.FAULT else "[green]NORMAL[/green]"
        )
        table.add_row(
            f"#{r.id}",
            r.location,
            f"{r.ldr_value:.1f}",
            f"{r.current_value:.2f}",
            status,
            f"{r.latitude:.4f}, {r.longitude:.4f}",
            r.reading_time.strftime("%H:%M:%S"),
        )

    console.print(table)


@app.command()
def refresh(
    demo: bool = typer.Option(False, help="Use simulated telemetry instead of the backend"),
    seed: int = typer.Option(None, help="Random seed for simulated telemetry and alert dates"),
    save: bool = typer.Option(True, help="Store the snapshot in the database"),
    db_path: Path = typer.Option(None, help="Database path (default from settings)"),
) -> None:
    """Fetch one batch, classify lights, and derive maintenance alerts."""
    settings = _settings()
    source = _build_source(settings, demo, seed)
    loop = RefreshLoop(
        source,
        normalizer=TelemetryNormalizer(seed=seed),
        deriver=FaultDeriver(seed=seed),
        interval=settings.refresh_interval,
    )

    try:
        snapshot = loop.refresh()
    finally:
        _close(source)

    if snapshot is None:
        console.print(f"[bold red]Error loading data:[/bold red] {loop.last_error}")
        raise typer.Exit(code=1)

    _print_stats(snapshot)
    console.print()
    _print_alerts(snapshot.alerts)
    console.print()
    _print_lights(snapshot)

    if save:
        with Storage(db_path or settings.db_path) as storage:
            storage.save_snapshot(snapshot)


@app.command()
def watch(
    demo: bool = typer.Option(False, help="Use simulated telemetry instead of the backend"),
    interval: float = typer.Option(None, help="Polling interval in seconds (default from settings)"),
    db_path: Path = typer.Option(None, help="Database path (default from settings)"),
) -> None:
    """Poll the backend and store every refreshed snapshot until interrupted."""
    settings = _settings()
    source = _build_source(settings, demo, seed=None)
    loop = RefreshLoop(source, interval=interval or settings.refresh_interval)

    with Storage(db_path or settings.db_path) as storage:

        def publish(snapshot: FleetSnapshot) -> None:
            storage.save_snapshot(snapshot)
            _print_stats(snapshot)

        loop.subscribe(publish)
        console.print(f"[bold blue]Watching street lights every {loop.interval:g}s (Ctrl-C to stop)[/bold blue]")
        try:
            with loop:
                while True:
                    time.sleep(1)
        except KeyboardInterrupt:
            console.print("\n[bold]Stopped.[/bold]")
        finally:
            _close(source)


@app.command()
def status(
    db_path: Path = typer.Option(None, help="Database path (default from settings)"),
) -> None:
    """Show stored history and the latest maintenance alerts."""
    settings = _settings()
    path = db_path or settings.db_path
    if not path.exists():
        console.print("[yellow]No database found. Run 'lumenwatch refresh' first.[/yellow]")
        return

    with Storage(path) as storage:
        summary = storage.fleet_summary()
        alerts = storage.get_latest_alerts()

    console.print("[bold]Fleet History[/bold]\n")
    console.print(f"Stored readings: {summary['readings']:,}")
    console.print(f"Street lights:   {summary['lights']:,}")
    console.print(f"  [green]NORMAL[/green]: {summary[LightStatus.NORMAL.value]}")
    console.print(f"  [red]FAULT[/red]:  {summary[LightStatus.FAULT.value]}")
    console.print()

    _print_alerts(alerts)


if __name__ == "__main__":
    app()
