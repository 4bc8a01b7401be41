"""Typer CLI interface for WeLabel Recorder."""

import asyncio
import json
import os
import signal
import sys
from pathlib import Path
from typing import List, Optional

import httpx
import typer
import uvicorn
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .analysis.analyzer import RelationshipAnalyzer
from .analysis.tree import SnapshotElementTree
from .config import Settings
from .exceptions import DecodeError, SessionNotFoundError, StorageError
from .logging_config import setup_logging
from .models.element import UIElementInfo
from .models.geometry import Point
from .services import Services, summarize

app = typer.Typer(
    name="welabel",
    help="WeLabel Recorder - recorded UI sessions for dataset labeling",
    add_completion=False,
)
console = Console()


async def check_service_running(host: str, port: int) -> bool:
    """Check if service is already running on port."""
    try:
        async with httpx.AsyncClient() as client:
            resp = await client.get(f"http://{host}:{port}/health", timeout=2.0)
            return resp.status_code == 200
    except httpx.HTTPError:
        return False


def _services(data_dir: Optional[Path], debug: bool = False) -> Services:
    settings = Settings(DATA_DIR=str(data_dir)) if data_dir else Settings()
    setup_logging(level="DEBUG" if debug else "WARNING", debug=debug)
    return Services(settings)


@app.command()
def serve(
    data_dir: Optional[Path] = typer.Option(
        None, "--data-dir", "-d", help="Data directory (sessions, screenshots, exports)"
    ),
    backend: Optional[str] = typer.Option(
        None, "--backend", "-b", help="Storage backend: 'files' or 'sqlite'"
    ),
    port: Optional[int] = typer.Option(None, "--port", help="HTTP port (default: PORT setting)"),
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (default: HOST setting)"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
    reload: bool = typer.Option(
        False, "--reload", help="Enable auto-reload (dev mode)"
    ),
):
    """Start the WeLabel HTTP service."""
    if backend is not None and backend not in ("files", "sqlite"):
        console.print(
            f"[red]Error:[/red] Invalid backend: {backend}. Use 'files' or 'sqlite'"
        )
        raise typer.Exit(1)

    # Set environment variables BEFORE the app imports settings
    if data_dir is not None:
        os.environ["DATA_DIR"] = str(data_dir.expanduser().resolve())
    if backend is not None:
        os.environ["STORE_BACKEND"] = backend
    os.environ["DEBUG"] = "true" if debug else "false"

    settings = Settings()
    host = host or settings.HOST
    port = port or settings.PORT

    if asyncio.run(check_service_running(host, port)):
        console.print(f"[red]Error:[/red] Service already running on port {port}")
        raise typer.Exit(1)

    def signal_handler(sig, frame):
        console.print("\n[yellow]Shutting down gracefully...[/yellow]")
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    console.print(
        Panel.fit(
            f"[bold]WeLabel Recorder Service[/bold]\n\n"
            f"📁 Data: {settings.data_path}\n"
            f"🗄  Store: {settings.STORE_BACKEND}\n"
            f"📡 HTTP: http://{host}:{port}\n"
            f"🔍 Debug: {'enabled' if debug else 'disabled'}",
            border_style="green",
        )
    )

    uvicorn.run(
        "welabel.main:app",
        host=host,
        port=port,
        log_level="debug" if debug else "info",
        reload=reload,
        access_log=debug,
    )


@app.command()
def sessions(
    data_dir: Optional[Path] = typer.Option(None, "--data-dir", "-d", help="Data directory"),
):
    """List recorded sessions, newest first."""
    services = _services(data_dir)
    found = asyncio.run(services.session_log.list_all())

    if not found:
        console.print("[yellow]No sessions recorded yet[/yellow]")
        return

    table = Table(title="Sessions")
    table.add_column("ID")
    table.add_column("Started")
    table.add_column("Ended")
    table.add_column("Interactions", justify="right")
    table.add_column("Screenshots", justify="right")
    for session in found:
        summary = summarize(session)
        table.add_row(
            summary.id,
            summary.start_time,
            summary.end_time or "-",
            str(summary.interaction_count),
            str(summary.screenshot_count),
        )
    console.print(table)


@app.command()
def export(
    session_id: str = typer.Argument(..., help="Session to export"),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Destination directory (default: <data>/exports)"
    ),
    archive: bool = typer.Option(False, "--zip", help="Also write a .zip archive"),
    data_dir: Optional[Path] = typer.Option(None, "--data-dir", "-d", help="Data directory"),
):
    """Export a session as metadata, flattened interactions and screenshots."""
    services = _services(data_dir)

    async def run() -> None:
        try:
            session = await services.load_session(session_id)
        except SessionNotFoundError as e:
            console.print(f"[red]Error:[/red] {e.message}")
            raise typer.Exit(1)
        except (DecodeError, StorageError) as e:
            console.print(f"[red]Error:[/red] Could not load session {session_id}: {e.message}")
            raise typer.Exit(1)

        destination = output or services.settings.exports_dir
        export_dir = await services.exporter.export_to_portable_format(session, destination)
        if export_dir is None:
            console.print(f"[red]Error:[/red] Export failed for session {session_id}")
            raise typer.Exit(1)
        console.print(f"[green]✓[/green] Exported to {export_dir}")

        if archive:
            archive_path = await services.exporter.create_archive(export_dir)
            if archive_path is None:
                console.print("[red]Error:[/red] Failed to create archive")
                raise typer.Exit(1)
            console.print(f"[green]✓[/green] Archive: {archive_path}")

    asyncio.run(run())


@app.command()
def analyze(
    snapshot: Path = typer.Argument(..., help="JSON file with a UI element snapshot"),
    path: List[int] = typer.Option(
        [], "--path", "-p", help="Child position, repeated from the root to the target"
    ),
    x: Optional[float] = typer.Option(None, "--x", help="Interaction X (default: target center)"),
    y: Optional[float] = typer.Option(None, "--y", help="Interaction Y (default: target center)"),
):
    """Rank elements related to one element of a UI snapshot."""
    try:
        root = UIElementInfo.model_validate(json.loads(snapshot.read_text(encoding="utf-8")))
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        console.print(f"[red]Error:[/red] Could not read snapshot {snapshot}: {e}")
        raise typer.Exit(1)

    tree = SnapshotElementTree(root)
    try:
        target = tree.element_at_path(path)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    center = target.center
    position = Point(x=center.x if x is None else x, y=center.y if y is None else y)

    related = RelationshipAnalyzer().analyze(target, position, tree)

    console.print(f"[bold]Target:[/bold] {target.short_description}")
    if not related:
        console.print("[yellow]No related elements found[/yellow]")
        return

    table = Table()
    table.add_column("Score", justify="right")
    table.add_column("Relationship")
    table.add_column("Element")
    table.add_column("Notes")
    for item in related:
        table.add_row(
            f"{item.relevance_score:.2f}",
            item.relationship_type.value,
            item.element.short_description,
            item.notes or "",
        )
    console.print(table)


if __name__ == "__main__":
    app()
