"""SmallBiz CLI - serve the API and run portal sweeps by hand."""

from __future__ import annotations

import asyncio
import json
import uuid
from contextlib import asynccontextmanager
from typing import Any

import typer
from rich.console import Console
from rich.table import Table
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from .config import settings
from .models import Base
from .portal.client import PortalClient, PortalError
from .services import booking_svc, business_svc
from .sync.publisher import SitePublisher

app = typer.Typer(
    name="smallbiz",
    help="SmallBiz Workspace - bookings, invoices and public sites",
    no_args_is_help=True,
)
console = Console()


def _output_result(result: dict[str, Any]) -> None:
    console.print_json(json.dumps(result, default=str))


@asynccontextmanager
async def _sessions(database_url: str):
    engine = create_async_engine(database_url, echo=settings.echo_sql)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    finally:
        await engine.dispose()


def _database_option():
    return typer.Option(settings.database_url, "--database-url", help="SQLAlchemy async URL")


@app.command("serve")
def serve(
    port: int = typer.Option(8030, "--port", "-p", help="Port to run on"),
    host: str = typer.Option("127.0.0.1", "--host", help="Host to bind to"),
):
    """Launch the SmallBiz API."""
    try:
        import uvicorn
    except ImportError:
        console.print("[red]Missing dependencies. Install with: pip install -e .[/red]")
        raise typer.Exit(1)

    console.print(f"[bold cyan]Starting SmallBiz Workspace at http://{host}:{port}[/bold cyan]")
    uvicorn.run("smallbiz.app:app", host=host, port=port, reload=True)


@app.command("init-db")
def init_db(database_url: str = _database_option()):
    """Create all tables."""

    async def _init():
        async with _sessions(database_url):
            pass

    asyncio.run(_init())
    console.print("[green]Database ready.[/green]")


@app.command("create-business")
def create_business(
    name: str = typer.Argument(..., help="Business name"),
    slug: str = typer.Option(None, "--slug", help="Unique slug"),
    database_url: str = _database_option(),
):
    """Create a business and print its id."""

    async def _create():
        async with _sessions(database_url) as factory:
            async with factory() as db:
                business = await business_svc.create_business(db, name, slug=slug)
                return business.id

    business_id = asyncio.run(_create())
    console.print(str(business_id))


@app.command("sync-sites")
def sync_sites(database_url: str = _database_option()):
    """Publish every site draft that still needs syncing."""

    async def _sync():
        async with _sessions(database_url) as factory:
            publisher = SitePublisher(factory, PortalClient, temp_dir=settings.temp_dir)
            return await publisher.sync_queued_sites()

    results = asyncio.run(_sync())
    if not results:
        console.print("[dim]No sites waiting to sync.[/dim]")
        return

    table = Table(title=f"Site sync ({len(results)})")
    table.add_column("Site", style="dim")
    table.add_column("Status", style="cyan")
    for site_id, status in results.items():
        table.add_row(str(site_id), status.value if status else "-")
    console.print(table)


@app.command("refresh-bookings")
def refresh_bookings(
    business_id: uuid.UUID = typer.Argument(..., help="Business id"),
    database_url: str = _database_option(),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
):
    """Fetch booking requests from the portal and reconcile approved ones."""

    async def _refresh():
        async with _sessions(database_url) as factory:
            async with factory() as db:
                if await business_svc.get_business(db, business_id) is None:
                    return None
                async with PortalClient() as portal:
                    return await booking_svc.refresh_booking_requests(db, business_id, portal)

    try:
        result = asyncio.run(_refresh())
    except PortalError as e:
        console.print(f"[red]Error: {e.message}[/red]")
        raise typer.Exit(1)

    if result is None:
        console.print(f"[red]Business '{business_id}' not found[/red]")
        raise typer.Exit(1)

    if json_output:
        _output_result(result.model_dump())
        return

    console.print(
        f"Reconciled [green]{result.reconciled}[/green], "
        f"skipped [dim]{result.skipped}[/dim], "
        f"failed [red]{len(result.errors)}[/red]"
    )
    for error in result.errors:
        console.print(f"  [red]{error}[/red]")


if __name__ == "__main__":
    app()
