import asyncio
import typer
import logging
import sys
from typing import Optional
if sys.platform == "win32":
    # Принудительно устанавливаем политику, которая использует SelectorEventLoop.
    # Это решает проблему с ProactorEventLoop по умолчанию в Windows.
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
from rich.table import Table

from mentor_data_client import create_data_client, logging as client_logging
from mentor_data_client.exceptions import DataClientError
from mentor_data_client.models import Err, HealthStatus
from mentor_data_client.utils.cli_utils import get_rich_console
from mentor_data_client.validation import format_file_size, file_category

from mentor_data_client.db.base import Base


app = typer.Typer(help="CLI for mentor-data-client management.")
logger = logging.getLogger(__name__)
console = get_rich_console()


@app.callback()
def main(log_level: Optional[str] = typer.Option(None, "--log-level", help="Override LOG_LEVEL")):
    client_logging.configure(log_level)


@app.command()
def init():
    """
    Initializes all necessary services: creates DB tables and ensures MinIO bucket exists.
    """
    console.rule("[bold cyan]Service Initialization[/bold cyan]")

    async def _init():
        client = create_data_client()
        try:
            # 1. DB Table Creation
            if client.engine is None:
                console.log("[yellow]![/yellow] Chat log store is not configured, skipping tables.")
            else:
                try:
                    async with client.engine.begin() as conn:
                        await conn.run_sync(Base.metadata.create_all)
                    console.log("[bold green]✔[/bold green] Database tables created successfully.")
                except Exception as e:
                    console.log(f"[bold red]✖[/bold red] Database initialization FAILED: {e}")
                    raise typer.Exit(code=1)

            # 2. MinIO Bucket
            if client.minio is None:
                console.log("[yellow]![/yellow] Object storage is not configured, skipping bucket.")
            else:
                try:
                    await client.minio.check_connection()
                    console.log(f"[bold green]✔[/bold green] MinIO bucket '{client.minio.default_bucket}' is ready.")
                except DataClientError as e:
                    console.log(f"[bold red]✖[/bold red] MinIO storage initialization FAILED: {e}")
                    raise typer.Exit(code=1)
        finally:
            await client.aclose()

    with console.status("Initializing services...", spinner="dots"):
        asyncio.run(_init())

    console.print("\n[bold green]✅ All services initialized successfully![/bold green]")


@app.command()
def check():
    """Runs the health check against the chat log store and prints the verdict."""
    console.rule("[bold cyan]Health Check[/bold cyan]")

    async def _check():
        client = create_data_client()
        try:
            return await client.check_health()
        finally:
            await client.aclose()

    snapshot = asyncio.run(_check())
    db_status = snapshot.checks.database.value
    mark = "[bold green]✔[/bold green]" if db_status in ("healthy", "not_configured") else "[bold red]✖[/bold red]"
    console.print(f"{mark} Database: {db_status}")
    console.print(f"Status: {snapshot.status.value} ({snapshot.response_time_ms}ms, "
                  f"{snapshot.environment}, v{snapshot.version})")
    if snapshot.status is not HealthStatus.healthy:
        raise typer.Exit(code=1)


@app.command()
def history(
    user_id: str = typer.Argument(..., help="Owner of the conversation"),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", min=1, help="Max turns, oldest first"),
):
    """Prints a user's conversation, oldest turns first."""

    async def _history():
        client = create_data_client()
        try:
            return await client.fetch_history(user_id, limit)
        finally:
            await client.aclose()

    res = asyncio.run(_history())
    if isinstance(res, Err):
        console.print(f"[bold red]✖[/bold red] History unavailable: {res.error.value}")
        raise typer.Exit(code=1)

    table = Table(title=f"Conversation of {user_id}")
    table.add_column("Time")
    table.add_column("Role")
    table.add_column("Content")
    table.add_column("Attachment")
    for turn in res.value:
        a = turn.attachment
        attachment = f"{a.name} ({file_category(a.mime_type)}, {format_file_size(a.size_bytes)})" if a else ""
        table.add_row(turn.created_at.strftime("%Y-%m-%d %H:%M:%S"), turn.role.value, turn.content, attachment)
    console.print(table)
    console.print(f"{len(res.value)} turn(s)")


@app.command()
def serve(host: str = "0.0.0.0", port: int = 8000):
    """Starts the HTTP API (health + chat endpoints)."""
    import uvicorn

    uvicorn.run("mentor_data_client.server.main:app", host=host, port=port, log_config=None)


if __name__ == "__main__":
    app()
