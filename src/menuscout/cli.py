"""Command-line interface for menuscout using Typer."""
import asyncio
import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    name="menuscout",
    help="menuscout - extract restaurant menus from a food-delivery site",
    no_args_is_help=True,
)

db_app = typer.Typer(help="Database management commands")
app.add_typer(db_app, name="db")

console = Console()


def _configure_logging(verbose: bool) -> None:
    import logging

    # Only our own loggers get INFO/DEBUG; third-party stays at WARNING
    log_fmt = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"
    logging.basicConfig(level=logging.WARNING, format=log_fmt, datefmt="%H:%M:%S")
    logging.getLogger("menuscout").setLevel(logging.DEBUG if verbose else logging.INFO)


def _load_settings():
    """Load settings, turning missing configuration into a clean exit."""
    from pydantic import ValidationError

    from menuscout.config import get_settings

    try:
        return get_settings()
    except ValidationError as e:
        missing = ", ".join(
            "MENUSCOUT_" + str(err["loc"][0]).upper() for err in e.errors() if err.get("loc")
        )
        console.print(f"[bold red]Configuration error: missing or invalid {missing}[/bold red]")
        raise typer.Exit(1)


@db_app.command("init")
def db_init():
    """Initialize database by running Alembic migrations."""
    from alembic.config import Config
    from alembic import command

    _load_settings()
    console.print("[bold blue]Initializing database...[/bold blue]")

    alembic_ini = Path("alembic.ini")
    if not alembic_ini.exists():
        console.print("[bold red]Error: alembic.ini not found[/bold red]")
        console.print("Make sure you're running from the project root directory")
        raise typer.Exit(1)

    try:
        alembic_cfg = Config(str(alembic_ini))
        command.upgrade(alembic_cfg, "head")
        console.print("[bold green]✓ Database initialized successfully[/bold green]")
    except Exception as e:
        console.print(f"[bold red]Error initializing database: {e}[/bold red]")
        raise typer.Exit(1)


@db_app.command("reset")
def db_reset(
    confirm: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Skip confirmation prompt",
    )
):
    """Drop and recreate all database tables (destructive!)."""
    _load_settings()
    if not confirm:
        console.print("[bold yellow]⚠️  WARNING: This will delete ALL jobs in the database![/bold yellow]")
        proceed = typer.confirm("Are you sure you want to continue?")
        if not proceed:
            console.print("Aborted.")
            raise typer.Exit(0)

    from menuscout.common.db import reset_db

    console.print("[bold blue]Resetting database...[/bold blue]")
    try:
        reset_db()
        console.print("[bold green]✓ Database reset successfully[/bold green]")
    except Exception as e:
        console.print(f"[bold red]Error resetting database: {e}[/bold red]")
        raise typer.Exit(1)


@app.command("submit")
def submit(
    restaurant: str = typer.Argument(..., help="Restaurant name to search for"),
):
    """Queue a menu scrape and print its job id."""
    from menuscout.common.errors import InvalidJobPayload
    from menuscout.jobs.store import enqueue_job

    _load_settings()
    try:
        job_id = enqueue_job(restaurant)
    except InvalidJobPayload as e:
        console.print(f"[bold red]Invalid request: {e}[/bold red]")
        raise typer.Exit(1)

    console.print(f"[bold green]✓ Queued job[/bold green] {job_id}")
    console.print(f"Check progress with: menuscout status {job_id}")


@app.command("status")
def status(
    job_id: str = typer.Argument(..., help="Job id returned by submit"),
):
    """Print a job (status, result or error) as JSON."""
    from menuscout.common.errors import JobNotFoundError
    from menuscout.jobs.store import get_job

    _load_settings()
    try:
        job = get_job(job_id)
    except JobNotFoundError as e:
        console.print(f"[bold red]{e}[/bold red]")
        raise typer.Exit(1)

    typer.echo(json.dumps(job.to_payload(), indent=2, ensure_ascii=False))


@app.command("jobs")
def jobs(
    limit: int = typer.Option(10, "--limit", "-n", help="Number of jobs to show"),
):
    """Show status of recent scrape jobs."""
    from menuscout.jobs.store import list_recent_jobs

    _load_settings()
    rows = list_recent_jobs(limit)
    if not rows:
        console.print("[yellow]No jobs found[/yellow]")
        return

    table = Table(title="Recent Scrape Jobs")
    table.add_column("ID", style="cyan")
    table.add_column("Restaurant", style="magenta")
    table.add_column("Status", style="green")
    table.add_column("Items", style="yellow")
    table.add_column("Attempts", style="blue")
    table.add_column("Created", style="white")
    table.add_column("Error", style="red")

    for job in rows:
        table.add_row(
            job.id,
            job.restaurant_query,
            job.status.value,
            "" if job.item_count is None else str(job.item_count),
            str(job.attempts),
            job.created_at.strftime("%Y-%m-%d %H:%M") if job.created_at else "",
            (job.error_message or "")[:60],
        )

    console.print(table)


@app.command("worker")
def worker(
    concurrency: Optional[int] = typer.Option(
        None,
        "--concurrency",
        "-c",
        help="Concurrent job loops in this process (default from settings)",
    ),
    once: bool = typer.Option(
        False,
        "--once",
        help="Exit when the queue is empty instead of polling",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging",
    ),
):
    """Run a worker that processes queued jobs."""
    from menuscout.jobs.worker import run_worker

    _configure_logging(verbose)
    settings = _load_settings()

    console.print("[bold blue]🚀 Worker started and listening for jobs...[/bold blue]")
    try:
        processed = asyncio.run(run_worker(concurrency=concurrency, once=once, settings=settings))
        console.print(f"[bold green]✓ Worker finished ({processed} jobs processed)[/bold green]")
    except KeyboardInterrupt:
        console.print("\n[bold yellow]Worker interrupted by user[/bold yellow]")
        raise typer.Exit(0)


@app.command("scrape")
def scrape(
    restaurant: str = typer.Argument(..., help="Restaurant name to search for"),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging",
    ),
):
    """Run the pipeline inline (no queue) and print the menu as JSON.

    Example:

        menuscout scrape "Manoush"
    """
    from pydantic import ValidationError

    from menuscout.common.errors import ExtractionEmptyResult
    from menuscout.common.schemas import JobPayload
    from menuscout.crawler.workflow import scrape_menu

    _configure_logging(verbose)
    settings = _load_settings()
    try:
        payload = JobPayload(restaurant_query=restaurant)
    except ValidationError:
        console.print("[bold red]Invalid request: restaurant name must not be empty[/bold red]")
        raise typer.Exit(1)

    try:
        result = asyncio.run(scrape_menu(payload.restaurant_query, settings=settings))
    except ExtractionEmptyResult as e:
        console.print(f"[yellow]{e}[/yellow]")
        result = e.result
    except KeyboardInterrupt:
        console.print("\n[bold yellow]Scrape interrupted by user[/bold yellow]")
        raise typer.Exit(0)
    except Exception as e:
        console.print(f"[bold red]Scraping failed: {e}[/bold red]")
        raise typer.Exit(1)

    typer.echo(json.dumps(result.to_payload(), indent=2, ensure_ascii=False))


if __name__ == "__main__":
    app()
