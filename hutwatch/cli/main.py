"""
Command-line interface for hutwatch.
Batch availability scraping for mountain huts with Rich formatting.
"""

import asyncio
import json
import logging
from datetime import date, datetime
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from hutwatch import __app_name__, __version__
from hutwatch.cli.validators import (
    date_callback,
    provider_type_callback,
    targets_file_callback,
)
from hutwatch.config import settings
from hutwatch.database import check_db_connection, close_db_connections, init_db
from hutwatch.orchestration import (
    OrchestrationOptions,
    OrchestrationReport,
    ProgressSnapshot,
    create_scheduler,
)
from hutwatch.persistence import save_report
from hutwatch.providers.base import DateRange
from hutwatch.providers.registry import provider_registry
from hutwatch.targets import build_targets, load_targets
from hutwatch.utils.logging_config import setup_logging

# Create Typer app
app = typer.Typer(
    name="hutwatch",
    help="hutwatch - availability scraping for mountain huts",
    add_completion=False,
)

# Create sub-commands
db_app = typer.Typer(help="Database management")
app.add_typer(db_app, name="db")

console = Console()
logger = logging.getLogger(__name__)


# ============================================================================
# Utility Functions
# ============================================================================

def handle_error(e: Exception, message: str = "An error occurred"):
    """Handle errors with nice formatting."""
    console.print(f"\n[bold red]✗ {message}[/bold red]")
    console.print(f"[red]{type(e).__name__}: {str(e)}[/red]\n")
    if settings.debug:
        console.print_exception()
    raise typer.Exit(code=1)


def success(message: str):
    """Print success message."""
    console.print(f"[bold green]✓ {message}[/bold green]")


def info(message: str):
    """Print info message."""
    console.print(f"[blue]{message}[/blue]")


def warning(message: str):
    """Print warning message."""
    console.print(f"[yellow]⚠ {message}[/yellow]")


# ============================================================================
# Version Callback
# ============================================================================

def version_callback(value: bool):
    """Show version and exit."""
    if value:
        console.print(Panel(
            f"[bold blue]{__app_name__}[/bold blue] version [green]{__version__}[/green]\n"
            f"Availability scraping for mountain huts",
            title="hutwatch",
            border_style="blue",
        ))
        raise typer.Exit()


# ============================================================================
# Main Callback
# ============================================================================

@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """
    hutwatch CLI - scrape mountain hut availability in batches.

    Use 'hutwatch COMMAND --help' for command-specific help.
    """
    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        json_format=settings.json_logs,
        log_file=settings.log_file,
    )


# ============================================================================
# SCRAPE Command
# ============================================================================

@app.command()
def scrape(
    ids: Optional[List[str]] = typer.Argument(
        None,
        help="Target ids in the booking system (requires --provider)",
    ),
    provider: Optional[str] = typer.Option(
        None,
        "--provider",
        "-p",
        help="Provider type for the given ids (see 'hutwatch providers')",
        callback=provider_type_callback,
    ),
    targets_file: Optional[Path] = typer.Option(
        None,
        "--targets-file",
        "-f",
        help="JSON file with the targets to scrape",
        callback=targets_file_callback,
    ),
    concurrency: Optional[int] = typer.Option(
        None,
        min=1,
        help=f"Targets scraped in parallel per batch. Default: {settings.scrape_concurrency}",
    ),
    retries: Optional[int] = typer.Option(
        None,
        min=1,
        help=f"Maximum attempts per target. Default: {settings.scrape_retries}",
    ),
    batch_delay: Optional[float] = typer.Option(
        None,
        min=0,
        help=f"Pause between batches in seconds. Default: {settings.delay_between_batches_ms / 1000:g}",
    ),
    start: Optional[str] = typer.Option(
        None,
        help="First day to report (YYYY-MM-DD). Default: today",
        callback=date_callback,
    ),
    end: Optional[str] = typer.Option(
        None,
        help=f"Last day to report (YYYY-MM-DD). Default: {settings.scrape_window_days} days from start",
        callback=date_callback,
    ),
    save: bool = typer.Option(
        settings.save_to_database,
        "--save/--no-save",
        help="Save results to database",
    ),
    save_file: bool = typer.Option(
        settings.save_to_file,
        "--save-file",
        help=f"Also write each result as JSON into {settings.results_dir}",
    ),
    save_report_file: bool = typer.Option(
        False,
        "--save-report",
        help=f"Write the final report as JSON into {settings.reports_dir}",
    ),
    report_dir: Optional[Path] = typer.Option(
        None,
        "--report-dir",
        help="Write the final report as JSON into this directory (implies --save-report)",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Print the report as JSON instead of tables",
    ),
):
    """
    Scrape availability for many huts in concurrent batches.

    Targets are either ids of one provider or a targets file.

    Examples:
        hutwatch scrape 42 455 673 --provider hut-reservation
        hutwatch scrape --targets-file huts.json --concurrency 5 --retries 2
        hutwatch scrape 32383 -p montblanc --start 2026-07-01 --end 2026-08-31 --no-save
    """
    if bool(ids) == bool(targets_file):
        raise typer.BadParameter("Pass either target ids with --provider or --targets-file")
    if ids and not provider:
        raise typer.BadParameter("--provider is required when target ids are given")
    if start and end and end < start:
        raise typer.BadParameter(f"--end ({end}) must not be before --start ({start})")
    if report_dir is None and save_report_file:
        report_dir = settings.reports_dir

    if not json_output:
        console.print(Panel(
            "[bold]Hut Availability Scrape[/bold]",
            border_style="green",
        ))

    try:
        report = asyncio.run(_run_scrape(
            ids, provider, targets_file, concurrency, retries, batch_delay,
            start, end, save, save_file, report_dir, json_output,
        ))
    except Exception as e:
        handle_error(e, "Scraping failed")

    if report.has_failures:
        raise typer.Exit(code=1)


async def _run_scrape(
    ids: Optional[List[str]],
    provider: Optional[str],
    targets_file: Optional[Path],
    concurrency: Optional[int],
    retries: Optional[int],
    batch_delay: Optional[float],
    start_str: Optional[str],
    end_str: Optional[str],
    save: bool,
    save_file: bool,
    report_dir: Optional[Path],
    json_output: bool,
) -> OrchestrationReport:
    """Execute a batch scrape and display the report."""
    if targets_file:
        targets = load_targets(targets_file)
    else:
        targets = build_targets(provider, ids)

    start_date = datetime.strptime(start_str, "%Y-%m-%d").date() if start_str else date.today()
    if end_str:
        date_range = DateRange(start=start_date, end=datetime.strptime(end_str, "%Y-%m-%d").date())
    else:
        date_range = DateRange.upcoming(days=settings.scrape_window_days, today=start_date)

    options = OrchestrationOptions.from_settings(
        concurrency=concurrency,
        retries=retries,
        delay_between_batches_ms=int(batch_delay * 1000) if batch_delay is not None else None,
        save_to_database=save,
        save_to_file=save_file,
        date_range=date_range,
    )

    if not json_output:
        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Parameter", style="cyan")
        table.add_column("Value", style="green")

        table.add_row("Targets", str(len(targets)))
        table.add_row("Concurrency", str(options.concurrency))
        table.add_row("Retries", str(options.retries))
        table.add_row("Batch delay", f"{options.delay_between_batches_ms / 1000:g}s")
        table.add_row("Dates", f"{date_range.start} → {date_range.end}")
        table.add_row("Save to DB", "Yes" if options.save_to_database else "No")
        table.add_row("Save to file", "Yes" if options.save_to_file else "No")

        console.print("\n")
        console.print(table)
        console.print("\n")

    def on_progress(snapshot: ProgressSnapshot) -> None:
        if json_output:
            return
        console.print(
            f"[dim cyan]⟳ Batch {snapshot.current_batch}/{snapshot.total_batches}: "
            f"{snapshot.completed}/{snapshot.total} done, "
            f"[green]{snapshot.successful} ok[/green], [red]{snapshot.failed} failed[/red] "
            f"({snapshot.success_rate:.1f}%)[/dim cyan]"
        )

    scheduler = create_scheduler(options)
    try:
        report = await scheduler.scrape_all(targets, on_progress=on_progress)
    finally:
        if options.save_to_database:
            await close_db_connections()

    if report_dir is not None:
        path = save_report(report, report_dir)
        if not json_output:
            info(f"Report written to {path}")

    if json_output:
        typer.echo(json.dumps(report.model_dump(mode="json"), indent=2))
    else:
        _print_report(report)

    return report


def _print_report(report: OrchestrationReport) -> None:
    summary = report.summary

    table = Table(title="Scrape Summary", show_header=True, header_style="bold magenta")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")

    table.add_row("Total", str(summary.total))
    table.add_row("Successful", str(summary.successful))
    table.add_row("Failed", str(summary.failed))
    table.add_row("Skipped", str(summary.skipped))
    table.add_row("Success rate", summary.success_rate)
    table.add_row("Duration", summary.duration)
    table.add_row("Avg per target", summary.avg_time_per_target)

    console.print("\n")
    console.print(table)

    if report.successful:
        results_table = Table(show_header=True, header_style="bold magenta")
        results_table.add_column("Target", style="cyan", no_wrap=False, max_width=40)
        results_table.add_column("Provider", style="yellow")
        results_table.add_column("Sub-resources", style="blue", justify="right")
        results_table.add_column("Available dates", style="green", justify="right")
        results_table.add_column("Attempts", style="magenta", justify="right")
        results_table.add_column("Saved", style="white", justify="center")

        for outcome in report.successful:
            results_table.add_row(
                outcome.target_name[:40],
                outcome.provider_type,
                str(outcome.sub_resources_scraped),
                str(outcome.availability_records),
                str(outcome.attempts),
                "✓" if outcome.persisted else "✗",
            )

        console.print("\n")
        console.print(results_table)

    if report.failed:
        failed_table = Table(title="Failed Targets", show_header=True, header_style="bold red")
        failed_table.add_column("Target", style="cyan", no_wrap=False, max_width=40)
        failed_table.add_column("Provider", style="yellow")
        failed_table.add_column("Attempts", style="magenta", justify="right")
        failed_table.add_column("Error", style="red", no_wrap=False)

        for outcome in report.failed:
            failed_table.add_row(
                outcome.target_name[:40],
                outcome.provider_type,
                str(outcome.attempts),
                outcome.error or "unknown error",
            )

        console.print("\n")
        console.print(failed_table)
        console.print("\n")
        warning(f"{summary.failed} of {summary.total} targets failed")
    else:
        console.print("\n")
        success(f"All {summary.total} targets scraped")


# ============================================================================
# PROVIDERS Command
# ============================================================================

@app.command()
def providers():
    """
    List the registered availability providers.
    """
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Provider", style="cyan")
    table.add_column("Type", style="yellow")
    table.add_column("Class", style="white")

    for name in provider_registry.available():
        provider_class = provider_registry.get_provider_class(name)
        table.add_row(
            name,
            provider_class.PROVIDER_TYPE if provider_class else "-",
            provider_class.__name__ if provider_class else "-",
        )

    console.print(table)


# ============================================================================
# DB Commands - Database Management
# ============================================================================

@db_app.command("init")
def db_init(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
):
    """
    Initialize database (create missing tables).
    """
    if not yes:
        confirm = typer.confirm(f"Create hutwatch tables in {_safe_url(settings.database_url)}?")
        if not confirm:
            warning("Operation cancelled")
            raise typer.Exit()

    try:
        asyncio.run(_db_init())
    except Exception as e:
        handle_error(e, "Database initialization failed")


async def _db_init():
    """Initialize database tables."""
    try:
        with console.status("[bold yellow]Creating database tables..."):
            await init_db()
    finally:
        await close_db_connections()

    success("Database initialized successfully")


@db_app.command("check")
def db_check():
    """
    Check database connectivity.
    """
    async def check_db() -> bool:
        try:
            return await check_db_connection()
        finally:
            await close_db_connections()

    if asyncio.run(check_db()):
        success(f"Database reachable at {_safe_url(settings.database_url)}")
    else:
        console.print(f"[red]✗ Database unreachable at {_safe_url(settings.database_url)}[/red]")
        raise typer.Exit(code=1)


def _safe_url(url: str) -> str:
    """Database URL with the password masked."""
    if "@" not in url or "://" not in url:
        return url
    scheme, rest = url.split("://", 1)
    credentials, host = rest.rsplit("@", 1)
    user = credentials.split(":", 1)[0]
    return f"{scheme}://{user}:***@{host}"



if __name__ == "__main__":
    app()
