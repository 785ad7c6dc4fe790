#!/usr/bin/env python3
"""
MCP Server Registry - Pipeline Entry Point

Discovers MCP server packages on GitHub, npm and PyPI and consolidates
them into one deduplicated record per package.

Usage:
    mcp-registry run
    mcp-registry run npm pypi --mode incremental --run-id nightly
    mcp-registry status nightly
    mcp-registry list-sources
"""

import click
from loguru import logger
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from mcp_registry.collectors import COLLECTORS
from mcp_registry.config import DATA_SOURCES, SOURCE_ORDER
from mcp_registry.models import UpdateMode
from mcp_registry.run import InputError, RegistryRun, RunInput, load_run_metadata
from mcp_registry.utils.logging import setup_logging


console = Console()


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--log-file", type=click.Path(dir_okay=False), default=None, help="Also log to this rotating file")
def cli(debug, log_file):
    """MCP Server Registry Pipeline"""
    setup_logging(level="DEBUG" if debug else None, log_file=log_file)


@cli.command()
@click.argument("sources", nargs=-1, type=click.Choice(SOURCE_ORDER + ["all"]))
@click.option(
    "--mode",
    type=click.Choice([mode.value for mode in UpdateMode]),
    default=None,
    help="full starts empty; incremental reloads the state saved under --run-id",
)
@click.option("--run-id", default=None, help="Run identifier (reuse it for incremental runs)")
@click.option("--max-servers", type=int, default=None, help="Maximum servers per source")
@click.option("--min-stars", type=int, default=None, help="Minimum GitHub stars")
@click.option("--no-readme", is_flag=True, help="Skip fetching READMEs")
@click.option("--test", "test_mode", is_flag=True, help="Test mode: at most 5 servers per source")
def run(sources, mode, run_id, max_servers, min_stars, no_readme, test_mode):
    """
    Collect, deduplicate and store MCP servers.

    SOURCES are registry names (github, npm, pypi) or 'all' (the default).
    """
    if not sources or "all" in sources:
        sources = list(SOURCE_ORDER)

    run_input = RunInput.from_settings(
        sources=list(sources),
        update_mode=UpdateMode(mode) if mode else None,
        max_servers=max_servers,
        min_stars=min_stars,
        include_readme=False if no_readme else None,
        run_mode="test" if test_mode else None,
    )
    registry_run = RegistryRun(run_input, run_id=run_id)

    console.print("\n[bold blue]MCP Server Registry - Run[/bold blue]")
    console.print(f"Run ID: {registry_run.run_id}")
    console.print(f"Sources: {', '.join(run_input.sources)}")
    console.print(f"Mode: {run_input.update_mode.value}\n")

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task("Collecting servers...", total=None)
        try:
            metadata = registry_run.execute()
        except InputError as e:
            progress.update(task, description="[red]✗ Invalid input[/red]")
            raise click.BadParameter(str(e)) from e
        except Exception as e:
            progress.update(task, description="[red]✗ Run failed[/red]")
            logger.exception("Run failed")
            raise click.ClickException(str(e)) from e
        progress.update(task, description="[green]✓ Run complete[/green]")

    print_metadata(metadata.to_dict())


@cli.command()
@click.argument("run_id")
def status(run_id: str):
    """Show the stored metadata of a run."""
    metadata = load_run_metadata(run_id)
    if metadata is None:
        console.print(f"[yellow]No metadata found for run {run_id}[/yellow]")
        raise SystemExit(1)

    console.print(f"\n[bold blue]MCP Server Registry - Run {run_id}[/bold blue]\n")
    print_metadata(metadata)


@cli.command()
def list_sources():
    """List all available registries."""
    console.print("\n[bold blue]Available Sources[/bold blue]\n")

    table = Table()
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Collector")
    table.add_column("Description")

    for source_id, source_info in DATA_SOURCES.items():
        has_collector = "[green]✓[/green]" if source_id in COLLECTORS else "[dim]✗[/dim]"
        table.add_row(
            source_id,
            source_info.get("name", source_id),
            has_collector,
            source_info.get("description", ""),
        )

    console.print(table)


def print_metadata(metadata: dict) -> None:
    """Print run metadata as summary tables."""
    table = Table(title="Run Summary")
    table.add_column("Metric")
    table.add_column("Value")
    table.add_row("Update mode", metadata.get("updateMode", "-"))
    table.add_row("Servers found", str(metadata.get("totalServersFound", 0)))
    table.add_row("Duplicates removed", str(metadata.get("duplicatesRemoved", 0)))
    table.add_row("Validation failures", str(len(metadata.get("validationFailures", []))))
    table.add_row("Rate limit events", str(len(metadata.get("rateLimitEvents", []))))
    table.add_row("Duration", f"{metadata.get('duration', 0) / 1000:.1f}s")
    console.print(table)

    by_source = Table(title="Servers by Source")
    by_source.add_column("Source")
    by_source.add_column("Servers")
    for source, count in (metadata.get("serversBySource") or {}).items():
        by_source.add_row(source, str(count))
    console.print(by_source)

    by_category = Table(title="Servers by Category")
    by_category.add_column("Category")
    by_category.add_column("Servers")
    for category, count in (metadata.get("serversByCategory") or {}).items():
        by_category.add_row(category, str(count))
    console.print(by_category)

    for error in metadata.get("errors") or []:
        console.print(f"[red]Error: {error}[/red]")


if __name__ == "__main__":
    cli()
