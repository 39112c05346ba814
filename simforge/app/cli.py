"""simforge CLI - manage simulation projects and export runner configurations.

Usage:
    simforge new "Market Sim" --description "Two traders" --game-id 7
    simforge list --search market
    simforge show PRJ_1704067200_001
    simforge check PRJ_1704067200_001
    simforge export PRJ_1704067200_001 --output ./configs --port 9000
    simforge import ./market_sim_config.yaml
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated, Optional

import typer
from dotenv import load_dotenv

# Load .env early so SIMFORGE_DATA_DIR applies to the default config
load_dotenv()
from rich.console import Console
from rich.panel import Panel
from rich.markup import escape
from rich.table import Table

from simforge.app.config import get_config, reload_config
from simforge.core.library import (
    ProjectLibrary,
    ProjectNotFound,
    import_project_file,
    new_project,
)
from simforge.core.models.project import Project
from simforge.editing.variables import check_references
from simforge.infrastructure.export.compiler import compile_config, resolve_runner
from simforge.infrastructure.export.hosts import DirectoryPickerHost, DownloadDirectoryHost
from simforge.infrastructure.export.persistence import SaveOutcome, export_project
from simforge.utils.logging import get_logger, setup_logging

logger = get_logger("app.cli")

app = typer.Typer(
    name="simforge",
    help="simforge - multi-agent simulation configuration builder",
    add_completion=False,
)

console = Console()


@app.callback()
def main_callback(
    config: Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to config file")] = None,
    log_level: Annotated[Optional[str], typer.Option("--log-level", "-l", help="DEBUG, INFO, WARNING or ERROR")] = None,
) -> None:
    """Load configuration and set up logging for every command."""
    settings = reload_config(config) if config else get_config()
    if log_level:
        settings.log_level = log_level.upper()

    log_file = setup_logging(level=settings.log_level, log_dir=settings.data_dir / "logs")
    logger.debug(f"Library: {settings.library_path}, exports: {settings.export_dir}, log: {log_file}")


def _library() -> ProjectLibrary:
    return ProjectLibrary(get_config().library_path)


def _get_project(library: ProjectLibrary, project_id: str) -> Project:
    try:
        return library.get(project_id)
    except ProjectNotFound:
        console.print(f"[red]Error:[/red] No project with id {project_id}")
        raise typer.Exit(1)


@app.command("new")
def create_project(
    name: Annotated[str, typer.Argument(help="Project name")],
    description: Annotated[str, typer.Option("--description", "-d", help="Project description")] = "",
    game_id: Annotated[Optional[int], typer.Option("--game-id", "-g", help="Game id passed to the runner")] = None,
) -> None:
    """Create a new project and store it in the library."""
    try:
        project = new_project(name, description=description, game_id=game_id)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    _library().save(project)
    console.print(f"[green]Created[/green] {project.name} ({project.id})")


@app.command("list")
def list_projects(
    search: Annotated[Optional[str], typer.Option("--search", "-s", help="Filter by name or description")] = None,
) -> None:
    """List stored projects."""
    library = _library()
    summaries = library.search(search) if search else library.list_summaries()

    if not summaries:
        console.print("[yellow]No projects found.[/yellow]")
        return

    table = Table(title="Projects")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name", style="bold")
    table.add_column("Description")
    table.add_column("Created")
    for summary in summaries:
        created = summary.created_at.strftime("%Y-%m-%d %H:%M") if summary.created_at else ""
        table.add_row(summary.id, summary.name, summary.description or "", created)
    console.print(table)


@app.command("show")
def show_config(
    project_id: Annotated[str, typer.Argument(help="Project id")],
) -> None:
    """Print the compiled configuration of a project."""
    project = _get_project(_library(), project_id)
    server = get_config().server.to_server_config()
    console.print(compile_config(project, server), markup=False, highlight=False, soft_wrap=True, end="")


@app.command("check")
def check_project(
    project_id: Annotated[str, typer.Argument(help="Project id")],
) -> None:
    """Report prompt references that do not resolve against the project."""
    project = _get_project(_library(), project_id)
    issues = check_references(project)
    if not issues:
        console.print(f"[green]No reference issues in {project.name}.[/green]")
        return

    for issue in issues:
        console.print(f"[yellow]{issue.kind}[/yellow] {escape(str(issue))}", highlight=False)
    console.print(f"[red]{len(issues)} issue(s) found.[/red]")
    raise typer.Exit(1)


@app.command("export")
def export_config(
    project_id: Annotated[str, typer.Argument(help="Project id")],
    output: Annotated[Optional[Path], typer.Option("--output", "-o", help="File or directory to save to; a path without a suffix is a directory")] = None,
    hostname: Annotated[Optional[str], typer.Option("--hostname", help="Runner server hostname")] = None,
    port: Annotated[Optional[int], typer.Option("--port", help="Runner server port")] = None,
    path: Annotated[Optional[str], typer.Option("--path", help="Runner server path")] = None,
    strict: Annotated[bool, typer.Option("--strict", help="Refuse to export when references do not resolve")] = False,
) -> None:
    """Compile a project and save the configuration.

    With --output the file is written there directly; otherwise it is
    downloaded into the configured export directory.
    """
    settings = get_config()
    project = _get_project(_library(), project_id)

    if strict:
        issues = check_references(project)
        if issues:
            for issue in issues:
                console.print(f"[yellow]{issue.kind}[/yellow] {escape(str(issue))}", highlight=False)
            console.print("[red]Export aborted: unresolved references.[/red]")
            raise typer.Exit(1)

    server = settings.server.to_server_config(hostname=hostname, port=port, path=path)
    if output is not None:
        host = DirectoryPickerHost(lambda suggested_name: output)
    else:
        host = DownloadDirectoryHost(settings.export_dir)

    result = asyncio.run(export_project(project, server, host))

    if result.outcome is SaveOutcome.FAILED:
        console.print(f"[red]Error:[/red] Could not save {result.filename}")
        raise typer.Exit(1)
    if result.outcome is SaveOutcome.CANCELLED:
        console.print("[yellow]Export cancelled.[/yellow]")
        return

    if isinstance(host, DownloadDirectoryHost):
        destination = host.downloads[-1]
    else:
        destination = output / result.filename if output.is_dir() or not output.suffix else output

    console.print(Panel(
        f"[bold]Project:[/bold] {project.name}\n"
        f"[bold]Runner:[/bold] {resolve_runner(project.manager).runner_type}\n"
        f"[bold]Server:[/bold] {server.hostname}:{server.port}/{server.path}\n"
        f"[bold]Saved to:[/bold] {destination}",
        title="Export",
        border_style="green",
    ))


@app.command("import")
def import_project(
    file: Annotated[Path, typer.Argument(help="Project JSON or configuration YAML")],
) -> None:
    """Import a project into the library."""
    if not file.exists():
        console.print(f"[red]Error:[/red] File not found: {file}")
        raise typer.Exit(1)

    try:
        project = import_project_file(file)
    except ValueError as e:
        console.print(f"[red]Error:[/red] Could not import {file}: {e}")
        raise typer.Exit(1)

    _library().save(project)
    console.print(f"[green]Imported[/green] {project.name} ({project.id})")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
