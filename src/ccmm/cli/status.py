"""ccmm status — show the project's identity, lock state and presets."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ccmm.cli.common import build_orchestrator, load_config_or_exit, report
from ccmm.core.errors import CcmmError, Result
from ccmm.core.orchestrator import ProjectStatus
from ccmm.core.slug import sanitise_url

console = Console()

_DEFAULT_PROJECT = Path(".")


def status_cmd(
    project: Annotated[
        Path,
        typer.Option("--project", "-p", help="Project directory (default: current directory)."),
    ] = _DEFAULT_PROJECT,
) -> None:
    """Show project status: slug, lock state, selected presets, snapshots."""
    cfg = load_config_or_exit()
    orch = build_orchestrator(cfg, interactive=False)
    try:
        status = orch.status(project)
    except CcmmError as exc:
        report(Result.failure(exc))
        return

    _show_project_panel(status)
    _show_presets_panel(status)


def _show_project_panel(status: ProjectStatus) -> None:
    ctx = status.context
    if status.state.locked:
        state = f"[cyan]locked[/] to {status.state.version}"
    else:
        state = "[green]tracking HEAD[/]"

    if status.import_path is None:
        managed = "[yellow]none[/] (run: ccmm sync)"
    elif status.merged_exists:
        managed = status.import_path
    else:
        managed = f"{status.import_path} [red](missing)[/]"

    lines = [
        f"Project:  {ctx.root}",
        f"Origin:   {sanitise_url(ctx.origin_url)}",
        f"Slug:     {ctx.slug}",
        f"State:    {state}",
        f"Import:   {managed}",
    ]
    console.print(Panel("\n".join(lines), title="[bold]Project[/]", expand=False))


def _show_presets_panel(status: ProjectStatus) -> None:
    selection = status.selection
    if selection is None or not selection.presets:
        console.print(
            Panel(
                "[yellow]No presets selected.[/]\n"
                "  Run:  ccmm sync",
                title="[bold]Presets[/]",
                expand=False,
            )
        )
    else:
        table = Table(title="Presets", show_header=True, header_style="bold")
        table.add_column("Repository")
        table.add_column("File", style="bold")
        for preset in selection.presets:
            table.add_row(preset.repo, preset.file)
        console.print(table)
        if selection.last_updated:
            console.print(f"  [dim]Selected {selection.last_updated}[/]")

    if status.snapshots:
        names = ", ".join(s.locked_sha for s in status.snapshots)
        console.print(f"\n  Vendor snapshots: {names}")
