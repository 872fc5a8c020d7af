"""ccmm vendor CLI commands.

Commands:
  ccmm vendor list            — show the project's lock snapshots
  ccmm vendor prune [--yes]   — delete every snapshot except the locked one
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from ccmm.cli.common import build_orchestrator, load_config_or_exit, report
from ccmm.core.errors import CcmmError, Result
from ccmm.core.lock import list_snapshots, prune_snapshots, referenced_version
from ccmm.core.orchestrator import ProjectContext

console = Console()

vendor_app = typer.Typer(
    name="vendor",
    help="Inspect and prune vendor snapshots created by 'ccmm lock'.",
    add_completion=False,
)

_DEFAULT_PROJECT = Path(".")


def _resolve(project: Path) -> tuple[ProjectContext, str | None]:
    """Project context plus the version its managed line references."""
    cfg = load_config_or_exit()
    orch = build_orchestrator(cfg, interactive=False)
    try:
        ctx = orch.resolve_project(project)
        return ctx, referenced_version(orch.read_document(ctx))
    except CcmmError as exc:
        report(Result.failure(exc))
        raise typer.Exit(1)


@vendor_app.command("list")
def vendor_list_cmd(
    project: Annotated[
        Path,
        typer.Option("--project", "-p", help="Project directory (default: current directory)."),
    ] = _DEFAULT_PROJECT,
) -> None:
    """List vendor snapshots for the project."""
    ctx, in_use_version = _resolve(project)
    snapshots = list_snapshots(ctx.paths.project_dir)
    if not snapshots:
        console.print("[yellow]No vendor snapshots.[/] Create one with:  ccmm lock <commit>")
        raise typer.Exit(0)

    table = Table(title="Vendor snapshots", show_header=True, header_style="bold")
    table.add_column("Commit", style="bold")
    table.add_column("Files", justify="right")
    table.add_column("In use")
    for snapshot in snapshots:
        in_use = snapshot.locked_sha == in_use_version
        table.add_row(snapshot.locked_sha, str(len(snapshot.files)), "[green]✓[/]" if in_use else "")
    console.print(table)


@vendor_app.command("prune")
def vendor_prune_cmd(
    project: Annotated[
        Path,
        typer.Option("--project", "-p", help="Project directory (default: current directory)."),
    ] = _DEFAULT_PROJECT,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
) -> None:
    """Delete every snapshot except the one CLAUDE.md is locked to."""
    ctx, keep = _resolve(project)

    doomed = [s for s in list_snapshots(ctx.paths.project_dir) if s.locked_sha != keep]
    if not doomed:
        console.print("[dim]Nothing to prune.[/]")
        raise typer.Exit(0)

    console.print("Snapshots to delete:")
    for snapshot in doomed:
        console.print(f"  - {snapshot.locked_sha} ({len(snapshot.files)} file(s))")
    if not yes and not typer.confirm("Delete these snapshots?", default=False):
        console.print("[dim]Cancelled.[/]")
        raise typer.Exit(0)

    try:
        removed = prune_snapshots(ctx.paths.project_dir, keep=keep)
    except CcmmError as exc:
        report(Result.failure(exc))
        return
    console.print(f"[green]✓[/] Removed {len(removed)} snapshot(s)")
