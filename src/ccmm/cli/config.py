"""ccmm config CLI commands.

Commands:
  ccmm config list           — show the global config
  ccmm config add <url>      — add a preset repository
  ccmm config remove <url>   — remove a preset repository
"""

from __future__ import annotations

from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from ccmm.cli.common import load_config_or_exit, require_initialized
from ccmm.config import global_config_path, save_config
from ccmm.core.errors import SelectionMissing
from ccmm.core.registry import parse_repository_url

console = Console()

config_app = typer.Typer(
    name="config",
    help="Manage preset repositories in ~/.ccmm/config.yaml (list, add, remove).",
    add_completion=False,
)


@config_app.command("list")
def config_list_cmd() -> None:
    """Show preset repositories and default presets."""
    require_initialized()
    cfg = load_config_or_exit()

    console.print(f"[bold]Config:[/] {cfg.source or global_config_path()}")
    if not cfg.default_preset_repositories:
        console.print(
            "[yellow]No preset repositories configured.[/]\n"
            "  Add one with:  ccmm config add github.com/<owner>/<repo>"
        )
    else:
        table = Table(title="Preset repositories", show_header=True, header_style="bold")
        table.add_column("#", justify="right")
        table.add_column("Repository", style="bold")
        for number, repo in enumerate(cfg.default_preset_repositories, start=1):
            table.add_row(str(number), repo)
        console.print(table)

    if cfg.default_preset_repo:
        console.print(f"  Default repository: {cfg.default_preset_repo}")
    if cfg.default_presets:
        console.print(f"  Default presets:    {', '.join(cfg.default_presets)}")


@config_app.command("add")
def config_add_cmd(
    url: Annotated[
        str,
        typer.Argument(help="Repository URL, e.g. github.com/myorg/CLAUDE-md."),
    ],
) -> None:
    """Add a preset repository."""
    require_initialized()
    cfg = load_config_or_exit()

    try:
        parse_repository_url(url)
    except SelectionMissing:
        console.print(
            f"[red]Error:[/] Invalid preset repository URL: '{url}'\n"
            "  Expected:  github.com/<owner>/<repo>  or  file:///path/to/repo"
        )
        raise typer.Exit(1)

    if url in cfg.default_preset_repositories:
        console.print(f"[yellow]Already configured:[/] {url}")
        raise typer.Exit(0)

    cfg.default_preset_repositories.append(url)
    save_config(cfg)
    console.print(f"[green]✓[/] Added: {url}")


@config_app.command("remove")
def config_remove_cmd(
    url: Annotated[
        str,
        typer.Argument(help="Repository URL exactly as listed by 'ccmm config list'."),
    ],
) -> None:
    """Remove a preset repository."""
    require_initialized()
    cfg = load_config_or_exit()

    if url not in cfg.default_preset_repositories:
        listed = ", ".join(cfg.default_preset_repositories) or "(none)"
        console.print(
            f"[red]Error:[/] Repository not configured: '{url}'\n"
            f"  Configured: {listed}"
        )
        raise typer.Exit(1)

    cfg.default_preset_repositories.remove(url)
    if cfg.default_preset_repo == url:
        cfg.default_preset_repo = None
    if cfg.file_values.get("default_preset_repo") == url:
        cfg.file_values["default_preset_repo"] = None
    if cfg.default_presets and cfg.primary_repository is None:
        cfg.default_presets = []
        console.print("[yellow]⚠[/]  default_presets cleared: no preset repository is left.")
    save_config(cfg)
    console.print(f"[green]✓[/] Removed: {url}")
