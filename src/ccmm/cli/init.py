"""ccmm init — create the ccmm home and global config.

Creates:
  ~/.ccmm/config.yaml     — global config (mode 0o600)
  ~/.ccmm/presets/        — fetched preset cache
  ~/.ccmm/projects/       — per-project selections, merged files, vendor snapshots

Also checks the environment: the gh CLI and GITHUB_TOKEN are both optional,
but at least one of them is needed to fetch presets from private repositories.
"""

from __future__ import annotations

import shutil
from typing import Annotated, Optional

import typer
from rich.console import Console

from ccmm.cli.common import load_config_or_exit
from ccmm.config import ensure_global_config, is_initialized, save_config
from ccmm.core.errors import SelectionMissing
from ccmm.core.registry import parse_repository_url
from ccmm.git.fetch import github_token

console = Console()


def init_cmd(
    repo: Annotated[
        Optional[list[str]],
        typer.Option("--repo", "-r", help="Preset repository to add (repeatable)."),
    ] = None,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Do not prompt."),
    ] = False,
) -> None:
    """Initialize ccmm in the home directory."""
    if is_initialized():
        console.print("[yellow]⚠[/]  ccmm is already initialized.")
        if not yes and not typer.confirm("Re-run setup? Existing settings are preserved.", default=False):
            console.print("[dim]Cancelled.[/]")
            raise typer.Exit(0)

    console.print("\n[bold]ccmm — setup[/]\n")
    _check_environment()

    cfg_path = ensure_global_config()
    console.print(f"  [green]✓[/] {cfg_path.parent} (presets/, projects/)")
    console.print(f"  [green]✓[/] {cfg_path}")

    cfg = load_config_or_exit()
    repos = list(repo or [])
    if not repos and not yes:
        answer = typer.prompt(
            "Preset repository (github.com/<owner>/<repo>, empty to skip)",
            default="",
            show_default=False,
        ).strip()
        if answer:
            repos.append(answer)

    added = []
    for url in repos:
        try:
            parse_repository_url(url)
        except SelectionMissing:
            console.print(
                f"[red]Error:[/] Invalid preset repository URL: '{url}'\n"
                "  Expected:  github.com/<owner>/<repo>  or  file:///path/to/repo"
            )
            raise typer.Exit(1)
        if url not in cfg.default_preset_repositories:
            cfg.default_preset_repositories.append(url)
            added.append(url)

    if added:
        save_config(cfg, cfg_path)
        for url in added:
            console.print(f"  [green]✓[/] preset repository {url}")

    console.print("\n[bold green]✓ ccmm initialized.[/]")
    console.print("\nNext steps:")
    console.print("  1. ccmm config add github.com/<owner>/<repo>   (add preset repositories)")
    console.print("  2. ccmm sync                                   (inside a project)")
    console.print("  3. ccmm lock <commit>                          (pin presets)")


def _check_environment() -> None:
    if shutil.which("gh"):
        console.print("  [green]✓[/] gh CLI found")
    else:
        console.print("  [yellow]⚠[/]  gh CLI not found; falling back to HTTPS downloads.")
    if github_token():
        console.print("  [green]✓[/] GitHub token found in the environment")
    else:
        console.print(
            "  [dim]No GITHUB_TOKEN set; private preset repositories need"
            " 'gh auth login' or: export GITHUB_TOKEN=ghp_...[/]"
        )
