"""ccmm sync — fetch the project's presets and point CLAUDE.md at them.

Usage:
  ccmm sync                       # track HEAD, prompt for presets on first run
  ccmm sync --yes                 # use default_presets from ~/.ccmm/config.yaml
  ccmm sync --reselect            # choose presets again
  ccmm sync --commit 1a2b3c4d     # build merged-preset-1a2b3c4d.md instead of HEAD
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from ccmm.cli.common import build_orchestrator, console, load_config_or_exit, report
from ccmm.core import orchestrator
from ccmm.core.models import HEAD

_DEFAULT_PROJECT = Path(".")


def sync_cmd(
    commit: Annotated[
        str,
        typer.Option("--commit", "-c", help="Preset commit to sync (default: HEAD)."),
    ] = HEAD,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Use the configured default presets without prompting."),
    ] = False,
    reselect: Annotated[
        bool,
        typer.Option("--reselect", help="Choose presets again even if a selection exists."),
    ] = False,
    skip_selection: Annotated[
        bool,
        typer.Option("--skip-selection", help="Fail instead of prompting when nothing is selected."),
    ] = False,
    project: Annotated[
        Path,
        typer.Option("--project", "-p", help="Project directory (default: current directory)."),
    ] = _DEFAULT_PROJECT,
) -> None:
    """Sync presets into CLAUDE.md."""
    cfg = load_config_or_exit()
    orch = build_orchestrator(cfg, interactive=not yes)

    result = orchestrator.sync(
        orch, project, commit, reselect=reselect, skip_selection=skip_selection
    )
    report(result)
    console.print("[dim]CLAUDE.md now imports the merged preset file.[/]")
