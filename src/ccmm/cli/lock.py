"""ccmm lock / unlock — pin presets to a commit, or go back to tracking HEAD.

Usage:
  ccmm lock 1a2b3c4d5e6f     # snapshot presets into vendor/1a2b3c4d5e6f/
  ccmm lock                  # lock to the current HEAD of the first preset repo
  ccmm unlock                # regenerate merged-preset-HEAD.md; snapshots are kept
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Optional

import typer

from ccmm.cli.common import build_orchestrator, load_config_or_exit, report
from ccmm.core import orchestrator

_DEFAULT_PROJECT = Path(".")


def lock_cmd(
    commit: Annotated[
        Optional[str],
        typer.Argument(help="Commit SHA to lock to (default: HEAD of the first preset repository)."),
    ] = None,
    project: Annotated[
        Path,
        typer.Option("--project", "-p", help="Project directory (default: current directory)."),
    ] = _DEFAULT_PROJECT,
) -> None:
    """Lock the project's presets to a commit."""
    cfg = load_config_or_exit()
    report(orchestrator.lock(build_orchestrator(cfg, interactive=False), project, commit))


def unlock_cmd(
    project: Annotated[
        Path,
        typer.Option("--project", "-p", help="Project directory (default: current directory)."),
    ] = _DEFAULT_PROJECT,
) -> None:
    """Unlock the project's presets and track HEAD again."""
    cfg = load_config_or_exit()
    report(orchestrator.unlock(build_orchestrator(cfg, interactive=False), project))
