"""Interactive preset selection.

Lists every ``*.md`` file in the configured preset repositories as a
numbered table and reads a comma-separated choice:

    Select presets (comma-separated numbers, or 'all') [1,3]: 1, 2
"""

from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from ccmm.cli.errors import err_invalid_selection, err_no_presets_found
from ccmm.config import CcmmConfig
from ccmm.core.models import SelectedPreset
from ccmm.core.registry import default_selection
from ccmm.git.fetch import PresetFetchError
from ccmm.git.repo_scan import list_preset_files

console = Console()


def candidate_repositories(config: CcmmConfig) -> list[str]:
    repos = list(config.default_preset_repositories)
    if config.default_preset_repo and config.default_preset_repo not in repos:
        repos.insert(0, config.default_preset_repo)
    return repos


def parse_selection(raw: str, count: int) -> list[int]:
    """Parse ``"1, 3,2"`` into 1-based indexes, keeping order and dropping repeats.

    Raises:
        ValueError: On anything that is not a number in ``1..count``.
    """
    text = raw.strip().lower()
    if text == "all":
        return list(range(1, count + 1))

    indexes: list[int] = []
    for part in text.split(","):
        part = part.strip()
        if not part:
            continue
        if not part.isdigit() or not 1 <= int(part) <= count:
            raise ValueError(part)
        if int(part) not in indexes:
            indexes.append(int(part))
    if not indexes:
        raise ValueError(raw)
    return indexes


def prompt_selection(config: CcmmConfig) -> list[SelectedPreset]:
    """Ask the user which presets to use; returns [] when none are available."""
    repos = candidate_repositories(config)
    choices: list[SelectedPreset] = []
    for repo in repos:
        try:
            files = list_preset_files(repo)
        except PresetFetchError as exc:
            console.print(f"[yellow]⚠[/]  Cannot list presets in {repo}: {exc}")
            continue
        choices.extend(SelectedPreset(repo=repo, file=name) for name in files)

    if not choices:
        console.print(err_no_presets_found(repos))
        return []

    defaults = set(default_selection(config))
    table = Table(title="Available presets", show_header=True, header_style="bold")
    table.add_column("#", justify="right")
    table.add_column("Repository")
    table.add_column("File", style="bold")
    table.add_column("Default")
    for number, choice in enumerate(choices, start=1):
        table.add_row(str(number), choice.repo, choice.file, "[green]✓[/]" if choice in defaults else "")
    console.print(table)

    default_answer = ",".join(
        str(number) for number, choice in enumerate(choices, start=1) if choice in defaults
    )
    question = "Select presets (comma-separated numbers, or 'all')"
    while True:
        if default_answer:
            raw = typer.prompt(question, default=default_answer)
        else:
            raw = typer.prompt(question)
        try:
            indexes = parse_selection(raw, len(choices))
        except ValueError:
            console.print(err_invalid_selection(raw, len(choices)))
            continue
        return [choices[i - 1] for i in indexes]
