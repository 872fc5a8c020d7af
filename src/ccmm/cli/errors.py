"""ccmm rich error messages — actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from ccmm.cli.errors import err_result
    console.print(err_result(result))
    raise typer.Exit(result.exit_code)
"""

from __future__ import annotations

from ccmm.config import ConfigError
from ccmm.core.errors import (
    DocumentParseFailed,
    FetchBatchFailed,
    IdentityResolutionFailed,
    InvalidVersion,
    LockStateInvalid,
    NotInitialized,
    ProjectLockTimeout,
    Result,
    SelectionMissing,
    SnapshotIOFailed,
)


def err_not_initialized() -> str:
    return (
        "[red]Error:[/] ccmm is not initialized.\n"
        "  Run:  ccmm init"
    )


def err_config(exc: ConfigError) -> str:
    """Invalid global config file."""
    return (
        f"[red]Error:[/] Invalid ccmm configuration.\n"
        f"  {exc}\n"
        "  Fix the file, or inspect it with:  ccmm config list"
    )


def err_fetch(exc: FetchBatchFailed) -> str:
    """One line per preset that could not be fetched."""
    lines = "\n".join(f"    ✗ {pointer}: {reason}" for pointer, reason in exc.failures)
    return (
        f"[red]Error:[/] Failed to fetch {len(exc.failures)} preset(s):\n"
        f"{lines}\n"
        "  Check network access, then authenticate with:  gh auth login\n"
        "  or:  export GITHUB_TOKEN=ghp_..."
    )


def err_invalid_selection(raw: str, count: int) -> str:
    return (
        f"[yellow]Invalid selection '{raw}'.[/] "
        f"Enter numbers between 1 and {count} separated by commas, or 'all'."
    )


def err_no_presets_found(repositories: list[str]) -> str:
    """No preset files available in the configured repositories."""
    if not repositories:
        return (
            "[red]Error:[/] No preset repositories configured.\n"
            "  Add one with:  ccmm config add github.com/<owner>/<repo>"
        )
    listed = "\n".join(f"    {r}" for r in repositories)
    return (
        "[red]Error:[/] No *.md presets found in:\n"
        f"{listed}\n"
        "  Check the repository URLs with:  ccmm config list"
    )


_HINTS: list[tuple[type[Exception], str]] = [
    (NotInitialized, "Run:  ccmm init"),
    (
        IdentityResolutionFailed,
        "Run ccmm inside a git repository with an 'origin' remote:\n"
        "    git remote add origin <url>",
    ),
    (DocumentParseFailed, "Fix or remove the last line of CLAUDE.md, then re-run:  ccmm sync"),
    (SelectionMissing, "Choose presets with:  ccmm sync --reselect"),
    (InvalidVersion, "Pass a commit SHA without slashes or spaces, e.g. 1a2b3c4d"),
    (LockStateInvalid, "Check the current state with:  ccmm status"),
    (SnapshotIOFailed, "Check disk space and permissions under ~/.ccmm/projects/"),
    (ProjectLockTimeout, "Wait for the other ccmm process to finish, then retry."),
    (ConfigError, "Fix the file, or inspect it with:  ccmm config list"),
]


def err_result(result: Result) -> str:
    """Render a failed *result* with a fix-it hint for its error kind."""
    exc = result.error
    if isinstance(exc, FetchBatchFailed):
        return err_fetch(exc)
    for kind, hint in _HINTS:
        if isinstance(exc, kind):
            return f"[red]Error:[/] {result.message}\n  {hint}"
    return f"[red]Error:[/] {result.message}"
