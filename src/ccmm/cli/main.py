"""ccmm CLI entry point."""

from __future__ import annotations

import importlib.metadata
from typing import Annotated

import typer

from ccmm.cli.common import configure_logging
from ccmm.cli.config import config_app
from ccmm.cli.init import init_cmd
from ccmm.cli.lock import lock_cmd, unlock_cmd
from ccmm.cli.status import status_cmd
from ccmm.cli.sync import sync_cmd
from ccmm.cli.vendor import vendor_app


def _installed_version() -> str:
    try:
        return importlib.metadata.version("ccmm")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"ccmm {_installed_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="ccmm",
    help=(
        "ccmm — CLAUDE.md preset manager.\n\n"
        "  ccmm sync     Import shared presets into the project's CLAUDE.md.\n"
        "  ccmm lock     Pin presets to a commit (snapshot under vendor/).\n"
        "  ccmm unlock   Track the latest presets again."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logging."),
    ] = False,
) -> None:
    """ccmm — CLAUDE.md preset manager."""
    configure_logging(verbose)


app.command("init")(init_cmd)
app.command("sync")(sync_cmd)
app.command("lock")(lock_cmd)
app.command("unlock")(unlock_cmd)
app.command("status")(status_cmd)
app.add_typer(config_app, name="config")
app.add_typer(vendor_app, name="vendor")


if __name__ == "__main__":
    app()
