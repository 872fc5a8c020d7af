"""Shared CLI plumbing: logging setup, config loading, result reporting."""

from __future__ import annotations

import logging

import typer
from rich.console import Console
from rich.logging import RichHandler

from ccmm.cli.errors import err_config, err_not_initialized, err_result
from ccmm.cli.select import prompt_selection
from ccmm.config import CcmmConfig, ConfigError, is_initialized, load_config
from ccmm.core.errors import Result
from ccmm.core.orchestrator import Orchestrator

console = Console()


def configure_logging(verbose: bool) -> None:
    """Route the ``ccmm`` logger through rich on stderr.

    Only the package logger is configured; the root logger is left alone.
    """
    logger = logging.getLogger("ccmm")
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(console=Console(stderr=True), show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
        logger.addHandler(handler)


def load_config_or_exit() -> CcmmConfig:
    try:
        return load_config()
    except ConfigError as exc:
        console.print(err_config(exc))
        raise typer.Exit(1)


def require_initialized() -> None:
    if not is_initialized():
        console.print(err_not_initialized())
        raise typer.Exit(1)


def build_orchestrator(cfg: CcmmConfig, *, interactive: bool) -> Orchestrator:
    """Orchestrator wired to the real git collaborators.

    Interactive runs prompt for presets; otherwise the configured defaults
    are used.
    """
    return Orchestrator(cfg, selector=prompt_selection if interactive else None)


def report(result: Result) -> None:
    """Print *result*; exit non-zero on failure."""
    if result.ok:
        console.print(f"[green]✓[/] {result.message}")
        return
    console.print(err_result(result))
    raise typer.Exit(result.exit_code)
