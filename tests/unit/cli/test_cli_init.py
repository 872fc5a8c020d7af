"""Tests for ccmm init and the top-level app options."""

from __future__ import annotations

import stat
from pathlib import Path

import pytest
from typer.testing import CliRunner

from ccmm.cli import init as init_module
from ccmm.cli.main import app
from ccmm.config import load_config

runner = CliRunner()


@pytest.fixture(autouse=True)
def _no_gh(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(init_module.shutil, "which", lambda _name: None)


def test_init_yes_creates_layout(home: Path) -> None:
    result = runner.invoke(app, ["init", "--yes"])

    assert result.exit_code == 0, result.output
    ccmm_dir = home / ".ccmm"
    assert (ccmm_dir / "config.yaml").is_file()
    assert (ccmm_dir / "presets").is_dir()
    assert (ccmm_dir / "projects").is_dir()
    assert stat.S_IMODE((ccmm_dir / "config.yaml").stat().st_mode) == 0o600
    assert "ccmm initialized" in result.output


def test_init_reports_environment(home: Path) -> None:
    result = runner.invoke(app, ["init", "--yes"])
    assert "gh CLI not found" in result.output
    assert "GITHUB_TOKEN" in result.output


def test_init_with_repo_option(home: Path) -> None:
    result = runner.invoke(
        app, ["init", "--yes", "--repo", "github.com/myorg/CLAUDE-md", "--repo", "github.com/a/b"]
    )

    assert result.exit_code == 0, result.output
    cfg = load_config()
    assert cfg.default_preset_repositories == ["github.com/myorg/CLAUDE-md", "github.com/a/b"]


def test_init_prompts_for_repository(home: Path) -> None:
    result = runner.invoke(app, ["init"], input="github.com/myorg/CLAUDE-md\n")

    assert result.exit_code == 0, result.output
    assert load_config().default_preset_repositories == ["github.com/myorg/CLAUDE-md"]


def test_init_prompt_can_be_skipped(home: Path) -> None:
    result = runner.invoke(app, ["init"], input="\n")

    assert result.exit_code == 0, result.output
    assert load_config().default_preset_repositories == []


def test_init_rejects_invalid_repository(home: Path) -> None:
    result = runner.invoke(app, ["init", "--yes", "--repo", "nonsense"])
    assert result.exit_code == 1
    assert "Invalid preset repository URL" in result.output


def test_init_again_can_be_cancelled(home: Path) -> None:
    runner.invoke(app, ["init", "--yes"])
    result = runner.invoke(app, ["init"], input="n\n")

    assert result.exit_code == 0
    assert "Cancelled" in result.output


def test_init_again_keeps_repositories(home: Path) -> None:
    runner.invoke(app, ["init", "--yes", "--repo", "github.com/a/b"])
    result = runner.invoke(app, ["init", "--yes", "--repo", "github.com/a/b"])

    assert result.exit_code == 0, result.output
    assert load_config().default_preset_repositories == ["github.com/a/b"]


def test_version_option() -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert result.output.startswith("ccmm ")
