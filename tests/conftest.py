"""Shared pytest fixtures."""

from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from ccmm.config import CcmmConfig, ensure_global_config, load_config
from ccmm.core.models import PresetPointer
from ccmm.core.orchestrator import Orchestrator

ORIGIN_URL = "git@github.com:acme/webapp.git"
PRESET_REPO = "github.com/myorg/CLAUDE-md"


class FakeFetcher:
    """In-memory preset source: ``{file: content}`` per commit, with call log."""

    def __init__(self) -> None:
        self.files: dict[tuple[str, str], str] = {}
        self.failing: set[str] = set()
        self.calls: list[PresetPointer] = []

    def add(self, file: str, content: str, commit: str = "HEAD") -> None:
        self.files[(file, commit)] = content

    def __call__(self, pointer: PresetPointer) -> str:
        self.calls.append(pointer)
        if pointer.file in self.failing:
            raise RuntimeError(f"404 for {pointer.file}")
        try:
            return self.files[(pointer.file, pointer.commit)]
        except KeyError:
            return self.files[(pointer.file, "HEAD")]


@pytest.fixture
def home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolated $HOME with ccmm home at ~/.ccmm (not yet initialized)."""
    user_home = tmp_path / "home"
    user_home.mkdir()
    monkeypatch.setenv("HOME", str(user_home))
    monkeypatch.setenv("CCMM_HOME", str(user_home / ".ccmm"))
    monkeypatch.delenv("CCMM_DEFAULT_PRESET_REPO", raising=False)
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    monkeypatch.delenv("GITHUB_ACCESS_TOKEN", raising=False)
    return user_home


@pytest.fixture
def ccmm_dir(home: Path) -> Path:
    """Initialized ccmm home."""
    return ensure_global_config().parent


@pytest.fixture
def config(ccmm_dir: Path) -> CcmmConfig:
    cfg = load_config()
    cfg.default_preset_repositories = [PRESET_REPO]
    cfg.default_presets = ["react.md", "typescript.md"]
    return cfg


@pytest.fixture
def fetcher() -> FakeFetcher:
    fake = FakeFetcher()
    fake.add("react.md", "# React\n")
    fake.add("typescript.md", "# TypeScript\n")
    return fake


@pytest.fixture
def project(tmp_path: Path) -> Path:
    root = tmp_path / "webapp"
    root.mkdir()
    return root


@pytest.fixture
def orchestrator(config: CcmmConfig, ccmm_dir: Path, fetcher: FakeFetcher) -> Orchestrator:
    return Orchestrator(
        config,
        home=ccmm_dir,
        fetcher=fetcher,
        origin_resolver=lambda _root: ORIGIN_URL,
        head_resolver=lambda _repo: "0123456789abcdef0123456789abcdef01234567",
    )


# ---------------------------------------------------------------------------
# Real git repositories
# ---------------------------------------------------------------------------


def _git(repo: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", "-C", str(repo), *args], check=True, capture_output=True, text=True
    )
    return result.stdout.strip()


@pytest.fixture
def preset_repo(tmp_path: Path) -> Path:
    """A local preset repository with two commits.

    First commit: react.md "# React v1", lang/python.md.
    Second commit: react.md "# React v2", typescript.md.
    """
    repo = tmp_path / "presets-repo"
    repo.mkdir()
    subprocess.run(["git", "init", str(repo)], check=True, capture_output=True)
    _git(repo, "config", "user.email", "test@test.com")
    _git(repo, "config", "user.name", "Test")

    (repo / "react.md").write_text("# React v1\n", encoding="utf-8")
    (repo / "lang").mkdir()
    (repo / "lang" / "python.md").write_text("# Python\n", encoding="utf-8")
    _git(repo, "add", ".")
    _git(repo, "commit", "-m", "Initial presets")

    (repo / "react.md").write_text("# React v2\n", encoding="utf-8")
    (repo / "typescript.md").write_text("# TypeScript\n", encoding="utf-8")
    _git(repo, "add", ".")
    _git(repo, "commit", "-m", "Update presets")
    return repo
