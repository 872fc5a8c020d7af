"""Tests for preset repository listing and HEAD resolution."""

from __future__ import annotations

import io
import json
import subprocess
from pathlib import Path

import pytest

from ccmm.git import repo_scan
from ccmm.git.fetch import PresetFetchError
from ccmm.git.repo_scan import list_preset_files, resolve_head_commit


class _FakeResponse(io.BytesIO):
    def __enter__(self) -> "_FakeResponse":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def test_list_local_presets(preset_repo: Path) -> None:
    assert list_preset_files(f"file://{preset_repo}") == ["lang/python.md", "react.md", "typescript.md"]


def test_list_local_missing_repository(tmp_path: Path) -> None:
    with pytest.raises(PresetFetchError, match="not found"):
        list_preset_files(f"file://{tmp_path / 'missing'}")


def test_resolve_local_head(preset_repo: Path) -> None:
    expected = subprocess.run(
        ["git", "-C", str(preset_repo), "rev-parse", "HEAD"],
        check=True,
        capture_output=True,
        text=True,
    ).stdout.strip()
    assert resolve_head_commit(f"file://{preset_repo}") == expected


def test_resolve_local_head_not_a_repository(tmp_path: Path) -> None:
    with pytest.raises(PresetFetchError):
        resolve_head_commit(f"file://{tmp_path}")


def test_list_github_presets_via_gh(monkeypatch: pytest.MonkeyPatch) -> None:
    tree = {
        "tree": [
            {"path": "react.md", "type": "blob"},
            {"path": "docs", "type": "tree"},
            {"path": "docs/go.md", "type": "blob"},
            {"path": "setup.py", "type": "blob"},
        ]
    }

    def fake_run(args, **kwargs):
        assert args[:2] == ["gh", "api"]
        assert args[2] == "repos/myorg/CLAUDE-md/git/trees/HEAD?recursive=1"
        return subprocess.CompletedProcess(args, 0, stdout=json.dumps(tree), stderr="")

    monkeypatch.setattr(repo_scan.subprocess, "run", fake_run)

    assert list_preset_files("github.com/myorg/CLAUDE-md") == ["docs/go.md", "react.md"]


def test_resolve_github_head_via_https(monkeypatch: pytest.MonkeyPatch) -> None:
    def no_gh(*args, **kwargs):
        raise FileNotFoundError("gh")

    def fake_urlopen(request, timeout):
        assert request.full_url == "https://api.github.com/repos/myorg/CLAUDE-md/commits/HEAD"
        return _FakeResponse(json.dumps({"sha": "f" * 40}).encode("utf-8"))

    monkeypatch.setattr(repo_scan.subprocess, "run", no_gh)
    monkeypatch.setattr(repo_scan.urllib.request, "urlopen", fake_urlopen)

    assert resolve_head_commit("https://github.com/myorg/CLAUDE-md") == "f" * 40
