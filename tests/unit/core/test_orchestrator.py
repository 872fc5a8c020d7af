"""Tests for the sync / lock / unlock flows end to end (fake fetcher, fixed origin)."""

from __future__ import annotations

from pathlib import Path

import pytest

from ccmm.core import orchestrator as flows
from ccmm.core.errors import (
    FetchBatchFailed,
    IdentityResolutionFailed,
    InvalidVersion,
    LockStateInvalid,
    NotInitialized,
    SelectionMissing,
)
from ccmm.core.lock import LockState
from ccmm.core.merged import read_members
from ccmm.core.models import SelectedPreset
from ccmm.core.orchestrator import Orchestrator

SHA = "1a2b3c4d5e6f7a8b"
REPO = "github.com/myorg/CLAUDE-md"


def _claude_md(project: Path) -> str:
    return (project / "CLAUDE.md").read_text(encoding="utf-8")


# ------------------------------------------------------------------
# sync
# ------------------------------------------------------------------


def test_sync_fresh_project(orchestrator: Orchestrator, project: Path) -> None:
    (project / "CLAUDE.md").write_text("# My Project\n", encoding="utf-8")

    merged = orchestrator.sync(project)
    slug = orchestrator.resolve_project(project).slug

    assert _claude_md(project) == f"# My Project\n\n@~/.ccmm/projects/{slug}/merged-preset-HEAD.md"
    assert merged.path.name == "merged-preset-HEAD.md"
    assert read_members(merged.path) == [
        "~/.ccmm/presets/github.com/myorg/CLAUDE-md/react.md",
        "~/.ccmm/presets/github.com/myorg/CLAUDE-md/typescript.md",
    ]


def test_sync_without_claude_md_creates_it(orchestrator: Orchestrator, project: Path) -> None:
    orchestrator.sync(project)
    assert _claude_md(project).startswith("@~/.ccmm/projects/")


def test_sync_persists_selection(orchestrator: Orchestrator, project: Path) -> None:
    orchestrator.sync(project)
    slug = orchestrator.resolve_project(project).slug

    selection = orchestrator.registry.load(slug)
    assert selection is not None
    assert [p.file for p in selection.presets] == ["react.md", "typescript.md"]


def test_sync_is_idempotent(orchestrator: Orchestrator, project: Path) -> None:
    (project / "CLAUDE.md").write_text("# My Project\n\nRules.\n", encoding="utf-8")

    first = orchestrator.sync(project)
    doc, merged = _claude_md(project), first.path.read_bytes()
    orchestrator.sync(project)

    assert _claude_md(project) == doc
    assert first.path.read_bytes() == merged


def test_sync_uses_stored_selection_over_defaults(orchestrator: Orchestrator, project: Path) -> None:
    orchestrator.select(project, [SelectedPreset(REPO, "react.md")])
    merged = orchestrator.sync(project)
    assert len(merged.lines) == 1


def test_sync_reselect_calls_selector(orchestrator: Orchestrator, project: Path) -> None:
    orchestrator.sync(project)
    orchestrator.selector = lambda _cfg: [SelectedPreset(REPO, "typescript.md")]

    merged = orchestrator.sync(project, reselect=True)
    assert merged.lines == ["@~/.ccmm/presets/github.com/myorg/CLAUDE-md/typescript.md"]


def test_sync_skip_selection_without_record_fails(orchestrator: Orchestrator, project: Path) -> None:
    with pytest.raises(SelectionMissing):
        orchestrator.sync(project, skip_selection=True)
    assert not (project / "CLAUDE.md").exists()


def test_sync_empty_selection_fails(orchestrator: Orchestrator, project: Path) -> None:
    orchestrator.config.default_presets = []
    with pytest.raises(SelectionMissing):
        orchestrator.sync(project)


def test_sync_fetch_failure_changes_nothing(
    orchestrator: Orchestrator, project: Path, fetcher, ccmm_dir: Path
) -> None:
    (project / "CLAUDE.md").write_text("# notes\n", encoding="utf-8")
    fetcher.failing.add("typescript.md")

    with pytest.raises(FetchBatchFailed) as excinfo:
        orchestrator.sync(project)

    assert [p.file for p, _ in excinfo.value.failures] == ["typescript.md"]
    assert _claude_md(project) == "# notes\n"
    assert not any((ccmm_dir / "presets").rglob("*.md"))
    assert not any((ccmm_dir / "projects").rglob("merged-preset-*.md"))


def test_sync_not_initialized(home: Path, config, fetcher, project: Path) -> None:
    orch = Orchestrator(
        config,
        home=home / "not-there",
        fetcher=fetcher,
        origin_resolver=lambda _root: "git@github.com:acme/webapp.git",
    )
    with pytest.raises(NotInitialized):
        orch.sync(project)


def test_sync_bad_origin(orchestrator: Orchestrator, project: Path) -> None:
    orchestrator.origin_resolver = lambda _root: "not a url"
    with pytest.raises(IdentityResolutionFailed):
        orchestrator.sync(project)


# ------------------------------------------------------------------
# lock / unlock
# ------------------------------------------------------------------


def test_lock_pins_claude_md(orchestrator: Orchestrator, project: Path, fetcher) -> None:
    (project / "CLAUDE.md").write_text("# My Project\n", encoding="utf-8")
    orchestrator.sync(project)

    merged, vendor = orchestrator.lock(project, SHA)

    slug = orchestrator.resolve_project(project).slug
    assert _claude_md(project) == f"# My Project\n\n@~/.ccmm/projects/{slug}/merged-preset-{SHA}.md"
    assert orchestrator.detect_state(project) == LockState.pinned(SHA)
    assert len(vendor.files) == 2
    assert all(line.startswith(f"@vendor/{SHA}/") for line in merged.lines)
    assert {p.commit for p in fetcher.calls[-2:]} == {SHA}


def test_lock_snapshot_uses_pinned_content(orchestrator: Orchestrator, project: Path, fetcher) -> None:
    fetcher.add("react.md", "# React (old)\n", commit=SHA)
    orchestrator.sync(project)

    _merged, vendor = orchestrator.lock(project, SHA)

    contents = {(vendor.path / n).read_text(encoding="utf-8") for n in vendor.files}
    assert "# React (old)\n" in contents


def test_lock_leaves_head_cache_alone(
    orchestrator: Orchestrator, project: Path, fetcher, ccmm_dir: Path
) -> None:
    fetcher.add("react.md", "# React (old)\n", commit=SHA)
    orchestrator.sync(project)
    orchestrator.lock(project, SHA)

    cached = ccmm_dir / "presets" / "github.com" / "myorg" / "CLAUDE-md" / "react.md"
    assert cached.read_text(encoding="utf-8") == "# React\n"


def test_lock_without_version_resolves_head(orchestrator: Orchestrator, project: Path) -> None:
    orchestrator.sync(project)
    merged, _vendor = orchestrator.lock(project)
    assert merged.commit == "0123456789abcdef0123456789abcdef01234567"


def test_lock_before_sync_fails(orchestrator: Orchestrator, project: Path) -> None:
    with pytest.raises(LockStateInvalid, match="Nothing to lock"):
        orchestrator.lock(project, SHA)


def test_lock_rejects_head(orchestrator: Orchestrator, project: Path) -> None:
    orchestrator.sync(project)
    with pytest.raises(LockStateInvalid):
        orchestrator.lock(project, "HEAD")


def test_unlock_when_tracking_fails(orchestrator: Orchestrator, project: Path) -> None:
    orchestrator.sync(project)
    before = _claude_md(project)

    with pytest.raises(LockStateInvalid, match="not locked"):
        orchestrator.unlock(project)
    assert _claude_md(project) == before


def test_lock_then_unlock_matches_sync(orchestrator: Orchestrator, project: Path) -> None:
    (project / "CLAUDE.md").write_text("# My Project\n\nTeam rules.\n", encoding="utf-8")
    synced = orchestrator.sync(project)
    synced_doc = _claude_md(project)
    synced_members = read_members(synced.path)

    orchestrator.lock(project, SHA)
    unlocked = orchestrator.unlock(project)

    assert _claude_md(project) == synced_doc
    assert read_members(unlocked.path) == synced_members
    assert orchestrator.detect_state(project) == LockState.tracking()
    assert (orchestrator.resolve_project(project).paths.vendor_dir / SHA).is_dir()


def test_status_reports_state(orchestrator: Orchestrator, project: Path) -> None:
    orchestrator.sync(project)
    orchestrator.lock(project, SHA)

    status = orchestrator.status(project)

    assert status.state == LockState.pinned(SHA)
    assert status.merged_exists
    assert status.import_path.endswith(f"merged-preset-{SHA}.md")
    assert [s.locked_sha for s in status.snapshots] == [SHA]
    assert [p.file for p in status.selection.presets] == ["react.md", "typescript.md"]


def test_status_unmanaged_project(orchestrator: Orchestrator, project: Path) -> None:
    status = orchestrator.status(project)
    assert status.state == LockState.tracking()
    assert status.import_path is None
    assert not status.merged_exists
    assert status.selection is None


# ------------------------------------------------------------------
# Result-returning entry points
# ------------------------------------------------------------------


def test_entry_points_success(orchestrator: Orchestrator, project: Path) -> None:
    synced = flows.sync(orchestrator, project)
    locked = flows.lock(orchestrator, project, SHA)
    unlocked = flows.unlock(orchestrator, project)

    assert synced.ok and synced.exit_code == 0
    assert "2 preset(s)" in synced.message
    assert locked.ok and SHA in locked.message
    assert unlocked.ok


def test_entry_points_failure(orchestrator: Orchestrator, project: Path) -> None:
    result = flows.unlock(orchestrator, project)

    assert not result.ok
    assert result.exit_code == 1
    assert isinstance(result.error, LockStateInvalid)
    assert result.message == "Presets are not locked."


def test_lock_two_presets_to_short_sha(orchestrator: Orchestrator, project: Path) -> None:
    orchestrator.sync(project)

    _merged, vendor = orchestrator.lock(project, "abc123def456")

    assert sorted(p.name for p in vendor.path.iterdir()) == sorted(vendor.files)
    assert len(vendor.files) == 2
    assert _claude_md(project).endswith("/merged-preset-abc123def456.md")
    assert orchestrator.detect_state(project) == LockState.pinned("abc123def456")


# ------------------------------------------------------------------
# sync at a commit
# ------------------------------------------------------------------


@pytest.mark.parametrize("version", ["", "../../escape", "feature/x"])
def test_sync_rejects_unusable_version(orchestrator: Orchestrator, project: Path, version: str) -> None:
    (project / "CLAUDE.md").write_text("# Notes\n", encoding="utf-8")

    result = flows.sync(orchestrator, project, version)

    assert not result.ok
    assert isinstance(result.error, InvalidVersion)
    assert _claude_md(project) == "# Notes\n"
    assert flows.sync(orchestrator, project).ok


def test_sync_at_commit_leaves_head_cache_alone(
    orchestrator: Orchestrator, project: Path, fetcher, ccmm_dir: Path
) -> None:
    fetcher.add("react.md", "# React (old)\n", commit=SHA)
    orchestrator.sync(project)

    merged = orchestrator.sync(project, SHA)

    cache = ccmm_dir / "presets"
    assert (cache / "github.com" / "myorg" / "CLAUDE-md" / "react.md").read_text(
        encoding="utf-8"
    ) == "# React\n"
    pinned = cache / ".commits" / SHA / "github.com" / "myorg" / "CLAUDE-md" / "react.md"
    assert pinned.read_text(encoding="utf-8") == "# React (old)\n"
    assert merged.lines[0] == f"@~/.ccmm/presets/.commits/{SHA}/github.com/myorg/CLAUDE-md/react.md"
    assert _claude_md(project).endswith(f"/merged-preset-{SHA}.md")
