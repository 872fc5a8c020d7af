"""Filesystem layout under the ccmm home, tilde handling and atomic writes.

Layout:
  ~/.ccmm/config.yaml
  ~/.ccmm/presets/<host>/<owner>/<repo>/<file>          — fetched preset cache (HEAD)
  ~/.ccmm/presets/.commits/<commit>/<host>/...          — content synced at a commit
  ~/.ccmm/projects/<slug>/preset-selection.yaml          — registry record
  ~/.ccmm/projects/<slug>/merged-preset-<commit>.md      — merged preset
  ~/.ccmm/projects/<slug>/vendor/<commit>/<file>         — lock snapshots
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

from ccmm.core.models import HEAD, PresetPointer

CLAUDE_MD = "CLAUDE.md"
MERGED_PREFIX = "merged-preset-"
VENDOR_DIR = "vendor"
COMMITS_DIR = ".commits"


@dataclass(frozen=True)
class ProjectPaths:
    """Paths for one project at one commit."""

    root: Path
    claude_md: Path
    home_preset_dir: Path
    project_dir: Path
    merged_preset_path: Path

    @property
    def vendor_dir(self) -> Path:
        return self.project_dir / VENDOR_DIR

    def for_commit(self, commit: str) -> ProjectPaths:
        return ProjectPaths(
            root=self.root,
            claude_md=self.claude_md,
            home_preset_dir=self.home_preset_dir,
            project_dir=self.project_dir,
            merged_preset_path=merged_preset_path(self.project_dir, commit),
        )


def merged_preset_path(project_dir: Path, commit: str) -> Path:
    return project_dir / f"{MERGED_PREFIX}{commit}.md"


def project_paths(project_root: Path, slug: str, home: Path, commit: str = HEAD) -> ProjectPaths:
    """Build the *ProjectPaths* for *slug* under the ccmm *home*."""
    project_dir = home / "projects" / slug
    return ProjectPaths(
        root=project_root,
        claude_md=project_root / CLAUDE_MD,
        home_preset_dir=home / "presets",
        project_dir=project_dir,
        merged_preset_path=merged_preset_path(project_dir, commit),
    )


def preset_local_path(presets_dir: Path, pointer: PresetPointer) -> Path:
    """Cache location of *pointer*'s content (independent of commit)."""
    return presets_dir / pointer.host / pointer.owner / pointer.repo / pointer.file


def preset_cache_dir(presets_dir: Path, commit: str) -> Path:
    """Cache root for content fetched at *commit*; HEAD uses the shared cache."""
    if commit == HEAD:
        return presets_dir
    return presets_dir / COMMITS_DIR / commit


# ------------------------------------------------------------------
# Tilde handling
# ------------------------------------------------------------------


def expand_tilde(path: str, home: Path | None = None) -> Path:
    """Expand a leading ``~`` to *home* (default: the user's home)."""
    base = home if home is not None else Path.home()
    if path == "~":
        return base
    if path.startswith("~/"):
        return base / path[2:]
    return Path(path)


def contract_tilde(path: Path | str, home: Path | None = None) -> str:
    """Return *path* as ``~/...`` when it lies under *home*, else unchanged.

    Example:
        contract_tilde("/home/u/.ccmm/presets/a.md")  → "~/.ccmm/presets/a.md"
        contract_tilde("/srv/presets/a.md")           → "/srv/presets/a.md"
    """
    base = Path(os.path.abspath(home if home is not None else Path.home()))
    target = Path(os.path.abspath(path))
    try:
        rel = target.relative_to(base)
    except ValueError:
        return str(path)
    if rel == Path("."):
        return "~"
    return "~/" + rel.as_posix()


# ------------------------------------------------------------------
# Atomic write
# ------------------------------------------------------------------


def write_atomic(path: Path, content: str) -> None:
    """Write *content* to *path* atomically (temp → rename).

    Creates parent directories if needed. An existing file keeps its mode;
    new files get 0o644.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    mode = path.stat().st_mode & 0o777 if path.exists() else 0o644

    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        os.chmod(tmp_path, mode)
        os.replace(tmp_path, path)
    except Exception:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise
