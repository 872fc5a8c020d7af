"""Per-project preset selection registry.

One YAML record per project, keyed by slug only — the selection is
commit-independent; callers pick the commit when resolving pointers:

  ~/.ccmm/projects/<slug>/preset-selection.yaml

    selected_presets:
      - repo: github.com/myorg/CLAUDE-md
        file: react.md
    last_updated: "2025-01-01T12:00:00+00:00"
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

import yaml

from ccmm.config import CcmmConfig
from ccmm.core.errors import IdentityResolutionFailed, SelectionMissing
from ccmm.core.models import HEAD, PresetPointer, ProjectSelection, SelectedPreset
from ccmm.core.paths import write_atomic
from ccmm.core.slug import parse_git_url

logger = logging.getLogger(__name__)

SELECTION_FILE = "preset-selection.yaml"

# github.com/owner/repo (no scheme)
_BARE_RE = re.compile(r"^([^/:\s]+\.[^/:\s]+)/([^/\s]+)/([^/\s]+?)(?:\.git)?/?$")


def parse_repository_url(url: str) -> tuple[str, str, str]:
    """Return ``(host, owner, repo)`` for a preset repository URL.

    Accepts ``github.com/owner/repo`` in addition to every shape
    ``parse_git_url`` understands (https, scp-like, ssh, file://).

    Raises:
        SelectionMissing: If the URL is not a recognisable repository.
    """
    bare = _BARE_RE.match(url.strip())
    if bare and "://" not in url:
        host, owner, repo = bare.groups()
        return host, owner, repo
    try:
        remote = parse_git_url(url)
    except IdentityResolutionFailed as exc:
        raise SelectionMissing(f"Invalid preset repository URL: {url}") from exc
    return remote.host, remote.owner, remote.repo


def make_pointer(preset: SelectedPreset, commit: str = HEAD) -> PresetPointer:
    host, owner, repo = parse_repository_url(preset.repo)
    return PresetPointer(
        host=host, owner=owner, repo=repo, file=preset.file, commit=commit, source=preset.repo
    )


def default_selection(config: CcmmConfig) -> list[SelectedPreset]:
    """Selection built from ``default_presets`` in the global config."""
    repo = config.primary_repository
    if repo is None:
        return []
    return [SelectedPreset(repo=repo, file=name) for name in config.default_presets]


class PresetRegistry:
    """Load and save project preset selections under *projects_dir*."""

    def __init__(self, projects_dir: Path) -> None:
        self.projects_dir = projects_dir

    def path_for(self, slug: str) -> Path:
        return self.projects_dir / slug / SELECTION_FILE

    def load(self, slug: str) -> ProjectSelection | None:
        """Return the stored selection, or None if the project has none yet.

        Raises:
            SelectionMissing: If the record exists but cannot be read.
        """
        path = self.path_for(slug)
        if not path.exists():
            return None
        try:
            raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise SelectionMissing(f"Preset selection '{path}' is unreadable: {exc}") from exc
        if not isinstance(raw, dict):
            raise SelectionMissing(f"Preset selection '{path}' must be a mapping.")

        presets: list[SelectedPreset] = []
        for entry in raw.get("selected_presets") or []:
            if not isinstance(entry, dict) or not entry.get("repo") or not entry.get("file"):
                raise SelectionMissing(f"Malformed entry in '{path}': {entry!r}")
            presets.append(SelectedPreset(repo=str(entry["repo"]), file=str(entry["file"])))

        last_updated = raw.get("last_updated")
        return ProjectSelection(
            slug=slug,
            presets=presets,
            last_updated=str(last_updated) if last_updated is not None else None,
        )

    def save(self, slug: str, presets: Iterable[SelectedPreset]) -> ProjectSelection:
        """Replace the project's selection with *presets* (order preserved)."""
        selection = ProjectSelection(
            slug=slug,
            presets=list(presets),
            last_updated=datetime.now(timezone.utc).isoformat(timespec="seconds"),
        )
        data = {
            "selected_presets": [p.to_dict() for p in selection.presets],
            "last_updated": selection.last_updated,
        }
        write_atomic(self.path_for(slug), yaml.safe_dump(data, sort_keys=False))
        logger.debug("Saved %d preset(s) for project %s", len(selection.presets), slug)
        return selection

    @staticmethod
    def resolve_pointers(selection: ProjectSelection, commit: str = HEAD) -> list[PresetPointer]:
        """Stamp every selected preset with *commit*."""
        return [make_pointer(preset, commit) for preset in selection.presets]
