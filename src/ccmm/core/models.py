"""Domain models shared by the sync / lock / unlock flows."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

HEAD = "HEAD"  # "latest" sentinel version


@dataclass(frozen=True)
class PresetPointer:
    """One preset file in a repository at a specific commit.

    Example: ``github.com/myorg/CLAUDE-md/react.md@HEAD``.
    ``source`` is the repository URL the pointer was resolved from; it is
    carried for the fetcher and does not take part in equality.
    """

    host: str
    owner: str
    repo: str
    file: str
    commit: str = HEAD
    source: str = field(default="", compare=False)

    def at(self, commit: str) -> PresetPointer:
        return PresetPointer(self.host, self.owner, self.repo, self.file, commit, self.source)

    def __str__(self) -> str:
        return f"{self.host}/{self.owner}/{self.repo}/{self.file}@{self.commit}"


@dataclass
class PresetInfo:
    """A fetched preset and where its content lives locally."""

    pointer: PresetPointer
    local_path: Path | None
    content: str = ""


@dataclass
class MergedPreset:
    """A generated merged-preset-<commit>.md file."""

    path: Path
    commit: str
    lines: list[str] = field(default_factory=list)
    presets: list[PresetInfo] = field(default_factory=list)

    @property
    def content(self) -> str:
        return "\n".join(self.lines)


@dataclass
class VendorInfo:
    """Snapshot directory holding preset copies for one locked commit."""

    path: Path
    locked_sha: str
    files: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class SelectedPreset:
    """A preset chosen for a project, independent of any commit."""

    repo: str
    file: str

    def to_dict(self) -> dict[str, str]:
        return {"repo": self.repo, "file": self.file}


@dataclass
class ProjectSelection:
    """Persisted preset selection for one project (keyed by slug)."""

    slug: str
    presets: list[SelectedPreset] = field(default_factory=list)
    last_updated: str | None = None
