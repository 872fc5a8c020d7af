"""merged-preset-<commit>.md generation.

The merged file is an import list, one ``@<path>`` line per preset:

    @~/.ccmm/presets/github.com/myorg/CLAUDE-md/react.md
    @~/.ccmm/presets/github.com/myorg/CLAUDE-md/typescript.md

Tracking files reference the preset cache with ``~/`` paths so the file is
portable across machines; locked files reference their vendor snapshot with
paths relative to the merged file itself.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from ccmm.core.models import MergedPreset, PresetInfo, VendorInfo
from ccmm.core.paths import contract_tilde, write_atomic

logger = logging.getLogger(__name__)


class MergedPresetBuilder:
    """Write merged preset files.

    Args:
        home: Directory that ``~`` stands for. Defaults to the user's home.
    """

    def __init__(self, home: Path | None = None) -> None:
        self.home = home

    def build(self, presets: list[PresetInfo], output_path: Path, commit: str) -> MergedPreset:
        """Write one import line per preset that has a local path.

        Presets without a local path are skipped. Identical inputs produce
        byte-identical files.
        """
        lines = [
            f"@{contract_tilde(preset.local_path, self.home)}"
            for preset in presets
            if preset.local_path is not None
        ]
        return self._write(output_path, commit, lines, presets)

    def build_vendor(
        self, presets: list[PresetInfo], vendor: VendorInfo, output_path: Path
    ) -> MergedPreset:
        """Write import lines pointing into the *vendor* snapshot."""
        base = output_path.parent
        lines = [
            "@" + Path(os.path.relpath(vendor.path / name, base)).as_posix()
            for name in vendor.files
        ]
        return self._write(output_path, vendor.locked_sha, lines, presets)

    @staticmethod
    def _write(
        output_path: Path, commit: str, lines: list[str], presets: list[PresetInfo]
    ) -> MergedPreset:
        merged = MergedPreset(path=output_path, commit=commit, lines=lines, presets=presets)
        write_atomic(output_path, merged.content)
        logger.debug("Wrote %s (%d import line(s))", output_path, len(lines))
        return merged


def read_members(path: Path) -> list[str]:
    """Return the paths referenced by a merged preset file (empty if missing)."""
    if not path.exists():
        return []
    return [
        line[1:]
        for line in path.read_text(encoding="utf-8").splitlines()
        if line.startswith("@")
    ]
