"""Lock / unlock state machine and vendor snapshots.

States:
  Tracking          CLAUDE.md imports merged-preset-HEAD.md (or nothing)
  Pinned(<sha>)     CLAUDE.md imports merged-preset-<sha>.md, whose lines
                    point into ~/.ccmm/projects/<slug>/vendor/<sha>/

Transitions:
  lock(sha)   Tracking | Pinned(any) → Pinned(sha)   copies presets to vendor/<sha>/
  unlock()    Pinned(any) → Tracking                  vendor/ is left on disk

The state is inferred from the managed line, not stored. detect_lock_state()
is the only place that inference lives.
"""

from __future__ import annotations

import hashlib
import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path

from ccmm.core.document import ClaudeMdContent, write_claude_md
from ccmm.core.errors import InvalidVersion, LockStateInvalid, SnapshotIOFailed
from ccmm.core.merged import MergedPresetBuilder
from ccmm.core.models import HEAD, MergedPreset, PresetInfo, PresetPointer, VendorInfo
from ccmm.core.paths import VENDOR_DIR, ProjectPaths, contract_tilde

logger = logging.getLogger(__name__)

# Abbreviated git SHAs are at least 7 characters.
MIN_SHA_LENGTH = 7


@dataclass(frozen=True)
class LockState:
    locked: bool
    version: str | None = None

    @classmethod
    def tracking(cls) -> LockState:
        return cls(locked=False)

    @classmethod
    def pinned(cls, version: str) -> LockState:
        return cls(locked=True, version=version)

    def __str__(self) -> str:
        return f"Pinned({self.version})" if self.locked else "Tracking"


def detect_lock_state(content: ClaudeMdContent) -> LockState:
    """Infer Tracking / Pinned from CLAUDE.md's managed line.

    Pinned when the commit is not HEAD and at least 7 characters long, or
    when the imported path lies under a vendor/ directory.
    """
    info = content.import_info
    if info is None:
        return LockState.tracking()

    by_sha = info.commit != HEAD and len(info.commit) >= MIN_SHA_LENGTH
    by_vendor = f"/{VENDOR_DIR}/" in info.path
    if by_sha or by_vendor:
        return LockState.pinned(info.commit)

    if info.commit != HEAD:
        logger.warning(
            "Managed line uses version '%s' (shorter than %d characters); "
            "it is reported as not locked.",
            info.commit,
            MIN_SHA_LENGTH,
        )
    return LockState.tracking()


def referenced_version(content: ClaudeMdContent) -> str | None:
    """Non-HEAD version named by the managed line, whatever its length."""
    info = content.import_info
    if info is None or info.commit == HEAD:
        return None
    return info.commit


def validate_version(version: str) -> str:
    """Return the stripped *version* if it can name ``merged-preset-<version>.md``.

    HEAD is accepted. Raises InvalidVersion otherwise.
    """
    version = version.strip()
    if not version:
        raise InvalidVersion("A commit identifier is required.")
    if (
        "/" in version
        or "\\" in version
        or version in (".", "..")
        or any(ch.isspace() for ch in version)
    ):
        raise InvalidVersion(f"Invalid commit identifier: '{version}'")
    return version


def validate_lock_version(version: str) -> str:
    """Return the stripped *version* or raise LockStateInvalid."""
    version = validate_version(version)
    if version == HEAD:
        raise InvalidVersion("Cannot lock to HEAD; use 'ccmm sync' to track the latest presets.")
    if len(version) < MIN_SHA_LENGTH:
        logger.warning(
            "Locking to '%s' (shorter than %d characters): 'ccmm status' will not "
            "report this project as locked.",
            version,
            MIN_SHA_LENGTH,
        )
    return version


def vendor_file_name(pointer: PresetPointer) -> str:
    """Snapshot file name for *pointer*.

    ``<host>_<owner>_<repo>_<stem>-<digest><ext>`` — the readable prefix is
    ambiguous when components contain ``_``; the digest over the
    NUL-separated components keeps distinct presets apart.
    """
    components = (pointer.host, pointer.owner, pointer.repo, pointer.file)
    digest = hashlib.sha256("\0".join(components).encode("utf-8")).hexdigest()[:8]
    stem, ext = os.path.splitext(pointer.file.replace("/", "_"))
    owner = pointer.owner.replace("/", "_")
    return f"{pointer.host}_{owner}_{pointer.repo}_{stem}-{digest}{ext}"


# ---------------------------------------------------------------------------
# Snapshot housekeeping
# ---------------------------------------------------------------------------


def list_snapshots(project_dir: Path) -> list[VendorInfo]:
    """Return every vendor snapshot for the project, sorted by commit."""
    vendor_root = project_dir / VENDOR_DIR
    if not vendor_root.is_dir():
        return []
    snapshots = []
    for entry in sorted(vendor_root.iterdir()):
        if entry.is_dir():
            files = sorted(p.name for p in entry.iterdir() if p.is_file())
            snapshots.append(VendorInfo(path=entry, locked_sha=entry.name, files=files))
    return snapshots


def prune_snapshots(project_dir: Path, keep: str | None = None) -> list[VendorInfo]:
    """Delete every snapshot except *keep*; return the removed snapshots.

    Raises:
        SnapshotIOFailed: If a snapshot directory cannot be removed.
    """
    removed = []
    for snapshot in list_snapshots(project_dir):
        if snapshot.locked_sha == keep:
            continue
        try:
            shutil.rmtree(snapshot.path)
        except OSError as exc:
            raise SnapshotIOFailed(f"Cannot remove {snapshot.path}: {exc}") from exc
        removed.append(snapshot)
    return removed


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------


class LockManager:
    """Perform lock / unlock transitions for one project.

    Args:
        builder: Writes merged preset files.
        home: Directory ``~`` stands for in the managed line.
    """

    def __init__(self, builder: MergedPresetBuilder, home: Path | None = None) -> None:
        self.builder = builder
        self.home = home

    def detect(self, content: ClaudeMdContent) -> LockState:
        return detect_lock_state(content)

    def require_locked(self, content: ClaudeMdContent) -> LockState:
        state = self.detect(content)
        if not state.locked:
            raise LockStateInvalid("Presets are not locked.")
        return state

    def snapshot(self, presets: list[PresetInfo], paths: ProjectPaths, version: str) -> VendorInfo:
        """Copy every preset into ``vendor/<version>/``.

        Raises:
            SnapshotIOFailed: On a missing source file or any copy/mkdir error.
        """
        vendor = VendorInfo(path=paths.vendor_dir / version, locked_sha=version)
        try:
            vendor.path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise SnapshotIOFailed(f"Cannot create {vendor.path}: {exc}") from exc

        for preset in presets:
            if preset.local_path is None or not preset.local_path.is_file():
                raise SnapshotIOFailed(f"Source preset file not found: {preset.local_path}")
            name = vendor_file_name(preset.pointer)
            try:
                shutil.copyfile(preset.local_path, vendor.path / name)
            except OSError as exc:
                raise SnapshotIOFailed(f"Cannot copy {preset.local_path}: {exc}") from exc
            vendor.files.append(name)

        # Files left from an earlier selection locked to the same version.
        for stale in sorted(vendor.path.iterdir()):
            if stale.is_file() and stale.name not in vendor.files:
                try:
                    stale.unlink()
                except OSError as exc:
                    raise SnapshotIOFailed(f"Cannot remove {stale}: {exc}") from exc

        logger.debug("Snapshot %s holds %d file(s)", vendor.path, len(vendor.files))
        return vendor

    def lock(
        self,
        paths: ProjectPaths,
        content: ClaudeMdContent,
        presets: list[PresetInfo],
        version: str,
    ) -> tuple[MergedPreset, VendorInfo]:
        """Pin the project to *version*.

        CLAUDE.md is rewritten only after the merged file is fully written.
        """
        version = validate_lock_version(version)
        if not presets:
            raise LockStateInvalid("Nothing to lock: no presets are selected. Run 'ccmm sync' first.")

        previous = self.detect(content)
        vendor = self.snapshot(presets, paths, version)
        merged = self.builder.build_vendor(
            presets, vendor, paths.for_commit(version).merged_preset_path
        )
        write_claude_md(paths.claude_md, content.free_content, contract_tilde(merged.path, self.home))
        logger.debug("Lock transition %s → Pinned(%s)", previous, version)
        return merged, vendor

    def unlock(
        self,
        paths: ProjectPaths,
        content: ClaudeMdContent,
        presets: list[PresetInfo],
    ) -> MergedPreset:
        """Return the project to tracking HEAD; vendor snapshots stay on disk."""
        previous = self.require_locked(content)
        merged = self.builder.build(presets, paths.for_commit(HEAD).merged_preset_path, HEAD)
        write_claude_md(paths.claude_md, content.free_content, contract_tilde(merged.path, self.home))
        logger.debug("Unlock transition %s → Tracking", previous)
        return merged
