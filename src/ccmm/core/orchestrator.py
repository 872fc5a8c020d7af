"""Orchestrator for sync / lock / unlock.

One object owns the collaborators every flow needs (registry, merged preset
builder, lock manager, fetcher, selector, origin resolver); the three entry
functions at the bottom of this module are thin wrappers that turn raised
CcmmError / ConfigError into a Result for the CLI.

Flow (sync):
  origin URL → slug → parse CLAUDE.md → preset selection → fetch (parallel)
  → merged-preset-<commit>.md → rewrite CLAUDE.md managed line
"""

from __future__ import annotations

import logging
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from ccmm.config import CcmmConfig, ConfigError, ccmm_home, is_initialized, reload_config
from ccmm.core.document import ClaudeMdContent, read_claude_md, write_claude_md
from ccmm.core.errors import (
    CcmmError,
    LockStateInvalid,
    NotInitialized,
    Result,
    SelectionMissing,
)
from ccmm.core.lock import (
    LockManager,
    LockState,
    list_snapshots,
    validate_lock_version,
    validate_version,
)
from ccmm.core.merged import MergedPresetBuilder
from ccmm.core.models import HEAD, MergedPreset, ProjectSelection, SelectedPreset, VendorInfo
from ccmm.core.paths import (
    ProjectPaths,
    contract_tilde,
    expand_tilde,
    preset_cache_dir,
    project_paths,
)
from ccmm.core.presets import Fetcher, fetch_presets
from ccmm.core.project_lock import project_lock
from ccmm.core.registry import PresetRegistry, default_selection
from ccmm.core.slug import make_slug
from ccmm.git.fetch import PresetFetchError, fetch_preset_content
from ccmm.git.remote import get_origin_url
from ccmm.git.repo_scan import resolve_head_commit

logger = logging.getLogger(__name__)

Selector = Callable[[CcmmConfig], list[SelectedPreset]]
OriginResolver = Callable[[Path], str]
HeadResolver = Callable[[str], str]


@dataclass(frozen=True)
class ProjectContext:
    root: Path
    origin_url: str
    slug: str
    paths: ProjectPaths


@dataclass
class ProjectStatus:
    context: ProjectContext
    state: LockState
    import_path: str | None
    merged_exists: bool
    selection: ProjectSelection | None
    snapshots: list[VendorInfo] = field(default_factory=list)


class Orchestrator:
    """Run the sync / lock / unlock flows with injected collaborators.

    Args:
        config: Loaded global config (see ``ccmm.config.load_config``).
        home: ccmm home directory. Defaults to ``ccmm_home()``.
        fetcher: ``pointer -> content``. Defaults to ``fetch_preset_content``.
        selector: Interactive preset chooser; when None the configured
            ``default_presets`` are used.
        origin_resolver: ``project_root -> origin URL``.
        head_resolver: ``repo URL -> commit`` used by lock without a commit.
        user_home: Directory ``~`` stands for in written paths.
    """

    def __init__(
        self,
        config: CcmmConfig,
        *,
        home: Path | None = None,
        fetcher: Fetcher | None = None,
        selector: Selector | None = None,
        origin_resolver: OriginResolver | None = None,
        head_resolver: HeadResolver | None = None,
        user_home: Path | None = None,
    ) -> None:
        self.config = config
        self.home = home if home is not None else ccmm_home()
        self.fetcher = fetcher or fetch_preset_content
        self.selector = selector
        self.origin_resolver = origin_resolver or get_origin_url
        self.head_resolver = head_resolver or resolve_head_commit
        self.user_home = user_home
        self.registry = PresetRegistry(self.home / "projects")
        self.builder = MergedPresetBuilder(user_home)
        self.lock_manager = LockManager(self.builder, user_home)

    def reload_config(self) -> CcmmConfig:
        self.config = reload_config(self.config)
        return self.config

    # ------------------------------------------------------------------
    # Shared steps
    # ------------------------------------------------------------------

    def _require_initialized(self) -> None:
        if not is_initialized(self.home):
            raise NotInitialized("ccmm is not initialized. Run 'ccmm init' first.")

    def resolve_project(self, project_root: Path) -> ProjectContext:
        root = project_root.resolve()
        origin_url = self.origin_resolver(root)
        slug = make_slug(origin_url)
        logger.debug("Project %s → slug %s", root, slug)
        return ProjectContext(
            root=root,
            origin_url=origin_url,
            slug=slug,
            paths=project_paths(root, slug, self.home),
        )

    def read_document(self, ctx: ProjectContext) -> ClaudeMdContent:
        return read_claude_md(ctx.paths.claude_md)

    def detect_state(self, project_root: Path) -> LockState:
        ctx = self.resolve_project(project_root)
        return self.lock_manager.detect(self.read_document(ctx))

    def _guard(self, ctx: ProjectContext):
        return project_lock(ctx.paths.project_dir, timeout=self.config.lock_timeout)

    def _managed_path(self, merged: MergedPreset) -> str:
        return contract_tilde(merged.path, self.user_home)

    def _stored_selection(self, ctx: ProjectContext) -> ProjectSelection:
        selection = self.registry.load(ctx.slug)
        if selection is None or not selection.presets:
            raise SelectionMissing(
                "No presets are selected for this project. Run 'ccmm sync' first."
            )
        return selection

    def _selection(
        self, ctx: ProjectContext, *, reselect: bool, skip_selection: bool
    ) -> ProjectSelection:
        selection = self.registry.load(ctx.slug)
        if selection is not None and selection.presets and not reselect:
            return selection
        if skip_selection and not reselect:
            raise SelectionMissing(
                "No presets are selected for this project; run 'ccmm sync' without --skip-selection."
            )

        chosen = self.selector(self.config) if self.selector else default_selection(self.config)
        if not chosen:
            raise SelectionMissing(
                "No presets selected. Configure default_presets or run 'ccmm sync' interactively."
            )
        return self.registry.save(ctx.slug, chosen)

    # ------------------------------------------------------------------
    # Flows
    # ------------------------------------------------------------------

    def select(self, project_root: Path, presets: list[SelectedPreset]) -> ProjectSelection:
        """Replace the project's preset selection explicitly."""
        if not presets:
            raise SelectionMissing("Select at least one preset.")
        ctx = self.resolve_project(project_root)
        with self._guard(ctx):
            return self.registry.save(ctx.slug, presets)

    def sync(
        self,
        project_root: Path,
        version: str = HEAD,
        *,
        reselect: bool = False,
        skip_selection: bool = False,
    ) -> MergedPreset:
        """Fetch the selected presets at *version* and point CLAUDE.md at them."""
        version = validate_version(version)
        self._require_initialized()
        ctx = self.resolve_project(project_root)
        paths = ctx.paths.for_commit(version)

        with self._guard(ctx):
            content = self.read_document(ctx)
            state = self.lock_manager.detect(content)
            if state.locked:
                logger.warning("Project was locked to %s; sync replaces the lock.", state.version)

            selection = self._selection(ctx, reselect=reselect, skip_selection=skip_selection)
            pointers = self.registry.resolve_pointers(selection, version)
            cache_dir = preset_cache_dir(paths.home_preset_dir, version)
            presets = fetch_presets(pointers, cache_dir, self.fetcher)
            merged = self.builder.build(presets, paths.merged_preset_path, version)
            write_claude_md(paths.claude_md, content.free_content, self._managed_path(merged))
        return merged

    def lock(
        self, project_root: Path, version: str | None = None
    ) -> tuple[MergedPreset, VendorInfo]:
        """Pin the project's presets to *version* (default: HEAD of the first preset repo)."""
        self._require_initialized()
        ctx = self.resolve_project(project_root)

        with self._guard(ctx):
            content = self.read_document(ctx)
            selection = self.registry.load(ctx.slug)
            if selection is None or not selection.presets:
                raise LockStateInvalid(
                    "Nothing to lock: no presets are selected. Run 'ccmm sync' first."
                )

            if version is None:
                repo = selection.presets[0].repo
                try:
                    version = self.head_resolver(repo)
                except PresetFetchError as exc:
                    raise LockStateInvalid(f"Cannot resolve a commit to lock to from {repo}: {exc}") from exc
            version = validate_lock_version(version)

            pointers = self.registry.resolve_pointers(selection, version)
            # Pinned content is staged outside the shared preset cache.
            with tempfile.TemporaryDirectory(prefix="ccmm-lock-") as staging:
                presets = fetch_presets(pointers, Path(staging), self.fetcher)
                return self.lock_manager.lock(ctx.paths, content, presets, version)

    def unlock(self, project_root: Path) -> MergedPreset:
        """Return the project to tracking HEAD."""
        self._require_initialized()
        ctx = self.resolve_project(project_root)

        with self._guard(ctx):
            content = self.read_document(ctx)
            self.lock_manager.require_locked(content)
            selection = self._stored_selection(ctx)
            pointers = self.registry.resolve_pointers(selection, HEAD)
            presets = fetch_presets(pointers, ctx.paths.home_preset_dir, self.fetcher)
            return self.lock_manager.unlock(ctx.paths, content, presets)

    def status(self, project_root: Path) -> ProjectStatus:
        ctx = self.resolve_project(project_root)
        content = self.read_document(ctx)
        import_path = content.import_info.path if content.import_info else None
        merged_exists = (
            import_path is not None
            and expand_tilde(import_path, self.user_home).exists()
        )
        return ProjectStatus(
            context=ctx,
            state=self.lock_manager.detect(content),
            import_path=import_path,
            merged_exists=merged_exists,
            selection=self.registry.load(ctx.slug),
            snapshots=list_snapshots(ctx.paths.project_dir),
        )


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def _run(action: Callable[[], str]) -> Result:
    try:
        return Result.success(action())
    except (CcmmError, ConfigError, OSError) as exc:
        logger.debug("Operation failed", exc_info=True)
        return Result.failure(exc)


def sync(
    orchestrator: Orchestrator,
    project_root: Path,
    version: str = HEAD,
    *,
    reselect: bool = False,
    skip_selection: bool = False,
) -> Result:
    def action() -> str:
        merged = orchestrator.sync(
            project_root, version, reselect=reselect, skip_selection=skip_selection
        )
        return f"Synced {len(merged.lines)} preset(s) at {merged.commit}"

    return _run(action)


def lock(orchestrator: Orchestrator, project_root: Path, version: str | None = None) -> Result:
    def action() -> str:
        merged, vendor = orchestrator.lock(project_root, version)
        return f"Locked {len(vendor.files)} preset(s) to {merged.commit}"

    return _run(action)


def unlock(orchestrator: Orchestrator, project_root: Path) -> Result:
    def action() -> str:
        orchestrator.unlock(project_root)
        return "Preset lock has been removed"

    return _run(action)
