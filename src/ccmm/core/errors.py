"""Error taxonomy for the core flows, plus the Result value the entry points return.

Core code raises these; ``ccmm.core.orchestrator`` turns them into a
``Result`` and the CLI is the only place that prints and exits.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ccmm.core.models import PresetPointer


class CcmmError(Exception):
    """Base class for every expected ccmm failure."""

    kind = "error"


class NotInitialized(CcmmError):
    kind = "not-initialized"


class IdentityResolutionFailed(CcmmError):
    """The project's origin URL is missing or cannot be parsed."""

    kind = "identity"


class DocumentParseFailed(CcmmError):
    """CLAUDE.md has a managed line that matches the pattern but is malformed."""

    kind = "document"


class SelectionMissing(CcmmError):
    """No presets are selected (or resolvable) for the project."""

    kind = "selection"


class LockStateInvalid(CcmmError):
    """Lock with nothing to lock, unlock while not locked, or a bad lock version."""

    kind = "lock-state"


class InvalidVersion(LockStateInvalid):
    """A version that cannot name a merged preset file (empty, path-like, whitespace)."""

    kind = "version"


class SnapshotIOFailed(CcmmError):
    """Creating the vendor directory or copying a preset into it failed."""

    kind = "snapshot-io"


class FetchBatchFailed(CcmmError):
    """At least one preset in a batch could not be fetched.

    ``failures`` holds one (pointer, reason) pair per failed preset.
    """

    kind = "fetch"

    def __init__(self, failures: list[tuple[PresetPointer, str]]) -> None:
        self.failures = failures
        details = "; ".join(f"{pointer}: {reason}" for pointer, reason in failures)
        super().__init__(f"Failed to fetch {len(failures)} preset(s): {details}")


class ProjectLockTimeout(CcmmError):
    """Another ccmm process holds the project's advisory lock."""

    kind = "busy"


@dataclass(frozen=True)
class Result:
    """Outcome of a sync / lock / unlock invocation."""

    ok: bool
    message: str = ""
    error: Exception | None = None

    @classmethod
    def success(cls, message: str) -> Result:
        return cls(ok=True, message=message)

    @classmethod
    def failure(cls, error: Exception) -> Result:
        return cls(ok=False, message=str(error), error=error)

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1
