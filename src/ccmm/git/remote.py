"""Local git queries: repository check, origin URL, HEAD commit.

shell=False always; git is invoked with list arguments.
"""

from __future__ import annotations

import subprocess
from pathlib import Path

from ccmm.core.errors import IdentityResolutionFailed


def _git(args: list[str], cwd: Path) -> str:
    result = subprocess.run(
        ["git", "-C", str(cwd), *args],
        shell=False,
        check=True,
        capture_output=True,
        text=True,
    )
    return result.stdout.strip()


def is_git_repository(path: Path) -> bool:
    try:
        return _git(["rev-parse", "--is-inside-work-tree"], path) == "true"
    except (subprocess.CalledProcessError, FileNotFoundError):
        return False


def get_origin_url(path: Path) -> str:
    """Return the fetch URL of the ``origin`` remote of the repository at *path*.

    Raises:
        IdentityResolutionFailed: If *path* is not a git repository or has no origin.
    """
    if not is_git_repository(path):
        raise IdentityResolutionFailed(f"Not a git repository: {path}")
    try:
        url = _git(["remote", "get-url", "origin"], path)
    except subprocess.CalledProcessError as exc:
        raise IdentityResolutionFailed(
            f"Could not read the origin remote of {path}: {(exc.stderr or '').strip()}"
        ) from exc
    if not url:
        raise IdentityResolutionFailed(f"Origin remote of {path} has no URL")
    return url


def get_head_sha(path: Path) -> str:
    """Return the full HEAD commit SHA of the repository at *path*.

    Raises:
        RuntimeError: If git fails (not a repository, no commits).
    """
    try:
        return _git(["rev-parse", "HEAD"], path)
    except (subprocess.CalledProcessError, FileNotFoundError) as exc:
        stderr = getattr(exc, "stderr", "") or ""
        raise RuntimeError(f"git rev-parse HEAD failed in {path}: {stderr.strip()}") from exc
