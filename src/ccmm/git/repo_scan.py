"""List preset files in a repository and resolve its HEAD commit.

GitHub repositories are read through ``gh api`` with a fallback to the REST
API over HTTPS; ``file://`` repositories are read from disk.
"""

from __future__ import annotations

import json
import subprocess
import urllib.error
import urllib.request
from pathlib import Path
from typing import Any

from ccmm.core.registry import parse_repository_url
from ccmm.git.fetch import PresetFetchError, github_token
from ccmm.git.remote import get_head_sha

_API = "https://api.github.com"
_TIMEOUT = 30


def list_preset_files(repo_url: str) -> list[str]:
    """Return repository-relative paths of every ``*.md`` file, sorted.

    Raises:
        PresetFetchError: If the repository cannot be listed.
    """
    if repo_url.startswith("file://"):
        root = Path(repo_url[len("file://"):])
        if not root.is_dir():
            raise PresetFetchError(f"Preset repository not found: {root}")
        return sorted(
            p.relative_to(root).as_posix()
            for p in root.rglob("*.md")
            if ".git" not in p.relative_to(root).parts
        )

    _host, owner, repo = parse_repository_url(repo_url)
    tree = _github_json(f"repos/{owner}/{repo}/git/trees/HEAD?recursive=1")
    entries = tree.get("tree", []) if isinstance(tree, dict) else []
    return sorted(
        e["path"]
        for e in entries
        if e.get("type") == "blob" and str(e.get("path", "")).endswith(".md")
    )


def resolve_head_commit(repo_url: str) -> str:
    """Return the current HEAD commit SHA of the preset repository.

    Raises:
        PresetFetchError: If the commit cannot be resolved.
    """
    if repo_url.startswith("file://"):
        try:
            return get_head_sha(Path(repo_url[len("file://"):]))
        except RuntimeError as exc:
            raise PresetFetchError(str(exc)) from exc

    _host, owner, repo = parse_repository_url(repo_url)
    payload = _github_json(f"repos/{owner}/{repo}/commits/HEAD")
    sha = payload.get("sha") if isinstance(payload, dict) else None
    if not sha:
        raise PresetFetchError(f"Could not resolve HEAD of {repo_url}")
    return str(sha)


def _github_json(endpoint: str) -> Any:
    try:
        result = subprocess.run(
            ["gh", "api", endpoint],
            shell=False,
            check=True,
            capture_output=True,
            text=True,
        )
        return json.loads(result.stdout)
    except (FileNotFoundError, subprocess.CalledProcessError, ValueError):
        pass

    headers = {"Accept": "application/vnd.github+json", "User-Agent": "ccmm/0.1"}
    token = github_token()
    if token:
        headers["Authorization"] = f"Bearer {token}"
    request = urllib.request.Request(f"{_API}/{endpoint}", headers=headers)
    try:
        with urllib.request.urlopen(request, timeout=_TIMEOUT) as response:
            return json.loads(response.read().decode("utf-8"))
    except urllib.error.HTTPError as exc:
        hint = " (set GITHUB_TOKEN or run 'gh auth login')" if exc.code in (401, 403, 404) else ""
        raise PresetFetchError(f"GitHub API returned HTTP {exc.code} for {endpoint}{hint}") from exc
    except (urllib.error.URLError, OSError, ValueError) as exc:
        raise PresetFetchError(f"GitHub API request failed for {endpoint}: {exc}") from exc
