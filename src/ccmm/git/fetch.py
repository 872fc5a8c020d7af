"""Fetch a single preset file's content at a commit.

Sources:
- ``file:///path/to/repo`` — HEAD reads the working tree; any other commit is
  read with ``git show <commit>:<file>``.
- ``github.com`` — ``gh api`` first (uses the gh login), then
  raw.githubusercontent.com over HTTPS with GITHUB_TOKEN / GITHUB_ACCESS_TOKEN
  as a bearer token when set.

Security requirements:
- shell=False always.
- Tokens are read from the environment and never included in error messages.
- Max response body: 5 MB. Timeout: 30 seconds.
"""

from __future__ import annotations

import base64
import json
import os
import subprocess
import urllib.error
import urllib.parse
import urllib.request
from pathlib import Path

from ccmm.core.models import HEAD, PresetPointer

_USER_AGENT = "ccmm/0.1"
_MAX_BYTES = 5 * 1024 * 1024  # 5 MB
_TIMEOUT = 30  # seconds
_GITHUB_HOST = "github.com"


class PresetFetchError(RuntimeError):
    """Raised when a preset cannot be retrieved."""


def github_token() -> str | None:
    return os.environ.get("GITHUB_TOKEN") or os.environ.get("GITHUB_ACCESS_TOKEN") or None


def fetch_preset_content(pointer: PresetPointer) -> str:
    """Return the content of *pointer*'s file at *pointer.commit*.

    Raises:
        PresetFetchError: If the preset cannot be retrieved.
    """
    if pointer.source.startswith("file://"):
        return _fetch_local(pointer)
    if pointer.host != _GITHUB_HOST:
        raise PresetFetchError(f"Unsupported preset host '{pointer.host}' (only github.com and file://)")
    try:
        return _fetch_with_gh(pointer)
    except PresetFetchError:
        return _fetch_with_https(pointer)


# ------------------------------------------------------------------
# file://
# ------------------------------------------------------------------


def _fetch_local(pointer: PresetPointer) -> str:
    repo_dir = Path(pointer.source[len("file://"):])
    if pointer.commit == HEAD:
        path = repo_dir / pointer.file
        try:
            return path.read_text(encoding="utf-8")
        except OSError as exc:
            raise PresetFetchError(f"Cannot read {path}: {exc.strerror or exc}") from exc

    try:
        result = subprocess.run(
            ["git", "-C", str(repo_dir), "show", f"{pointer.commit}:{pointer.file}"],
            shell=False,
            check=True,
            capture_output=True,
            text=True,
        )
    except FileNotFoundError as exc:
        raise PresetFetchError("git is not installed") from exc
    except subprocess.CalledProcessError as exc:
        raise PresetFetchError(
            f"git show {pointer.commit}:{pointer.file} failed: {(exc.stderr or '').strip()}"
        ) from exc
    return result.stdout


# ------------------------------------------------------------------
# GitHub
# ------------------------------------------------------------------


def _fetch_with_gh(pointer: PresetPointer) -> str:
    endpoint = (
        f"repos/{pointer.owner}/{pointer.repo}/contents/"
        f"{urllib.parse.quote(pointer.file)}?ref={urllib.parse.quote(pointer.commit)}"
    )
    try:
        result = subprocess.run(
            ["gh", "api", endpoint],
            shell=False,
            check=True,
            capture_output=True,
            text=True,
        )
    except FileNotFoundError as exc:
        raise PresetFetchError("gh is not installed") from exc
    except subprocess.CalledProcessError as exc:
        raise PresetFetchError(f"gh api failed: {(exc.stderr or '').strip()}") from exc

    try:
        payload = json.loads(result.stdout)
        return base64.b64decode(payload["content"]).decode("utf-8")
    except (ValueError, KeyError, TypeError) as exc:
        raise PresetFetchError(f"Unexpected gh api response for {pointer}") from exc


def raw_url(pointer: PresetPointer) -> str:
    return (
        f"https://raw.githubusercontent.com/{pointer.owner}/{pointer.repo}/"
        f"{urllib.parse.quote(pointer.commit)}/{urllib.parse.quote(pointer.file)}"
    )


def _fetch_with_https(pointer: PresetPointer) -> str:
    url = raw_url(pointer)
    headers = {"User-Agent": _USER_AGENT}
    token = github_token()
    if token:
        headers["Authorization"] = f"Bearer {token}"
    request = urllib.request.Request(url, headers=headers)
    try:
        with urllib.request.urlopen(request, timeout=_TIMEOUT) as response:
            body = response.read(_MAX_BYTES + 1)
    except urllib.error.HTTPError as exc:
        raise PresetFetchError(f"HTTP {exc.code} fetching {url}") from exc
    except (urllib.error.URLError, OSError) as exc:
        raise PresetFetchError(f"Cannot fetch {url}: {exc}") from exc

    if len(body) > _MAX_BYTES:
        raise PresetFetchError(f"Preset exceeds {_MAX_BYTES // (1024 * 1024)} MB: {url}")
    return body.decode("utf-8")
