"""CLAUDE.md parser / serializer.

A managed CLAUDE.md has two regions:

    <free content, written by the user>
    <blank line>
    @~/.ccmm/projects/<slug>/merged-preset-<commit>.md

Only the last line is machine-managed. It is detected by an exact pattern
match, so a user line that happens to match the pattern at the very end of
the file is indistinguishable from a managed one.

Usage:
    content = read_claude_md(Path("CLAUDE.md"))
    write_claude_md(Path("CLAUDE.md"), content.free_content, merged_path)
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from ccmm.core.errors import DocumentParseFailed
from ccmm.core.paths import write_atomic

# @<path>/merged-preset-<commit>.md (absolute, ~/ or relative path)
_IMPORT_RE = re.compile(r"^@(.+/merged-preset-([^/]*)\.md)$")


@dataclass(frozen=True)
class ImportInfo:
    line: str
    path: str
    commit: str


@dataclass(frozen=True)
class ClaudeMdContent:
    free_content: str
    import_line: str | None = None
    import_info: ImportInfo | None = None

    @property
    def is_managed(self) -> bool:
        return self.import_line is not None


def match_import_line(line: str) -> ImportInfo | None:
    """Return the parsed managed line, or None if *line* is not one.

    Raises:
        DocumentParseFailed: If *line* matches the pattern but has no commit.
    """
    match = _IMPORT_RE.match(line)
    if not match:
        return None
    path, commit = match.groups()
    if not commit:
        raise DocumentParseFailed(f"Managed import line has no version: {line!r}")
    return ImportInfo(line=line, path=path, commit=commit)


def parse_claude_md(text: str) -> ClaudeMdContent:
    """Split *text* into free content and the managed import line."""
    body = text
    # Editors often append a newline after the last line; tolerate one.
    if body.endswith("\r\n") and not body.endswith("\n\r\n"):
        body = body[:-2]
    elif body.endswith("\n") and not body.endswith("\n\n"):
        body = body[:-1]

    head, sep, last_line = body.rpartition("\n")
    last_line = last_line.removesuffix("\r")
    info = match_import_line(last_line)
    if info is None:
        return ClaudeMdContent(free_content=text)

    before = head + sep
    if before.endswith("\r\n\r\n") or before == "\r\n":
        before = before[:-2]
    elif before.endswith("\n\n") or before == "\n":
        before = before[:-1]
    return ClaudeMdContent(free_content=before, import_line=last_line, import_info=info)


def render_claude_md(free_content: str, merged_path: str) -> str:
    """Return the full CLAUDE.md text for *free_content* + the managed line.

    Free content is treated as a sequence of complete lines: a missing final
    newline is added before the separating blank line. CRLF free content gets
    a CRLF separator.
    """
    import_line = f"@{merged_path}"
    if not free_content:
        return import_line
    if not free_content.endswith("\n"):
        free_content += "\n"
    newline = "\r\n" if free_content.endswith("\r\n") else "\n"
    return f"{free_content}{newline}{import_line}"


def read_claude_md(path: Path) -> ClaudeMdContent:
    """Parse *path*; a missing file is an empty, unmanaged document."""
    if not path.exists():
        return ClaudeMdContent(free_content="")
    # newline="" keeps CRLF documents CRLF on rewrite.
    with open(path, encoding="utf-8", newline="") as f:
        return parse_claude_md(f.read())


def write_claude_md(path: Path, free_content: str, merged_path: str) -> str:
    """Rewrite *path* with *free_content* and a managed line for *merged_path*.

    Returns the new managed line.
    """
    write_atomic(path, render_claude_md(free_content, merged_path))
    return f"@{merged_path}"
