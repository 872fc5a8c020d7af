"""Advisory per-project lock so two ccmm processes do not interleave writes.

Uses ``fcntl.flock`` with ``LOCK_EX | LOCK_NB`` in a poll loop on
``<project_dir>/.ccmm.lock``. The lock is advisory: other tools editing
CLAUDE.md are not blocked.
"""

from __future__ import annotations

import fcntl
import logging
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from ccmm.core.errors import ProjectLockTimeout

logger = logging.getLogger(__name__)

LOCK_FILE = ".ccmm.lock"
_POLL_INTERVAL = 0.1


@contextmanager
def project_lock(project_dir: Path, timeout: float = 10.0) -> Iterator[Path]:
    """Hold an exclusive advisory lock on *project_dir* for the block.

    Raises:
        ProjectLockTimeout: If the lock is not acquired within *timeout* seconds.
    """
    project_dir.mkdir(parents=True, exist_ok=True)
    lock_path = project_dir / LOCK_FILE
    deadline = time.monotonic() + timeout

    with open(lock_path, "a+") as fh:
        while True:
            try:
                fcntl.flock(fh.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
                break
            except OSError:
                if time.monotonic() >= deadline:
                    raise ProjectLockTimeout(
                        f"Another ccmm process is working on {project_dir} "
                        f"(waited {timeout:g}s for {lock_path.name})."
                    )
                time.sleep(_POLL_INTERVAL)
        logger.debug("Acquired %s", lock_path)
        try:
            yield lock_path
        finally:
            fcntl.flock(fh.fileno(), fcntl.LOCK_UN)
