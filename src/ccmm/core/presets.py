"""Parallel preset fetching into the local preset cache.

All-or-nothing: every pointer is fetched concurrently (one worker per preset);
if any fetch fails, nothing is written and FetchBatchFailed lists every failure.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable

from ccmm.core.errors import FetchBatchFailed
from ccmm.core.models import PresetInfo, PresetPointer
from ccmm.core.paths import preset_local_path, write_atomic

logger = logging.getLogger(__name__)

Fetcher = Callable[[PresetPointer], str]


def fetch_presets(
    pointers: list[PresetPointer], presets_dir: Path, fetcher: Fetcher
) -> list[PresetInfo]:
    """Fetch *pointers* with *fetcher* and cache their content under *presets_dir*.

    Returns:
        One PresetInfo per pointer, in input order.

    Raises:
        FetchBatchFailed: If any pointer could not be fetched or written.
    """
    if not pointers:
        return []

    with ThreadPoolExecutor(max_workers=len(pointers)) as executor:
        futures = [executor.submit(fetcher, pointer) for pointer in pointers]

    contents: list[str] = []
    failures: list[tuple[PresetPointer, str]] = []
    for pointer, future in zip(pointers, futures):
        exc = future.exception()
        if exc is not None:
            logger.debug("Fetch failed for %s: %s", pointer, exc)
            failures.append((pointer, str(exc) or type(exc).__name__))
        else:
            contents.append(future.result())

    if failures:
        raise FetchBatchFailed(failures)

    presets: list[PresetInfo] = []
    for pointer, content in zip(pointers, contents):
        local_path = preset_local_path(presets_dir, pointer)
        try:
            write_atomic(local_path, content)
        except OSError as exc:
            raise FetchBatchFailed([(pointer, f"cannot write {local_path}: {exc}")]) from exc
        logger.debug("Fetched %s → %s", pointer, local_path)
        presets.append(PresetInfo(pointer=pointer, local_path=local_path, content=content))
    return presets
