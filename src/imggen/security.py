"""Filesystem safety utilities for imggen."""

from __future__ import annotations

import asyncio
import os
import sys
import tempfile
from pathlib import Path

import aiofiles
import aiofiles.os

from imggen.constants import WINDOWS_RESERVED_NAMES

# Windows-specific retry settings for file operations
_WINDOWS_RETRY_COUNT = 5
_WINDOWS_RETRY_DELAY = 0.05  # 50ms


async def _replace_with_retry_async(src: str, dst: Path) -> None:
    """Atomically replace ``dst`` with ``src``.

    On Windows, os.replace() can fail with PermissionError while the target
    is briefly locked by another process (antivirus, indexer), so the rename
    is retried with a growing delay.
    """
    if sys.platform != "win32":
        await aiofiles.os.replace(src, dst)
        return

    last_error: OSError | None = None
    for attempt in range(_WINDOWS_RETRY_COUNT):
        try:
            await aiofiles.os.replace(src, dst)
            return
        except PermissionError as e:
            last_error = e
            if attempt < _WINDOWS_RETRY_COUNT - 1:
                await asyncio.sleep(_WINDOWS_RETRY_DELAY * (attempt + 1))

    if last_error:
        raise last_error


async def atomic_write_bytes_async(path: Path, data: bytes) -> None:
    """Write bytes to file atomically using temp file + rename.

    A reader never observes a partially written image, even if the process
    is interrupted mid-write.

    Args:
        path: Target file path
        data: Bytes to write
    """
    path = Path(path)
    parent = path.parent
    parent.mkdir(parents=True, exist_ok=True)

    # Temp file in the same directory keeps the rename on one filesystem
    fd, tmp_path = tempfile.mkstemp(
        suffix=".tmp",
        prefix=f".{path.name}.",
        dir=parent,
    )
    try:
        os.close(fd)
        async with aiofiles.open(tmp_path, "wb") as f:
            await f.write(data)
        await _replace_with_retry_async(tmp_path, path)
    except BaseException:
        try:
            await aiofiles.os.remove(tmp_path)
        except OSError:
            pass
        raise


def is_reserved_name(stem: str) -> bool:
    """Return True if ``stem`` is a Windows device name (con, lpt1, ...)."""
    return stem.lower() in WINDOWS_RESERVED_NAMES
