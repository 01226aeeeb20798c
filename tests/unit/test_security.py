"""Unit tests for filesystem safety helpers."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from imggen.security import atomic_write_bytes_async, is_reserved_name


class TestAtomicWrite:
    @pytest.mark.asyncio
    async def test_creates_parent_dirs(self, tmp_path: Path) -> None:
        target = tmp_path / "a" / "b" / "file.bin"
        await atomic_write_bytes_async(target, b"data")
        assert target.read_bytes() == b"data"

    @pytest.mark.asyncio
    async def test_temp_file_removed_on_failure(self, tmp_path: Path) -> None:
        target = tmp_path / "file.bin"

        with patch(
            "imggen.security._replace_with_retry_async",
            side_effect=OSError("rename failed"),
        ):
            with pytest.raises(OSError, match="rename failed"):
                await atomic_write_bytes_async(target, b"data")

        assert list(tmp_path.iterdir()) == []


class TestIsReservedName:
    @pytest.mark.parametrize("name", ["con", "PRN", "Aux", "nul", "com1", "lpt9"])
    def test_reserved(self, name: str) -> None:
        assert is_reserved_name(name)

    @pytest.mark.parametrize("name", ["console", "com0", "lpt10", "image", ""])
    def test_not_reserved(self, name: str) -> None:
        assert not is_reserved_name(name)
