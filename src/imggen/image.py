"""Persisting generated images to disk."""

from __future__ import annotations

from pathlib import Path

import httpx
from loguru import logger

from imggen.constants import DEFAULT_DOWNLOAD_TIMEOUT
from imggen.errors import PersistError
from imggen.models import GeneratedImage, ImageResponse
from imggen.security import atomic_write_bytes_async


def numbered_path(base_path: Path, index: int, total: int) -> Path:
    """Return the path for image ``index`` of ``total`` saved under ``base_path``.

    A single image keeps ``base_path``; several images get ``-1``, ``-2``, ...
    inserted before the extension.
    """
    if total == 1:
        return base_path
    return base_path.with_name(f"{base_path.stem}-{index + 1}{base_path.suffix}")


class ImageSaver:
    """Write provider images to disk, downloading URL-only images first."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_DOWNLOAD_TIMEOUT,
    ) -> None:
        self._client = client
        self._timeout = timeout

    async def save(self, image: GeneratedImage, path: Path) -> Path:
        """Save one image to ``path``.

        Raises:
            PersistError: If the image has no data, the download fails,
                or the file cannot be written
        """
        if image.data:
            data = image.data
        elif image.url:
            data = await self._download(image.url)
        else:
            raise PersistError("no image data available")

        try:
            await atomic_write_bytes_async(path, data)
        except OSError as e:
            raise PersistError(f"failed to write file: {e}") from e

        image.filename = str(path)
        logger.debug(f"Wrote {len(data)} bytes to {path}")
        return path

    async def save_all(self, response: ImageResponse, base_path: Path) -> list[Path]:
        """Save every image in ``response``.

        Args:
            response: Provider response
            base_path: Target path for the first image; further images are
                numbered.

        Returns:
            Paths written, in response order
        """
        total = len(response.images)
        paths: list[Path] = []

        for i, image in enumerate(response.images):
            path = numbered_path(base_path, i, total)
            try:
                paths.append(await self.save(image, path))
            except PersistError as e:
                raise PersistError(f"failed to save image {i + 1}: {e}") from e

        return paths

    async def _download(self, url: str) -> bytes:
        try:
            if self._client is not None:
                response = await self._client.get(url, timeout=self._timeout)
            else:
                async with httpx.AsyncClient(follow_redirects=True) as client:
                    response = await client.get(url, timeout=self._timeout)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise PersistError(f"failed to download image: timeout ({url[:80]})") from e
        except httpx.HTTPStatusError as e:
            raise PersistError(
                f"failed to download image: status {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise PersistError(f"failed to download image: {e}") from e

        return response.content
