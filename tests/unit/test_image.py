"""Unit tests for saving generated images."""

from __future__ import annotations

from pathlib import Path

import httpx
import pytest

from imggen.errors import PersistError
from imggen.image import ImageSaver, numbered_path
from imggen.models import GeneratedImage, ImageResponse


def download_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestNumberedPath:
    def test_single_image_keeps_path(self) -> None:
        assert numbered_path(Path("out/001-cat.png"), 0, 1) == Path("out/001-cat.png")

    def test_multiple_images_numbered_from_one(self) -> None:
        base = Path("out/001-cat.png")
        assert numbered_path(base, 0, 3) == Path("out/001-cat-1.png")
        assert numbered_path(base, 2, 3) == Path("out/001-cat-3.png")


class TestImageSaver:
    """Tests for ImageSaver."""

    @pytest.mark.asyncio
    async def test_save_bytes(self, tmp_path: Path) -> None:
        image = GeneratedImage(data=b"png-bytes")
        target = tmp_path / "nested" / "out.png"

        result = await ImageSaver().save(image, target)

        assert result == target
        assert target.read_bytes() == b"png-bytes"
        assert image.filename == str(target)
        # No temp files left behind
        assert [p.name for p in target.parent.iterdir()] == ["out.png"]

    @pytest.mark.asyncio
    async def test_save_overwrites(self, tmp_path: Path) -> None:
        target = tmp_path / "out.png"
        target.write_bytes(b"old")

        await ImageSaver().save(GeneratedImage(data=b"new"), target)

        assert target.read_bytes() == b"new"

    @pytest.mark.asyncio
    async def test_save_downloads_url(self, tmp_path: Path) -> None:
        requested: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requested.append(str(request.url))
            return httpx.Response(200, content=b"downloaded")

        async with download_client(handler) as client:
            saver = ImageSaver(client=client)
            await saver.save(
                GeneratedImage(url="https://cdn.example.com/a.png"), tmp_path / "a.png"
            )

        assert requested == ["https://cdn.example.com/a.png"]
        assert (tmp_path / "a.png").read_bytes() == b"downloaded"

    @pytest.mark.asyncio
    async def test_download_http_error(self, tmp_path: Path) -> None:
        async with download_client(lambda r: httpx.Response(403)) as client:
            with pytest.raises(PersistError, match="status 403"):
                await ImageSaver(client=client).save(
                    GeneratedImage(url="https://cdn.example.com/a.png"),
                    tmp_path / "a.png",
                )
        assert not (tmp_path / "a.png").exists()

    @pytest.mark.asyncio
    async def test_download_timeout(self, tmp_path: Path) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        async with download_client(handler) as client:
            with pytest.raises(PersistError, match="timeout"):
                await ImageSaver(client=client).save(
                    GeneratedImage(url="https://cdn.example.com/a.png"),
                    tmp_path / "a.png",
                )

    @pytest.mark.asyncio
    async def test_no_data_or_url(self, tmp_path: Path) -> None:
        with pytest.raises(PersistError, match="no image data available"):
            await ImageSaver().save(GeneratedImage(), tmp_path / "a.png")

    @pytest.mark.asyncio
    async def test_save_all_numbers_multiple_images(self, tmp_path: Path) -> None:
        response = ImageResponse(
            images=[GeneratedImage(index=0, data=b"a"), GeneratedImage(index=1, data=b"b")]
        )

        paths = await ImageSaver().save_all(response, tmp_path / "001-x.png")

        assert paths == [tmp_path / "001-x-1.png", tmp_path / "001-x-2.png"]
        assert paths[1].read_bytes() == b"b"

    @pytest.mark.asyncio
    async def test_save_all_single_image(self, tmp_path: Path) -> None:
        response = ImageResponse(images=[GeneratedImage(data=b"a")])
        paths = await ImageSaver().save_all(response, tmp_path / "001-x.png")
        assert paths == [tmp_path / "001-x.png"]

    @pytest.mark.asyncio
    async def test_save_all_reports_failing_image(self, tmp_path: Path) -> None:
        response = ImageResponse(
            images=[GeneratedImage(data=b"a"), GeneratedImage()]
        )
        with pytest.raises(PersistError, match="failed to save image 2"):
            await ImageSaver().save_all(response, tmp_path / "001-x.png")

    @pytest.mark.asyncio
    async def test_save_all_writes_beside_base_path(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(tmp_path)
        out_dir = tmp_path / "renders"
        response = ImageResponse(images=[GeneratedImage(data=b"a")])

        paths = await ImageSaver().save_all(response, out_dir / "001-x.jpeg")

        assert paths == [out_dir / "001-x.jpeg"]
        assert response.images[0].filename == str(out_dir / "001-x.jpeg")
        assert [p.name for p in tmp_path.iterdir()] == ["renders"]
