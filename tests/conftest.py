"""Pytest configuration and fixtures."""

from __future__ import annotations

import io
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from rich.console import Console

from imggen.image import ImageSaver
from imggen.models import (
    CostInfo,
    GeneratedImage,
    ImageResponse,
    ModelRegistry,
    ProviderType,
    default_registry,
)

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-image-data"


# =============================================================================
# Path Fixtures
# =============================================================================


@pytest.fixture
def tmp_output(tmp_path: Path) -> Path:
    """Return a temporary output directory."""
    output = tmp_path / "output"
    output.mkdir()
    return output


# =============================================================================
# Console Fixtures
# =============================================================================


@pytest.fixture
def console_buffer() -> io.StringIO:
    """Buffer the processor console writes into."""
    return io.StringIO()


@pytest.fixture
def test_console(console_buffer: io.StringIO) -> Console:
    """Return a wide, colorless Console writing to ``console_buffer``."""
    return Console(file=console_buffer, width=200, color_system=None)


# =============================================================================
# Model / Provider Fixtures
# =============================================================================


@pytest.fixture
def registry() -> ModelRegistry:
    """Return a registry with all built-in models."""
    return default_registry()


def make_response(
    count: int = 1, cost: float | None = 0.04, data: bytes = PNG_BYTES
) -> ImageResponse:
    """Build a provider response with ``count`` in-memory images."""
    return ImageResponse(
        images=[GeneratedImage(index=i, data=data) for i in range(count)],
        cost=CostInfo(per_image=cost, total=cost * count) if cost is not None else None,
    )


@pytest.fixture
def mock_provider() -> MagicMock:
    """Create a mock provider that returns one image per call."""
    provider = MagicMock()
    provider.name = ProviderType.OPENAI
    provider.generate = AsyncMock(return_value=make_response())
    provider.supports_model = MagicMock(return_value=True)
    return provider


@pytest.fixture
def saver() -> ImageSaver:
    """Return an ImageSaver that never touches the network."""
    return ImageSaver()


# =============================================================================
# CLI Fixtures
# =============================================================================


@pytest.fixture
def cli_runner():
    """Return a CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()


@pytest.fixture
def make_image_response():
    """Return the ``make_response`` factory."""
    return make_response
