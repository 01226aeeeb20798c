"""Unit tests for cost calculation."""

from __future__ import annotations

import pytest

from imggen.cost import CostCalculator, get_openai_price
from imggen.models import ProviderType


@pytest.fixture
def calculator() -> CostCalculator:
    return CostCalculator()


class TestCostCalculator:
    """Tests for CostCalculator.calculate."""

    @pytest.mark.parametrize(
        "model,size,quality,expected",
        [
            ("gpt-image-1", "1024x1024", "low", 0.011),
            ("gpt-image-1", "1536x1024", "high", 0.250),
            ("dall-e-3", "1024x1024", "standard", 0.040),
            ("dall-e-3", "1792x1024", "hd", 0.120),
            ("dall-e-2", "512x512", "", 0.018),
        ],
    )
    def test_table_prices(
        self,
        calculator: CostCalculator,
        model: str,
        size: str,
        quality: str,
        expected: float,
    ) -> None:
        cost = calculator.calculate(ProviderType.OPENAI, model, size, quality, 1)
        assert cost.per_image == pytest.approx(expected)
        assert cost.total == pytest.approx(expected)
        assert cost.currency == "USD"

    def test_total_scales_with_count(self, calculator: CostCalculator) -> None:
        cost = calculator.calculate(
            ProviderType.OPENAI, "gpt-image-1", "1024x1024", "medium", 3
        )
        assert cost.total == pytest.approx(0.126)

    def test_dalle2_ignores_quality(self, calculator: CostCalculator) -> None:
        cost = calculator.calculate(ProviderType.OPENAI, "dall-e-2", "256x256", "hd", 1)
        assert cost.per_image == pytest.approx(0.016)

    def test_fallback_for_unpriced_size(self, calculator: CostCalculator) -> None:
        cost = calculator.calculate(ProviderType.OPENAI, "dall-e-3", "", "", 1)
        assert cost.per_image == pytest.approx(0.040)

    def test_unknown_model_is_free(self, calculator: CostCalculator) -> None:
        cost = calculator.calculate(ProviderType.OPENAI, "mystery", "1x1", "", 2)
        assert cost.total == 0.0

    def test_stability_not_tracked(self, calculator: CostCalculator) -> None:
        cost = calculator.calculate(
            ProviderType.STABILITY, "stable-diffusion-xl", "1024x1024", "", 4
        )
        assert cost.total == 0.0


def test_get_openai_price_exact_only() -> None:
    assert get_openai_price("dall-e-3", "1024x1024", "hd") == 0.080
    assert get_openai_price("dall-e-3", "1024x1024", "ultra") is None
