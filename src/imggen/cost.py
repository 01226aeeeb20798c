"""Per-image pricing for generation calls.

Prices are USD per image, keyed by (model, size, quality). Models without an
exact table entry fall back to a per-model default; unknown models cost 0.
"""

from __future__ import annotations

from imggen.constants import CURRENCY_USD
from imggen.models import CostInfo, ProviderType

# https://openai.com/api/pricing/
OPENAI_PRICING: dict[tuple[str, str, str], float] = {
    ("gpt-image-1", "1024x1024", "low"): 0.011,
    ("gpt-image-1", "1024x1024", "medium"): 0.042,
    ("gpt-image-1", "1024x1024", "high"): 0.167,
    ("gpt-image-1", "1024x1024", "auto"): 0.042,
    ("gpt-image-1", "1536x1024", "low"): 0.016,
    ("gpt-image-1", "1536x1024", "medium"): 0.063,
    ("gpt-image-1", "1536x1024", "high"): 0.250,
    ("gpt-image-1", "1536x1024", "auto"): 0.063,
    ("gpt-image-1", "1024x1536", "low"): 0.016,
    ("gpt-image-1", "1024x1536", "medium"): 0.063,
    ("gpt-image-1", "1024x1536", "high"): 0.250,
    ("gpt-image-1", "1024x1536", "auto"): 0.063,
    ("gpt-image-1", "auto", "low"): 0.011,
    ("gpt-image-1", "auto", "medium"): 0.042,
    ("gpt-image-1", "auto", "high"): 0.167,
    ("gpt-image-1", "auto", "auto"): 0.042,
    ("dall-e-3", "1024x1024", "standard"): 0.040,
    ("dall-e-3", "1024x1024", "hd"): 0.080,
    ("dall-e-3", "1024x1792", "standard"): 0.080,
    ("dall-e-3", "1024x1792", "hd"): 0.120,
    ("dall-e-3", "1792x1024", "standard"): 0.080,
    ("dall-e-3", "1792x1024", "hd"): 0.120,
    # DALL-E 2 has no quality tiers
    ("dall-e-2", "256x256", ""): 0.016,
    ("dall-e-2", "512x512", ""): 0.018,
    ("dall-e-2", "1024x1024", ""): 0.020,
}

# Used when size/quality has no exact entry
OPENAI_FALLBACK_PRICES: dict[str, float] = {
    "gpt-image-1": 0.042,  # medium
    "dall-e-3": 0.040,  # standard 1024x1024
    "dall-e-2": 0.020,  # 1024x1024
}


def get_openai_price(model: str, size: str, quality: str) -> float | None:
    """Look up the exact table price, or None."""
    return OPENAI_PRICING.get((model, size, quality))


class CostCalculator:
    """Compute the cost attached to a provider response."""

    def calculate(
        self,
        provider: ProviderType,
        model: str,
        size: str,
        quality: str,
        count: int,
    ) -> CostInfo:
        if provider == ProviderType.OPENAI:
            per_image = self._openai_price(model, size, quality)
        else:
            # Stability pricing is credit based and not tracked
            per_image = 0.0

        return CostInfo(
            per_image=per_image,
            total=per_image * count,
            currency=CURRENCY_USD,
        )

    def _openai_price(self, model: str, size: str, quality: str) -> float:
        price = get_openai_price(model, size, quality)
        if price is not None:
            return price

        if model == "dall-e-2":
            price = get_openai_price(model, size, "")
            if price is not None:
                return price

        return OPENAI_FALLBACK_PRICES.get(model, 0.0)
