"""Image generation providers.

A provider turns an ``ImageRequest`` into an ``ImageResponse`` by calling a
remote API. Providers are looked up by ``ProviderType`` through a
``ProviderFactory``, usually via the model a request names:

    factory = ProviderFactory(registry)
    factory.register(OpenAIProvider(ProviderConfig(api_key=...), registry))
    provider = factory.get_for_model("dall-e-3")
    response = await provider.generate(request)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from imggen.constants import DEFAULT_PROVIDER_TIMEOUT
from imggen.errors import ProviderNotFoundError
from imggen.models import ImageRequest, ImageResponse, ModelRegistry, ProviderType


@dataclass
class ProviderConfig:
    """Connection settings shared by all providers."""

    api_key: str = ""
    base_url: str = ""
    timeout: float = DEFAULT_PROVIDER_TIMEOUT
    verbose: bool = False


@runtime_checkable
class Provider(Protocol):
    """Protocol for image generation providers."""

    @property
    def name(self) -> ProviderType: ...

    async def generate(self, request: ImageRequest) -> ImageResponse:
        """Generate images for ``request``.

        Raises:
            GenerationError: If the API call fails or returns an error
        """
        ...

    def supports_model(self, model: str) -> bool: ...

    def list_models(self) -> list[str]: ...


class ProviderFactory:
    """Registry of provider instances keyed by provider type."""

    def __init__(self, registry: ModelRegistry) -> None:
        self.registry = registry
        self._providers: dict[ProviderType, Provider] = {}

    def register(self, provider: Provider) -> None:
        self._providers[provider.name] = provider

    def get(self, provider_type: ProviderType) -> Provider:
        provider = self._providers.get(provider_type)
        if provider is None:
            raise ProviderNotFoundError(
                f"provider not found: {provider_type.value}",
                provider=provider_type.value,
            )
        return provider

    def get_for_model(self, model: str) -> Provider:
        """Return the provider serving ``model``.

        Raises:
            ProviderNotFoundError: If the model is unknown or its provider
                is not registered
        """
        caps = self.registry.get(model)
        if caps is None:
            raise ProviderNotFoundError(f"model not supported by any provider: {model}")

        provider = self._providers.get(caps.provider)
        if provider is None:
            raise ProviderNotFoundError(
                f"provider not found: {caps.provider.value} (required by model {model})",
                provider=caps.provider.value,
            )
        return provider

    def list_providers(self) -> list[ProviderType]:
        return list(self._providers)


__all__ = [
    "Provider",
    "ProviderConfig",
    "ProviderFactory",
]
