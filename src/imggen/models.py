"""Image request/response types and the model capability registry."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from imggen.constants import DEFAULT_OUTPUT_FORMAT
from imggen.errors import ValidationFailedError


class ProviderType(str, Enum):
    """Remote API family a model is served by."""

    OPENAI = "openai"
    STABILITY = "stability"


class OutputFormat(str, Enum):
    """Encoding of saved images. The value doubles as the file extension."""

    PNG = "png"
    JPEG = "jpeg"
    WEBP = "webp"

    @classmethod
    def values(cls) -> list[str]:
        """Return all format names, e.g. for CLI choices."""
        return [f.value for f in cls]

    @property
    def extension(self) -> str:
        return self.value


@dataclass
class ImageRequest:
    """A single image generation request sent to a provider."""

    prompt: str
    model: str = ""
    size: str = ""
    quality: str = ""
    style: str = ""
    count: int = 1
    format: OutputFormat = OutputFormat(DEFAULT_OUTPUT_FORMAT)
    transparent: bool = False


@dataclass
class CostInfo:
    """Cost of a generation call.

    Attributes:
        per_image: Price of one image
        total: Price of the whole call (per_image * count)
        currency: ISO currency code
    """

    per_image: float
    total: float
    currency: str = "USD"


@dataclass
class GeneratedImage:
    """One image returned by a provider.

    Providers return either decoded bytes (``data``) or a download ``url``.
    """

    index: int = 0
    data: bytes = b""
    url: str = ""
    filename: str = ""


@dataclass
class ImageResponse:
    """Provider response for an ImageRequest."""

    images: list[GeneratedImage] = field(default_factory=list)
    revised_prompt: str = ""
    cost: CostInfo | None = None


@dataclass
class ModelCapabilities:
    """What a model accepts, and the defaults applied to partial requests."""

    name: str
    provider: ProviderType
    supported_sizes: list[str] = field(default_factory=list)
    supported_qualities: list[str] = field(default_factory=list)
    max_images: int = 1
    default_size: str = ""
    default_quality: str = ""
    supports_style: bool = False
    supports_transparency: bool = False
    supports_edit: bool = False
    style_options: list[str] = field(default_factory=list)

    def apply_defaults(self, request: ImageRequest) -> None:
        """Fill unset size, quality and model fields in place."""
        if not request.size:
            request.size = self.default_size
        if not request.quality and self.default_quality:
            request.quality = self.default_quality
        if not request.model:
            request.model = self.name

    def validate(self, request: ImageRequest) -> None:
        """Check a request against this model's constraints.

        Raises:
            ValidationFailedError: Describing the first violated constraint
        """
        if not request.prompt:
            raise ValidationFailedError("prompt cannot be empty")

        if request.count < 1:
            raise ValidationFailedError("count must be at least 1")

        if request.count > self.max_images:
            raise ValidationFailedError(
                f"count exceeds maximum for model: max {self.max_images}, "
                f"got {request.count}"
            )

        if request.size and request.size not in self.supported_sizes:
            raise ValidationFailedError(
                f"invalid size for model: {request.size!r} not in {self.supported_sizes}"
            )

        if (
            request.quality
            and self.supported_qualities
            and request.quality not in self.supported_qualities
        ):
            raise ValidationFailedError(
                f"invalid quality for model: {request.quality!r} "
                f"not in {self.supported_qualities}"
            )

        if request.style:
            if not self.supports_style:
                raise ValidationFailedError("style not supported by model")
            if self.style_options and request.style not in self.style_options:
                raise ValidationFailedError(
                    f"style not supported by model: {request.style!r} "
                    f"not in {self.style_options}"
                )

        if request.transparent:
            if not self.supports_transparency:
                raise ValidationFailedError("transparency not supported by model")
            if request.format not in (OutputFormat.PNG, OutputFormat.WEBP):
                raise ValidationFailedError(
                    "transparent background requires png or webp format"
                )


class ModelRegistry:
    """Lookup table from model name to capabilities."""

    def __init__(self) -> None:
        self._models: dict[str, ModelCapabilities] = {}

    def register(self, capabilities: ModelCapabilities) -> None:
        self._models[capabilities.name] = capabilities

    def get(self, name: str) -> ModelCapabilities | None:
        """Return capabilities for ``name``, or None if it is not registered."""
        return self._models.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._models

    def list_models(self) -> list[str]:
        return sorted(self._models)

    def list_by_provider(self, provider: ProviderType) -> list[str]:
        return sorted(
            name for name, caps in self._models.items() if caps.provider == provider
        )


def default_registry() -> ModelRegistry:
    """Create a registry with every built-in image model."""
    registry = ModelRegistry()

    registry.register(
        ModelCapabilities(
            name="gpt-image-1",
            provider=ProviderType.OPENAI,
            supported_sizes=["1024x1024", "1536x1024", "1024x1536", "auto"],
            supported_qualities=["auto", "low", "medium", "high"],
            max_images=10,
            default_size="1024x1024",
            default_quality="auto",
            supports_transparency=True,
            supports_edit=True,
        )
    )
    registry.register(
        ModelCapabilities(
            name="dall-e-3",
            provider=ProviderType.OPENAI,
            supported_sizes=["1024x1024", "1024x1792", "1792x1024"],
            supported_qualities=["standard", "hd"],
            max_images=1,
            default_size="1024x1024",
            default_quality="standard",
            supports_style=True,
            style_options=["vivid", "natural"],
        )
    )
    registry.register(
        ModelCapabilities(
            name="dall-e-2",
            provider=ProviderType.OPENAI,
            supported_sizes=["256x256", "512x512", "1024x1024"],
            max_images=10,
            default_size="1024x1024",
            supports_edit=True,
        )
    )
    registry.register(
        ModelCapabilities(
            name="stable-diffusion-xl",
            provider=ProviderType.STABILITY,
            supported_sizes=[
                "1024x1024",
                "1152x896",
                "896x1152",
                "1216x832",
                "832x1216",
            ],
            max_images=10,
            default_size="1024x1024",
        )
    )
    registry.register(
        ModelCapabilities(
            name="stable-diffusion-3",
            provider=ProviderType.STABILITY,
            supported_sizes=["1024x1024", "1536x1024", "1024x1536"],
            max_images=10,
            default_size="1024x1024",
        )
    )

    return registry
