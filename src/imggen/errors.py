"""Exception hierarchy for imggen.

Item-level errors end up in ``BatchResult.error`` and never stop a run on
their own. Run-level errors end up in ``BatchRun.error`` and are the only
failures the CLI reports as a failed command.

Error Hierarchy:
    ImggenError (base)
    ├── ConfigError
    │   └── EnvVarNotFoundError
    ├── ManifestError
    │   └── ManifestEmptyError
    ├── ProviderError
    │   ├── APIKeyRequiredError
    │   └── ProviderNotFoundError
    ├── ModelUnknownError        (item-level)
    ├── ValidationFailedError    (item-level)
    ├── GenerationError          (item-level)
    ├── PersistError             (item-level)
    └── BatchRunError            (run-level)
        ├── RunAbortedError
        └── RunCancelledError
"""

from __future__ import annotations


class ImggenError(Exception):
    """Base exception for all imggen errors."""


class ConfigError(ImggenError):
    """Invalid or unreadable configuration."""


class EnvVarNotFoundError(ConfigError):
    """Raised when an environment variable referenced by env: syntax is not found."""

    def __init__(self, var_name: str) -> None:
        self.var_name = var_name
        super().__init__(f"Environment variable not found: {var_name}")


class ManifestError(ImggenError):
    """A batch manifest could not be read or parsed."""


class ManifestEmptyError(ManifestError):
    """A batch manifest yielded no usable prompts."""

    def __init__(self, message: str = "no prompts found in file") -> None:
        super().__init__(message)


class ProviderError(ImggenError):
    """Base exception for provider construction and lookup errors.

    Attributes:
        provider: Provider name (e.g., "openai"), if known
    """

    def __init__(self, message: str, *, provider: str | None = None) -> None:
        super().__init__(message)
        self.provider = provider


class APIKeyRequiredError(ProviderError):
    """Raised when a provider is created without an API key."""

    def __init__(self, provider: str) -> None:
        super().__init__(
            f"API key is required for provider {provider}", provider=provider
        )


class ProviderNotFoundError(ProviderError):
    """Raised when no provider is registered for a provider type or model."""


class ModelUnknownError(ImggenError):
    """The effective model has no registered capabilities."""

    def __init__(self, model: str) -> None:
        self.model = model
        super().__init__(f"unknown model: {model}")


class ValidationFailedError(ImggenError):
    """A request violates the model's constraints."""


class GenerationError(ImggenError):
    """The provider call failed or returned a non-success status.

    Attributes:
        status_code: HTTP status code, when the failure came from a response
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class PersistError(ImggenError):
    """A generated image could not be written to disk."""


class BatchRunError(ImggenError):
    """Base class for errors that fail a whole batch run."""


class RunAbortedError(BatchRunError):
    """A run was stopped after an item failed with stop-on-error enabled.

    The failing item's error is chained as ``__cause__``.

    Attributes:
        item_index: Index of the item whose failure stopped the run
    """

    def __init__(self, item_index: int, cause: BaseException) -> None:
        self.item_index = item_index
        super().__init__(f"batch stopped at item {item_index}: {cause}")
        self.__cause__ = cause


class RunCancelledError(BatchRunError):
    """A run was cancelled before all items were dispatched or finished."""

    def __init__(self, message: str = "batch cancelled") -> None:
        super().__init__(message)
