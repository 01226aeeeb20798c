"""Configuration management for imggen."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError

from imggen.constants import (
    CONFIG_ENV_VAR,
    CONFIG_FILENAME,
    DEFAULT_DELAY_MS,
    DEFAULT_LOG_DIR,
    DEFAULT_LOG_LEVEL,
    DEFAULT_LOG_RETENTION,
    DEFAULT_LOG_ROTATION,
    DEFAULT_MODEL,
    DEFAULT_OUTPUT_DIR,
    DEFAULT_OUTPUT_FORMAT,
    DEFAULT_PARALLEL,
    DEFAULT_PROVIDER_TIMEOUT,
    OPENAI_API_KEY_ENV,
    OPENAI_BASE_URL,
)
from imggen.errors import ConfigError, EnvVarNotFoundError


def resolve_env_value(value: str, strict: bool = True) -> str | None:
    """Resolve env:VAR_NAME syntax to actual environment variable value.

    Args:
        value: The value to resolve. If starts with "env:", looks up environment variable.
        strict: If True, raises EnvVarNotFoundError when variable not found.
                If False, returns None when variable not found.

    Returns:
        The resolved value, or None if env var not found and strict=False.

    Raises:
        EnvVarNotFoundError: If strict=True and environment variable not found.
    """
    if isinstance(value, str) and value.startswith("env:"):
        env_var = value[4:]
        env_value = os.environ.get(env_var)
        if env_value is None:
            if strict:
                raise EnvVarNotFoundError(env_var)
            return None
        return env_value
    return value


class OutputConfig(BaseModel):
    """Output configuration."""

    dir: str = DEFAULT_OUTPUT_DIR
    format: Literal["png", "jpeg", "webp"] = DEFAULT_OUTPUT_FORMAT


class BatchConfig(BaseModel):
    """Batch processing configuration."""

    model: str = DEFAULT_MODEL
    size: str = ""
    quality: str = ""
    parallel: int = Field(default=DEFAULT_PARALLEL, ge=1)
    delay_ms: int = Field(default=DEFAULT_DELAY_MS, ge=0)
    stop_on_error: bool = False


class OpenAIConfig(BaseModel):
    """OpenAI provider settings."""

    api_key: str | None = None
    base_url: str = OPENAI_BASE_URL
    timeout: float = Field(default=DEFAULT_PROVIDER_TIMEOUT, gt=0)

    def get_resolved_api_key(self, strict: bool = True) -> str | None:
        """Get API key with env: syntax resolved.

        Falls back to the OPENAI_API_KEY environment variable when no key is
        configured.

        Args:
            strict: If True, raises EnvVarNotFoundError when an env: reference
                is not set.
        """
        if self.api_key:
            return resolve_env_value(self.api_key, strict=strict)
        return os.environ.get(OPENAI_API_KEY_ENV)


class ProvidersConfig(BaseModel):
    """Provider configuration."""

    openai: OpenAIConfig = Field(default_factory=OpenAIConfig)


class LogConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = DEFAULT_LOG_LEVEL
    dir: str | None = DEFAULT_LOG_DIR
    rotation: str = DEFAULT_LOG_ROTATION
    retention: str = DEFAULT_LOG_RETENTION


class ImggenConfig(BaseModel):
    """Main configuration model."""

    output: OutputConfig = Field(default_factory=OutputConfig)
    batch: BatchConfig = Field(default_factory=BatchConfig)
    providers: ProvidersConfig = Field(default_factory=ProvidersConfig)
    log: LogConfig = Field(default_factory=LogConfig)


class ConfigManager:
    """Configuration manager for loading configs and applying CLI overrides."""

    CONFIG_FILENAME = CONFIG_FILENAME
    DEFAULT_USER_CONFIG_DIR = Path.home() / ".imggen"

    def __init__(self) -> None:
        self._config: ImggenConfig | None = None
        self._config_path: Path | None = None

    @property
    def config(self) -> ImggenConfig:
        """Get current configuration, loading if necessary."""
        if self._config is None:
            self._config = self.load()
        return self._config

    @property
    def config_path(self) -> Path | None:
        """Get the path of the loaded configuration file."""
        return self._config_path

    def load(
        self,
        config_path: Path | str | None = None,
        env_override: bool = True,
    ) -> ImggenConfig:
        """
        Load configuration from file with fallback chain.

        Priority (highest to lowest):
        1. Explicit config_path parameter
        2. IMGGEN_CONFIG environment variable
        3. ./imggen.json (current directory)
        4. ~/.imggen/config.json (user directory)
        5. Default values

        Raises:
            ConfigError: If an explicit config file is missing, or a config
                file is not valid JSON or fails validation
        """
        config_data: dict[str, Any] = {}

        resolved_path = self._resolve_config_path(config_path, env_override)

        if resolved_path is not None:
            if not resolved_path.exists():
                raise ConfigError(f"config file not found: {resolved_path}")
            config_data = self._load_json(resolved_path)
            self._config_path = resolved_path

        try:
            self._config = ImggenConfig.model_validate(config_data)
        except ValidationError as e:
            raise ConfigError(f"invalid config {resolved_path}: {e}") from e
        return self._config

    def _resolve_config_path(
        self,
        config_path: Path | str | None,
        env_override: bool,
    ) -> Path | None:
        """Resolve configuration file path based on priority."""
        # 1. Explicit path
        if config_path:
            return Path(config_path)

        # 2. Environment variable
        if env_override:
            env_path = os.environ.get(CONFIG_ENV_VAR)
            if env_path:
                return Path(env_path)

        # 3. Current directory
        cwd_config = Path.cwd() / self.CONFIG_FILENAME
        if cwd_config.exists():
            return cwd_config

        # 4. User directory
        user_config = self.DEFAULT_USER_CONFIG_DIR / "config.json"
        if user_config.exists():
            return user_config

        return None

    def _load_json(self, path: Path) -> dict[str, Any]:
        """Load JSON configuration file."""
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"failed to read config {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"config {path} must contain a JSON object")
        return data

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value by dot-separated key path.

        Example: config_manager.get("batch.parallel")
        """
        value: Any = self.config

        for part in key.split("."):
            if isinstance(value, BaseModel):
                value = getattr(value, part, None)
            elif isinstance(value, dict):
                value = value.get(part)
            else:
                return default

            if value is None:
                return default

        return value

    def set(self, key: str, value: Any) -> None:
        """
        Set a configuration value by dot-separated key path.

        Example: config_manager.set("batch.parallel", 4)
        """
        parts = key.split(".")
        parent: Any = self.config
        for part in parts[:-1]:
            parent = getattr(parent, part)
        setattr(parent, parts[-1], value)

    def merge_cli_args(self, **kwargs: Any) -> None:
        """Merge CLI arguments into configuration.

        Keys are dot-separated config paths; None values are ignored so unset
        flags keep the configured value.
        """
        for key, value in kwargs.items():
            if value is not None:
                self.set(key, value)
