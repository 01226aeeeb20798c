"""Centralized constants for imggen.

Defaults for the CLI, the batch processor, providers and pricing live here so
limits and fallbacks can be read in one place.
"""

from __future__ import annotations

# =============================================================================
# Configuration
# =============================================================================

CONFIG_FILENAME = "imggen.json"
CONFIG_ENV_VAR = "IMGGEN_CONFIG"
LOG_DIR_ENV_VAR = "IMGGEN_LOG_DIR"

# =============================================================================
# Batch Processing
# =============================================================================

DEFAULT_MODEL = "gpt-image-1"
DEFAULT_OUTPUT_FORMAT = "png"
DEFAULT_PARALLEL = 1  # 1 = sequential
DEFAULT_DELAY_MS = 0
DEFAULT_OUTPUT_DIR = "."

# Filename policy
MAX_SLUG_LENGTH = 50
FALLBACK_SLUG = "image"
PROGRESS_PROMPT_WIDTH = 50  # Prompt echo in "[i/N] Generating" lines
SUMMARY_PROMPT_WIDTH = 40  # Prompt echo in the summary error list

# Names reserved by Windows for devices; never usable as file stems
WINDOWS_RESERVED_NAMES: frozenset[str] = frozenset(
    {"con", "prn", "aux", "nul"}
    | {f"com{i}" for i in range(1, 10)}
    | {f"lpt{i}" for i in range(1, 10)}
)

# =============================================================================
# Providers
# =============================================================================

OPENAI_BASE_URL = "https://api.openai.com/v1"
OPENAI_API_KEY_ENV = "OPENAI_API_KEY"
DEFAULT_PROVIDER_TIMEOUT = 120  # seconds
DEFAULT_DOWNLOAD_TIMEOUT = 60  # seconds
LOG_BASE64_PREVIEW_CHARS = 100  # b64_json fields are cut to this in debug logs

# =============================================================================
# Cost
# =============================================================================

CURRENCY_USD = "USD"

# =============================================================================
# Logging
# =============================================================================

DEFAULT_LOG_LEVEL = "DEBUG"
DEFAULT_LOG_DIR: str | None = None
DEFAULT_LOG_ROTATION = "10 MB"
DEFAULT_LOG_RETENTION = "7 days"
