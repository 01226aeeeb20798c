"""Batch manifest parsing.

Two formats are accepted:

- Text (``.txt`` or no extension): one prompt per line. Blank lines and lines
  starting with ``#`` are skipped.
- JSON (``.json``): an array of objects with a required ``prompt`` and optional
  ``model``, ``size``, ``quality`` and ``style`` overrides.

Items are numbered from 1 in file order.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from loguru import logger

from imggen.batch import BatchItem
from imggen.errors import ManifestEmptyError, ManifestError

TEXT_EXTENSIONS = {".txt", ""}
JSON_EXTENSIONS = {".json"}
OVERRIDE_FIELDS = ("model", "size", "quality", "style")


def parse_file(path: Path | str) -> list[BatchItem]:
    """Parse a manifest file, choosing the format by extension.

    Raises:
        ManifestError: If the file cannot be read, has an unsupported
            extension, or is malformed
        ManifestEmptyError: If the file contains no prompts
    """
    path = Path(path)
    ext = path.suffix.lower()

    if ext not in TEXT_EXTENSIONS | JSON_EXTENSIONS:
        raise ManifestError(f"unsupported file format {ext!r}: use .txt or .json")

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ManifestError(f"failed to open file: {e}") from e

    items = parse_json(content) if ext in JSON_EXTENSIONS else parse_text(content)
    logger.debug(f"Parsed {len(items)} prompts from {path}")
    return items


def parse_text(content: str) -> list[BatchItem]:
    """Parse a plain-text manifest, one prompt per line."""
    items: list[BatchItem] = []

    for line in content.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        items.append(BatchItem(index=len(items) + 1, prompt=line))

    if not items:
        raise ManifestEmptyError()

    return items


def parse_json(content: str) -> list[BatchItem]:
    """Parse a JSON manifest (array of prompt objects)."""
    try:
        data: Any = json.loads(content)
    except json.JSONDecodeError as e:
        raise ManifestError(f"failed to parse JSON: {e}") from e

    if not isinstance(data, list):
        raise ManifestError("failed to parse JSON: expected an array of prompts")

    if not data:
        raise ManifestEmptyError()

    items: list[BatchItem] = []
    for position, entry in enumerate(data, start=1):
        if not isinstance(entry, dict):
            raise ManifestError(f"item {position} is not an object")

        prompt = entry.get("prompt") or ""
        if not isinstance(prompt, str) or not prompt.strip():
            raise ManifestError(f"item {position} has empty prompt")

        overrides = {name: str(entry.get(name) or "") for name in OVERRIDE_FIELDS}
        items.append(BatchItem(index=position, prompt=prompt, **overrides))

    return items
