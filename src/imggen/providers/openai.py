"""OpenAI images API provider (gpt-image-1, dall-e-3, dall-e-2)."""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any

import httpx
from loguru import logger

from imggen.constants import LOG_BASE64_PREVIEW_CHARS, OPENAI_BASE_URL
from imggen.cost import CostCalculator
from imggen.errors import APIKeyRequiredError, GenerationError
from imggen.models import (
    GeneratedImage,
    ImageRequest,
    ImageResponse,
    ModelRegistry,
    ProviderType,
)
from imggen.providers import ProviderConfig


class OpenAIProvider:
    """Generate images through ``POST {base_url}/images/generations``.

    The provider owns an ``httpx.AsyncClient`` unless one is passed in; use it
    as an async context manager (or call ``aclose``) to release connections.
    """

    def __init__(
        self,
        config: ProviderConfig,
        registry: ModelRegistry,
        client: httpx.AsyncClient | None = None,
        calculator: CostCalculator | None = None,
    ) -> None:
        if not config.api_key:
            raise APIKeyRequiredError(ProviderType.OPENAI.value)

        self.config = config
        self.registry = registry
        self.base_url = (config.base_url or OPENAI_BASE_URL).rstrip("/")
        self.calculator = calculator or CostCalculator()
        self._client = client
        self._owns_client = client is None

    @property
    def name(self) -> ProviderType:
        return ProviderType.OPENAI

    def supports_model(self, model: str) -> bool:
        caps = self.registry.get(model)
        return caps is not None and caps.provider == ProviderType.OPENAI

    def list_models(self) -> list[str]:
        return self.registry.list_by_provider(ProviderType.OPENAI)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.config.timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> OpenAIProvider:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def generate(self, request: ImageRequest) -> ImageResponse:
        """Generate images for ``request``.

        Raises:
            GenerationError: On transport failure, an API error payload,
                a non-200 status, or undecodable image data
        """
        payload = build_payload(request)
        url = f"{self.base_url}/images/generations"
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.config.api_key}",
        }

        if self.config.verbose:
            _log_request("POST", url, headers, payload)

        try:
            response = await self._get_client().post(url, json=payload, headers=headers)
        except httpx.TimeoutException as e:
            raise GenerationError(f"request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise GenerationError(f"failed to send request: {e}") from e

        if self.config.verbose:
            _log_response(response)

        try:
            body = response.json()
        except ValueError as e:
            raise GenerationError(
                f"failed to parse response (status {response.status_code})",
                status_code=response.status_code,
            ) from e

        error = body.get("error") if isinstance(body, dict) else None
        if error:
            if isinstance(error, dict):
                message = error.get("message", "unknown error")
            else:
                message = str(error)
            raise GenerationError(
                f"image generation failed: {message}",
                status_code=response.status_code,
            )

        if response.status_code != httpx.codes.OK:
            raise GenerationError(
                f"image generation failed: status {response.status_code}",
                status_code=response.status_code,
            )

        if not isinstance(body, dict):
            raise GenerationError(
                f"unexpected response body: {type(body).__name__}",
                status_code=response.status_code,
            )

        result = parse_response(body)
        result.cost = self.calculator.calculate(
            self.name, request.model, request.size, request.quality, len(result.images)
        )
        return result


def build_payload(request: ImageRequest) -> dict[str, Any]:
    """Build the JSON body for the images endpoint.

    Only fields the target model accepts are included.
    """
    payload: dict[str, Any] = {
        "model": request.model,
        "prompt": request.prompt,
    }
    if request.count:
        payload["n"] = request.count
    if request.size:
        payload["size"] = request.size
    if request.quality:
        payload["quality"] = request.quality

    if request.model == "gpt-image-1":
        payload["output_format"] = request.format.value
        if request.transparent:
            payload["background"] = "transparent"
    elif request.model == "dall-e-3":
        payload["response_format"] = "url"
        if request.style:
            payload["style"] = request.style
    elif request.model == "dall-e-2":
        payload["response_format"] = "url"

    return payload


def parse_response(body: dict[str, Any]) -> ImageResponse:
    """Convert an images API response body into an ImageResponse.

    Raises:
        GenerationError: If an image's base64 payload cannot be decoded
    """
    result = ImageResponse()

    for i, entry in enumerate(body.get("data") or []):
        image = GeneratedImage(index=i, url=entry.get("url") or "")

        b64 = entry.get("b64_json")
        if b64:
            try:
                image.data = base64.b64decode(b64, validate=True)
            except (binascii.Error, ValueError) as e:
                raise GenerationError(f"failed to decode image {i}: {e}") from e

        if i == 0 and entry.get("revised_prompt"):
            result.revised_prompt = entry["revised_prompt"]

        result.images.append(image)

    return result


def redact_headers(headers: dict[str, str]) -> dict[str, str]:
    """Return a copy of ``headers`` with the Authorization value hidden."""
    return {
        key: "[REDACTED]" if key.lower() == "authorization" else value
        for key, value in headers.items()
    }


def truncate_base64_fields(data: Any) -> Any:
    """Shorten every ``b64_json`` string in a decoded JSON document, recursively."""
    if isinstance(data, dict):
        result = {}
        for key, value in data.items():
            if (
                key == "b64_json"
                and isinstance(value, str)
                and len(value) > LOG_BASE64_PREVIEW_CHARS
            ):
                result[key] = value[:LOG_BASE64_PREVIEW_CHARS] + "... [truncated]"
            else:
                result[key] = truncate_base64_fields(value)
        return result
    if isinstance(data, list):
        return [truncate_base64_fields(item) for item in data]
    return data


def _log_request(
    method: str, url: str, headers: dict[str, str], payload: dict[str, Any]
) -> None:
    logger.debug(
        f"--- REQUEST ---\n{method} {url}\n"
        f"Headers: {redact_headers(headers)}\n"
        f"Body: {json.dumps(payload, indent=2, ensure_ascii=False)}"
    )


def _log_response(response: httpx.Response) -> None:
    try:
        body = json.dumps(
            truncate_base64_fields(response.json()), indent=2, ensure_ascii=False
        )
    except ValueError:
        body = response.text
    logger.debug(f"--- RESPONSE ---\nStatus: {response.status_code}\nBody: {body}")
