"""Gemini image generation client.

Supports text-to-image and image-to-image generation. Each requested sample
is a separate ``generate_content`` call; a call may come back without an
image when the model rejects the prompt, so the result list can be shorter
than the requested sample count.
"""
from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass
from typing import Any

import httpx
from google import genai
from google.genai import errors as genai_errors

from image_gateway.errors import ConfigurationError, InternalError, ProviderRejectionError, TransportError
from image_gateway.schemas import DEFAULT_INPUT_MIME_TYPE

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_MIME_TYPE = "image/png"
RESPONSE_MODALITIES = ["TEXT", "IMAGE"]


@dataclass
class InlineImage:
    """Base64-encoded image payload with its media type."""

    base64_data: str
    mime_type: str


class GeminiImageProvider:
    def __init__(
        self,
        api_key: str | None,
        model: str,
        http_client: httpx.Client | None = None,
        fetch_timeout: float = 30.0,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.fetch_timeout = fetch_timeout
        self._http_client = http_client

    def generate_images(
        self,
        prompt: str,
        sample_count: int = 1,
        input_image: InlineImage | None = None,
        aspect_ratio: str | None = None,
    ) -> list[InlineImage]:
        if not self.api_key:
            raise ConfigurationError("Gemini API key not configured")

        client = genai.Client(api_key=self.api_key)
        contents = build_contents(prompt, input_image)
        config = build_content_config(aspect_ratio)

        results: list[InlineImage] = []
        for attempt in range(sample_count):
            try:
                response = client.models.generate_content(
                    model=self.model,
                    contents=contents,
                    config=config,
                )
            except (genai_errors.APIError, httpx.HTTPError) as exc:
                raise TransportError(f"Gemini API Error: {exc}") from exc

            image = extract_inline_image(response)
            if image is None:
                logger.warning(
                    "Gemini returned no image",
                    extra={"model": self.model, "attempt": attempt},
                )
                continue
            results.append(image)

        if not results:
            raise ProviderRejectionError("No images generated. Model may have rejected the prompt.")

        logger.info(
            "Gemini generation finished",
            extra={"model": self.model, "requested": sample_count, "generated": len(results)},
        )
        return results

    def download_image(self, image_url: str) -> InlineImage:
        """Download an image and return it base64-encoded."""
        try:
            if self._http_client is not None:
                response = self._http_client.get(image_url, timeout=self.fetch_timeout)
            else:
                response = httpx.get(image_url, timeout=self.fetch_timeout, follow_redirects=True)
            response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise TransportError(f"Failed to download image: {exc}") from exc

        content_type = response.headers.get("content-type", "")
        mime_type = content_type.split(";")[0].strip() or DEFAULT_INPUT_MIME_TYPE
        return InlineImage(
            base64_data=base64.b64encode(response.content).decode("utf-8"),
            mime_type=mime_type,
        )


def build_contents(prompt: str, input_image: InlineImage | None = None) -> list[Any]:
    """Input image first (for editing), then the text prompt."""
    parts: list[Any] = []

    if input_image is not None:
        try:
            image_bytes = base64.b64decode(input_image.base64_data, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise InternalError(f"Invalid input image data: {exc}") from exc
        parts.append(genai.types.Part.from_bytes(data=image_bytes, mime_type=input_image.mime_type))

    parts.append(genai.types.Part.from_text(text=prompt))
    return [genai.types.Content(role="user", parts=parts)]


def build_content_config(aspect_ratio: str | None = None) -> Any:
    config_kwargs: dict[str, Any] = {"response_modalities": RESPONSE_MODALITIES}
    if aspect_ratio:
        config_kwargs["image_config"] = genai.types.ImageConfig(aspect_ratio=aspect_ratio)
    return genai.types.GenerateContentConfig(**config_kwargs)


def extract_inline_image(response: Any) -> InlineImage | None:
    """Return the first inline image of the first candidate, ignoring text parts."""
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return None

    content = getattr(candidates[0], "content", None)
    parts = getattr(content, "parts", None) or []
    for part in parts:
        inline_data = getattr(part, "inline_data", None)
        if inline_data is None:
            continue
        data = getattr(inline_data, "data", None) or b""
        if isinstance(data, (bytes, bytearray)):
            b64_data = base64.b64encode(bytes(data)).decode("utf-8")
        else:
            b64_data = data
        return InlineImage(
            base64_data=b64_data,
            mime_type=getattr(inline_data, "mime_type", None) or DEFAULT_OUTPUT_MIME_TYPE,
        )
    return None
