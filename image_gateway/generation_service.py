"""Orchestrates one image generation request.

validate -> generate -> upload each image -> write metadata -> respond.

Validation and authorization failures raise ``CallableError`` before any
outbound call. Later failures are returned as a ``GenerationFailure``; images
uploaded before the failure are left in place.
"""
from __future__ import annotations

import logging
import random
import string
import time
from dataclasses import dataclass, field
from typing import List, Optional, Union

from image_gateway.asset_store import AssetStore
from image_gateway.errors import CallableError, ErrorKind, GenerationError
from image_gateway.image_provider import GeminiImageProvider, InlineImage
from image_gateway.metadata_store import MetadataStore
from image_gateway.schemas import DEFAULT_INPUT_MIME_TYPE, GenerationRequest, GenerationResponse

logger = logging.getLogger(__name__)

MIN_SAMPLE_COUNT = 1
MAX_SAMPLE_COUNT = 4
GENERATION_ID_SUFFIX_LENGTH = 9
_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits

UNAUTHENTICATED_MESSAGE = "User must be authenticated"
MISSING_PROMPT_MESSAGE = "Prompt is required"


@dataclass
class GenerationSuccess:
    generation_id: str
    images: List[str] = field(default_factory=list)
    image_urls: List[str] = field(default_factory=list)
    success: bool = field(default=True, init=False)


@dataclass
class GenerationFailure:
    kind: ErrorKind
    error: str
    success: bool = field(default=False, init=False)


GenerationOutcome = Union[GenerationSuccess, GenerationFailure]


def normalize_sample_count(sample_count: Optional[float]) -> int:
    """Clamp to [1, 4]; fractional counts are truncated first."""
    if sample_count is None:
        return MAX_SAMPLE_COUNT
    return min(max(int(sample_count), MIN_SAMPLE_COUNT), MAX_SAMPLE_COUNT)


def new_generation_id() -> str:
    suffix = "".join(random.choices(_SUFFIX_ALPHABET, k=GENERATION_ID_SUFFIX_LENGTH))
    return f"{int(time.time() * 1000)}_{suffix}"


def validate_request(request: GenerationRequest, uid: Optional[str]) -> str:
    if not uid:
        raise CallableError.unauthenticated(UNAUTHENTICATED_MESSAGE)
    if not request.prompt:
        raise CallableError.invalid_argument(MISSING_PROMPT_MESSAGE)
    return uid


class ImageGenerationService:
    def __init__(self, provider: GeminiImageProvider, asset_store: AssetStore, metadata_store: MetadataStore):
        self.provider = provider
        self.asset_store = asset_store
        self.metadata_store = metadata_store

    def resolve_input_image(self, request: GenerationRequest) -> Optional[InlineImage]:
        if request.input_image_url:
            return self.provider.download_image(request.input_image_url)
        if request.input_image_base64:
            return InlineImage(
                base64_data=request.input_image_base64,
                mime_type=request.input_image_mime_type or DEFAULT_INPUT_MIME_TYPE,
            )
        return None

    def generate(self, request: GenerationRequest, uid: Optional[str]) -> GenerationOutcome:
        uid = validate_request(request, uid)
        sample_count = normalize_sample_count(request.sample_count)
        generation_id = request.generation_id or new_generation_id()
        log_extra = {"uid": uid, "generation_id": generation_id}

        logger.info(
            "Starting image generation",
            extra={**log_extra, "sample_count": sample_count, "aspect_ratio": request.aspect_ratio},
        )

        try:
            input_image = self.resolve_input_image(request)
            results = self.provider.generate_images(
                prompt=request.prompt,
                sample_count=sample_count,
                input_image=input_image,
                aspect_ratio=request.aspect_ratio,
            )

            images: List[str] = []
            image_urls: List[str] = []
            for index, result in enumerate(results):
                url = self.asset_store.upload_generated_image(uid, generation_id, index, result.base64_data)
                image_urls.append(url)
                images.append(result.base64_data)

            self.metadata_store.touch_user(uid)
            self.metadata_store.create_generation(
                uid=uid,
                generation_id=generation_id,
                prompt=request.prompt,
                image_urls=image_urls,
                original_url=request.original_url,
                input_image_url=request.input_image_url,
                has_input_image=input_image is not None,
                aspect_ratio=request.aspect_ratio,
            )
        except GenerationError as exc:
            logger.error(
                "Image generation failed",
                extra={**log_extra, "kind": exc.kind.value, "error": exc.message},
            )
            return GenerationFailure(kind=exc.kind, error=exc.message or "Failed to generate image")

        logger.info("Image generation completed", extra={**log_extra, "count": len(images)})
        return GenerationSuccess(generation_id=generation_id, images=images, image_urls=image_urls)


def to_response(outcome: GenerationOutcome) -> GenerationResponse:
    if isinstance(outcome, GenerationSuccess):
        return GenerationResponse(
            success=True,
            images=outcome.images,
            image_urls=outcome.image_urls,
            generation_id=outcome.generation_id,
        )
    return GenerationResponse(success=False, error=outcome.error)
