"""Image generation, edit and variation endpoints.

These handlers only validate and reshape the request body; everything else
is done by the GenerationService. The proxy keeps no history: records are
stored on the device that makes the request.
"""

import logging
from typing import Annotated, NoReturn

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from imagestudio.adapters.base import (
    EditImageParams,
    GenerateImageParams,
    ImageValidationError,
    InputImage,
    ProviderError,
    VariationImageParams,
)
from imagestudio.constants import (
    DEFAULT_RESPONSE_FORMAT,
    DEFAULT_VARIATION_MODEL,
    LEGACY_MAX_IMAGES,
    MAX_VARIATION_IMAGE_BYTES,
    PROVIDER_OPENAI,
    VALID_RESPONSE_FORMATS,
    VALID_SIZES,
)
from imagestudio.services.generation import GenerationOutcome, GenerationService

logger = logging.getLogger(__name__)

router = APIRouter()


class InputImageModel(BaseModel):
    """Base64 image supplied by the client."""

    mime_type: str = Field(..., description="MIME type (e.g., image/png)")
    data: str = Field(..., min_length=1, description="Base64-encoded image data")

    def to_input(self) -> InputImage:
        return InputImage(mime_type=self.mime_type, data=self.data)


class GeneratedImageModel(BaseModel):
    """One generated image: hosted URL or base64 data."""

    url: str | None = None
    b64_json: str | None = None


class ImagesResponse(BaseModel):
    """Response body shared by generate, edit and variations."""

    images: list[GeneratedImageModel]
    provider: str | None = Field(None, description="Provider that served the request")


class GenerateRequest(BaseModel):
    """Request body for text-to-image generation."""

    prompt: str = Field(..., min_length=1, description="Text description of desired image")
    model: str = Field(..., description='Model identifier "<provider>/<modelId>"')
    n: int | None = Field(default=None, description="Number of images")
    size: str | None = Field(default=None, description="Image dimensions (OpenAI)")
    quality: str | None = Field(default=None, description="Quality hint (OpenAI)")
    aspect_ratio: str | None = Field(default=None, description="Aspect ratio (Imagen)")
    sample_image_size: str | None = Field(default=None, description="Resolution (Imagen)")
    person_generation: str | None = Field(default=None, description="Person policy (Imagen)")
    images: list[InputImageModel] | None = Field(
        default=None, description="Inline images for composition (Gemini)"
    )
    api_key: str | None = Field(default=None, description="Per-call API key override")


class EditRequest(BaseModel):
    """Request body for image editing."""

    images: list[InputImageModel] = Field(..., min_length=1, description="Images to edit")
    prompt: str = Field(..., min_length=1, description="Edit instruction")
    model: str = Field(..., description='Model identifier "<provider>/<modelId>"')
    n: int | None = None
    size: str | None = None
    response_format: str | None = None
    user: str | None = None
    api_key: str | None = Field(default=None, description="Per-call API key override")


class VariationRequest(BaseModel):
    """Request body for image variations."""

    image: InputImageModel
    model: str = Field(
        default=f"{PROVIDER_OPENAI}/{DEFAULT_VARIATION_MODEL}",
        description='Model identifier "<provider>/<modelId>"',
    )
    n: int | None = None
    size: str | None = None
    response_format: str | None = None
    user: str | None = None
    api_key: str | None = Field(default=None, description="Per-call API key override")


_generation_service: GenerationService | None = None


def get_generation_service() -> GenerationService:
    """Get cached generation service (no history recording on the proxy)."""
    global _generation_service
    if _generation_service is None:
        _generation_service = GenerationService()
    return _generation_service


ServiceDep = Annotated[GenerationService, Depends(get_generation_service)]


def _clamp_count(n: int | None) -> int | None:
    if n is None:
        return None
    return max(1, min(LEGACY_MAX_IMAGES, n))


def _allowed(value: str | None, allowed: tuple[str, ...]) -> str | None:
    return value if value in allowed else None


def _raise_http(e: Exception, endpoint: str) -> NoReturn:
    """Map service errors onto HTTP status codes."""
    if isinstance(e, ImageValidationError):
        logger.info(f"Rejected {endpoint} request: {e}")
        raise HTTPException(status_code=400, detail=str(e)) from e
    if isinstance(e, ProviderError):
        logger.error(f"Provider error in {endpoint}: {e}")
        raise HTTPException(status_code=e.status_code or 502, detail=str(e)) from e
    logger.exception(f"Unexpected error in {endpoint}: {e}")
    raise HTTPException(
        status_code=500,
        detail="Internal server error. Check logs for details.",
    ) from e


def _response(outcome: GenerationOutcome) -> ImagesResponse:
    return ImagesResponse(
        images=[GeneratedImageModel(**image.to_dict()) for image in outcome.images],
        provider=outcome.provider,
    )


@router.post("/generate", response_model=ImagesResponse)
async def generate_images(request: GenerateRequest, service: ServiceDep) -> ImagesResponse:
    """Generate images from a text prompt with any supported provider."""
    params = GenerateImageParams(
        prompt=request.prompt,
        n=request.n,
        size=request.size,
        quality=request.quality,
        aspect_ratio=request.aspect_ratio,
        sample_image_size=request.sample_image_size,
        person_generation=request.person_generation,
        images=[image.to_input() for image in request.images or []],
        response_format=DEFAULT_RESPONSE_FORMAT,
    )
    try:
        outcome = await service.generate(
            request.model, params, api_key=request.api_key, raise_errors=True
        )
    except Exception as e:
        _raise_http(e, "/generate")
    return _response(outcome)


@router.post("/edit", response_model=ImagesResponse)
async def edit_images(request: EditRequest, service: ServiceDep) -> ImagesResponse:
    """Edit one or more images with a prompt (OpenAI gpt-image-1)."""
    images = [image.to_input() for image in request.images]
    params = EditImageParams(
        image=images[0] if len(images) == 1 else images,
        prompt=request.prompt,
        n=_clamp_count(request.n),
        size=_allowed(request.size, VALID_SIZES),
        response_format=_allowed(request.response_format, VALID_RESPONSE_FORMATS),
        user=request.user or None,
    )
    try:
        outcome = await service.edit(
            request.model, params, api_key=request.api_key, raise_errors=True
        )
    except Exception as e:
        _raise_http(e, "/edit")
    return _response(outcome)


@router.post("/variations", response_model=ImagesResponse)
async def create_variations(request: VariationRequest, service: ServiceDep) -> ImagesResponse:
    """Create variations of one image (OpenAI dall-e-2)."""
    image = request.image.to_input()
    try:
        if not image.mime_type.startswith("image/"):
            raise ImageValidationError("File must be an image")
        if len(image.to_bytes()) > MAX_VARIATION_IMAGE_BYTES:
            raise ImageValidationError("Image file must be less than 4MB")

        params = VariationImageParams(
            image=image,
            n=_clamp_count(request.n),
            size=request.size,
            response_format=request.response_format,
            user=request.user or None,
        )
        outcome = await service.create_variation(
            request.model, params, api_key=request.api_key, raise_errors=True
        )
    except Exception as e:
        _raise_http(e, "/variations")
    return _response(outcome)


def clear_generation_service_cache() -> None:
    """Clear the cached service. Useful for testing."""
    global _generation_service
    _generation_service = None

