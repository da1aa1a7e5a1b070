"""Google image adapter (Gemini inline images and Imagen)."""

import base64
import logging
from enum import Enum
from typing import Any

import httpx
from google import genai
from google.genai import errors, types

from imagestudio.adapters.base import (
    GeneratedImage,
    GenerateImageParams,
    ImageProvider,
    ImageValidationError,
    MissingCredentialError,
    ProviderError,
    UnknownModelError,
)
from imagestudio.config import settings
from imagestudio.constants import (
    DEFAULT_MAX_IMAGES,
    GEMINI_IMAGE,
    GEMINI_MODEL_PREFIX,
    IMAGEN_MODEL_PREFIX,
    PROVIDER_GOOGLE,
)

logger = logging.getLogger(__name__)


class ModelFamily(str, Enum):
    """Google API surface a model name routes to."""

    GEMINI_INLINE = "gemini_inline"  # generateContent with inline image parts
    IMAGEN_PREDICT = "imagen_predict"  # predict-style generateImages
    UNKNOWN = "unknown"


def classify_model(model: str) -> ModelFamily:
    """Classify a Google model name by prefix."""
    if model.startswith(GEMINI_MODEL_PREFIX):
        return ModelFamily.GEMINI_INLINE
    if model.startswith(IMAGEN_MODEL_PREFIX):
        return ModelFamily.IMAGEN_PREDICT
    return ModelFamily.UNKNOWN


def _target_count(n: int | None) -> int:
    return max(1, min(DEFAULT_MAX_IMAGES, n or 1))


def _encode(data: bytes | str) -> str:
    """Inline data arrives as bytes from the SDK; pass through if already text."""
    if isinstance(data, str):
        return data
    return base64.b64encode(data).decode("utf-8")


class GoogleImageAdapter(ImageProvider):
    """Adapter for Google image generation.

    Gemini image models return images as inline parts of a content response
    and may return fewer images than asked for, so calls are repeated until
    the requested count is collected or the attempt budget runs out. Imagen
    models take a structured options object and return all images at once.
    Neither family supports edit or variation.
    """

    def __init__(self, api_key: str | None = None):
        """Initialize Google image adapter.

        Args:
            api_key: Google API key. Falls back to settings if not provided.
        """
        self._api_key = api_key or settings.google_api_key
        if not self._api_key:
            raise MissingCredentialError(PROVIDER_GOOGLE, "Google")
        self._client = genai.Client(api_key=self._api_key)

    @property
    def provider_name(self) -> str:
        return PROVIDER_GOOGLE

    async def generate(self, params: GenerateImageParams) -> list[GeneratedImage]:
        """Generate images, dispatching on the model family.

        Raises:
            UnknownModelError: Model matches neither the Gemini nor Imagen prefix.
            ImageValidationError: Missing prompt, or input images sent to Imagen.
            ProviderError: Google API returned an error.
        """
        if not params.prompt or not params.prompt.strip():
            raise ImageValidationError("Missing prompt", provider=PROVIDER_GOOGLE)
        model = params.model or GEMINI_IMAGE

        family = classify_model(model)
        if family is ModelFamily.GEMINI_INLINE:
            return await self._generate_gemini(model, params)
        if family is ModelFamily.IMAGEN_PREDICT:
            return await self._generate_imagen(model, params)
        raise UnknownModelError(PROVIDER_GOOGLE, model, "Google")

    async def _generate_gemini(
        self, model: str, params: GenerateImageParams
    ) -> list[GeneratedImage]:
        target = _target_count(params.n)

        # Input images go before the text prompt
        parts: list[types.Part] = [
            types.Part.from_bytes(data=image.to_bytes(), mime_type=image.mime_type)
            for image in params.images
        ]
        parts.append(types.Part.from_text(text=params.prompt))
        contents = [types.Content(role="user", parts=parts)]

        collected: list[GeneratedImage] = []
        attempts = 0
        while len(collected) < target and attempts < target:
            attempts += 1
            got = await self._gemini_once(model, contents)
            logger.info(
                f"Gemini attempt {attempts}/{target} returned {len(got)} image(s) "
                f"for model {model}"
            )
            collected.extend(got)

        if len(collected) < target:
            logger.warning(
                f"Gemini returned {len(collected)} of {target} requested image(s) "
                f"after {attempts} attempt(s)"
            )
        return collected[:target]

    async def _gemini_once(
        self, model: str, contents: list[types.Content]
    ) -> list[GeneratedImage]:
        """Issue one generateContent call and collect inline images of the first candidate."""
        try:
            response = await self._client.aio.models.generate_content(
                model=model,
                contents=contents,
                config=types.GenerateContentConfig(
                    response_modalities=["IMAGE", "TEXT"],
                ),
            )
        except errors.APIError as e:
            raise _provider_error(e) from e
        except httpx.HTTPError as e:
            raise transport_error(e) from e

        if not response.candidates:
            return []
        content = response.candidates[0].content
        if not content or not content.parts:
            return []

        images = []
        for part in content.parts:
            if part.inline_data and part.inline_data.data:
                images.append(GeneratedImage(b64_json=_encode(part.inline_data.data)))
        return images

    async def _generate_imagen(
        self, model: str, params: GenerateImageParams
    ) -> list[GeneratedImage]:
        if params.images:
            raise ImageValidationError(
                f"Model {model} does not accept input images", provider=PROVIDER_GOOGLE
            )

        # Forward only the options the caller actually set
        options: dict[str, Any] = {"number_of_images": _target_count(params.n)}
        if params.aspect_ratio:
            options["aspect_ratio"] = params.aspect_ratio
        if params.sample_image_size:
            options["image_size"] = params.sample_image_size
        if params.person_generation:
            options["person_generation"] = params.person_generation

        try:
            config = types.GenerateImagesConfig(**options)
        except ValueError as e:
            raise ImageValidationError(
                f"Invalid Imagen options: {e}", provider=PROVIDER_GOOGLE
            ) from e

        logger.info(f"Imagen generate: model={model} options={options}")
        try:
            response = await self._client.aio.models.generate_images(
                model=model,
                prompt=params.prompt,
                config=config,
            )
        except errors.APIError as e:
            raise _provider_error(e) from e
        except httpx.HTTPError as e:
            raise transport_error(e) from e

        images = []
        for generated in response.generated_images or []:
            image = generated.image
            if image and image.image_bytes:
                images.append(GeneratedImage(b64_json=_encode(image.image_bytes)))
        return images


def _provider_error(exc: errors.APIError) -> ProviderError:
    """Convert a google-genai API error, keeping the vendor status and message."""
    code = getattr(exc, "code", None)
    message = getattr(exc, "message", None) or str(exc)
    return ProviderError(
        f"Google API error: {code} {message}",
        provider=PROVIDER_GOOGLE,
        status_code=code if isinstance(code, int) else None,
    )


def transport_error(exc: httpx.HTTPError) -> ProviderError:
    """Convert a network failure inside the SDK into a retriable provider error."""
    return ProviderError(
        f"Google request failed: {exc}",
        provider=PROVIDER_GOOGLE,
        retriable=True,
    )
