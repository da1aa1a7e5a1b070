"""OpenAI image adapter.

Talks to the OpenAI images REST API (generations, edits, variations) with
httpx and normalizes every response into GeneratedImage items.

Model rules:
- gpt-image-1: conversational model, the only one that edits. Quality
  vocabulary is auto/low/medium/high and it always answers in base64.
- dall-e-3: single-shot text-to-image, exactly one image per call.
- dall-e-2: legacy model, up to 10 images, the only one that makes variations.
"""

import json
import logging
from typing import Any

import httpx

from imagestudio.adapters.base import (
    Capability,
    EditImageParams,
    GeneratedImage,
    GenerateImageParams,
    ImageProvider,
    ImageValidationError,
    InputImage,
    MalformedResponseError,
    MissingCredentialError,
    ProviderError,
    VariationImageParams,
    normalize_images,
)
from imagestudio.config import settings
from imagestudio.constants import (
    DALL_E_2,
    DALL_E_3,
    DALL_E_QUALITIES,
    DALL_E_QUALITY_MAP,
    DEFAULT_DALL_E_QUALITY,
    DEFAULT_EDIT_MODEL,
    DEFAULT_GPT_IMAGE_QUALITY,
    DEFAULT_MAX_IMAGES,
    DEFAULT_OPENAI_MODEL,
    DEFAULT_RESPONSE_FORMAT,
    DEFAULT_SIZE,
    DEFAULT_VARIATION_MODEL,
    GPT_IMAGE,
    GPT_IMAGE_QUALITIES,
    GPT_IMAGE_QUALITY_MAP,
    LEGACY_MAX_IMAGES,
    PROVIDER_OPENAI,
    VARIATION_MAX_IMAGES,
    VARIATION_MIN_IMAGES,
)

logger = logging.getLogger(__name__)

_STREAM_COMPLETED_EVENT = "image_generation.completed"


def legalize_quality(model: str, quality: str | None) -> str | None:
    """Map a requested quality onto the vocabulary the model accepts.

    Values from the other model family are remapped to their nearest
    equivalent; unrecognized values fall back to the model default. Models
    outside the known families get the caller's value verbatim.
    """
    if model == GPT_IMAGE:
        value = quality or DEFAULT_GPT_IMAGE_QUALITY
        value = GPT_IMAGE_QUALITY_MAP.get(value, value)
        return value if value in GPT_IMAGE_QUALITIES else DEFAULT_GPT_IMAGE_QUALITY
    if model in (DALL_E_3, DALL_E_2):
        value = quality or DEFAULT_DALL_E_QUALITY
        value = DALL_E_QUALITY_MAP.get(value, value)
        return value if value in DALL_E_QUALITIES else DEFAULT_DALL_E_QUALITY
    return quality


def resolve_image_count(model: str, n: int | None) -> int:
    """Validate or clamp the number of images for a model.

    Raises:
        ImageValidationError: If more than one image is requested from dall-e-3.
    """
    requested = 1 if n is None else n
    if model == DALL_E_3:
        if requested > 1:
            raise ImageValidationError(
                f"Model {model} generates a single image per request (got n={requested})",
                provider=PROVIDER_OPENAI,
            )
        return 1
    upper = LEGACY_MAX_IMAGES if model == DALL_E_2 else DEFAULT_MAX_IMAGES
    return max(1, min(upper, requested))


def _require_prompt(prompt: str | None) -> str:
    if not prompt or not prompt.strip():
        raise ImageValidationError("Missing prompt", provider=PROVIDER_OPENAI)
    return prompt


def _image_file(image: InputImage, index: int) -> tuple[str, bytes, str]:
    """Build an httpx multipart file tuple from an input image."""
    mime_type = image.mime_type or "image/png"
    extension = mime_type.split("/")[-1] if "/" in mime_type else "png"
    return (f"image_{index}.{extension}", image.to_bytes(), mime_type)


class OpenAIImageAdapter(ImageProvider):
    """Adapter for the OpenAI images API."""

    capabilities = frozenset({Capability.GENERATE, Capability.EDIT, Capability.VARIATION})

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
    ):
        """Initialize OpenAI image adapter.

        Args:
            api_key: OpenAI API key. Falls back to settings if not provided.
            base_url: API root. Falls back to settings if not provided.
            timeout: Transport timeout in seconds. Falls back to settings.
        """
        self._api_key = api_key or settings.openai_api_key
        if not self._api_key:
            raise MissingCredentialError(PROVIDER_OPENAI, "OpenAI")
        self._base_url = (base_url or settings.openai_base_url).rstrip("/")
        self._timeout = timeout if timeout is not None else settings.openai_timeout

    @property
    def provider_name(self) -> str:
        return PROVIDER_OPENAI

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            headers={"Authorization": f"Bearer {self._api_key}"},
        )

    async def generate(self, params: GenerateImageParams) -> list[GeneratedImage]:
        """Generate images via /images/generations.

        Raises:
            ImageValidationError: Invalid count for dall-e-3, missing prompt,
                or input images (use edit instead).
            ProviderError: Vendor returned a non-2xx status or the transport failed.
            MalformedResponseError: Response body was not the expected JSON.
        """
        prompt = _require_prompt(params.prompt)
        model = params.model or DEFAULT_OPENAI_MODEL
        if params.images:
            raise ImageValidationError(
                "Input images are not accepted for OpenAI generation; use edit instead",
                provider=PROVIDER_OPENAI,
            )

        n = resolve_image_count(model, params.n)
        payload: dict[str, Any] = {
            "model": model,
            "prompt": prompt,
            "n": n,
            "size": params.size or DEFAULT_SIZE,
        }
        quality = legalize_quality(model, params.quality)
        if quality:
            payload["quality"] = quality
        if model != GPT_IMAGE:
            payload["response_format"] = params.response_format or DEFAULT_RESPONSE_FORMAT
        if params.user:
            payload["user"] = params.user

        logger.info(
            f"OpenAI generate: model={model} n={n} size={payload['size']} quality={quality}"
        )

        if params.stream and model == GPT_IMAGE:
            try:
                return await self._stream_generation(payload, params.partial_images)
            except ProviderError as e:
                if e.status_code != 400 or isinstance(e, ImageValidationError):
                    raise
                logger.warning(f"Streaming rejected by OpenAI, retrying without stream: {e}")

        body = await self._post("/images/generations", json=payload)
        return normalize_images(body.get("data"))

    async def edit(self, params: EditImageParams) -> list[GeneratedImage]:
        """Edit one or more images via /images/edits (gpt-image-1 only).

        Response format is not negotiable for this model, so any requested
        value is ignored.
        """
        images = params.images
        if not images:
            raise ImageValidationError(
                "At least one input image is required", provider=PROVIDER_OPENAI
            )
        model = params.model or DEFAULT_EDIT_MODEL
        if model != GPT_IMAGE:
            raise ImageValidationError(
                f"Image editing not supported for model {model}", provider=PROVIDER_OPENAI
            )
        prompt = _require_prompt(params.prompt)

        n = resolve_image_count(model, params.n)
        form: dict[str, str] = {"model": model, "prompt": prompt, "n": str(n)}
        if params.size:
            form["size"] = params.size
        if params.user:
            form["user"] = params.user
        if params.response_format:
            logger.debug(f"Ignoring response_format={params.response_format} for {model} edit")

        field_name = "image" if len(images) == 1 else "image[]"
        files = [(field_name, _image_file(image, i)) for i, image in enumerate(images)]

        logger.info(f"OpenAI edit: model={model} n={n} images={len(images)}")
        body = await self._post("/images/edits", data=form, files=files)
        return normalize_images(body.get("data"))

    async def create_variation(self, params: VariationImageParams) -> list[GeneratedImage]:
        """Create variations via /images/variations (dall-e-2 only)."""
        model = params.model or DEFAULT_VARIATION_MODEL
        if model != DALL_E_2:
            raise ImageValidationError(
                f"Image variations not supported for model {model}", provider=PROVIDER_OPENAI
            )
        n = 1 if params.n is None else params.n
        if not VARIATION_MIN_IMAGES <= n <= VARIATION_MAX_IMAGES:
            raise ImageValidationError(
                f"n must be between {VARIATION_MIN_IMAGES} and {VARIATION_MAX_IMAGES}, got {n}",
                provider=PROVIDER_OPENAI,
            )

        image = params.image
        if isinstance(image, list):
            if len(image) != 1:
                raise ImageValidationError(
                    "Exactly one input image is required for variations",
                    provider=PROVIDER_OPENAI,
                )
            image = image[0]

        form: dict[str, str] = {"model": model, "n": str(n)}
        if params.response_format:
            form["response_format"] = params.response_format
        if params.size:
            form["size"] = params.size
        if params.user:
            form["user"] = params.user

        logger.info(f"OpenAI variation: model={model} n={n}")
        files = [("image", _image_file(image, 0))]
        body = await self._post("/images/variations", data=form, files=files)
        return normalize_images(body.get("data"))

    async def _post(self, path: str, **kwargs: Any) -> dict[str, Any]:
        """POST to the images API and return the decoded JSON body."""
        try:
            async with self._client() as client:
                response = await client.post(path, **kwargs)
        except httpx.HTTPError as e:
            raise ProviderError(
                f"OpenAI request failed: {e}",
                provider=PROVIDER_OPENAI,
                retriable=True,
            ) from e

        if not response.is_success:
            raise ProviderError(
                f"OpenAI API error: {response.status_code} {response.text}",
                provider=PROVIDER_OPENAI,
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise MalformedResponseError(PROVIDER_OPENAI) from e
        if not isinstance(body, dict):
            raise MalformedResponseError(PROVIDER_OPENAI, "expected a JSON object")
        return body

    async def _stream_generation(
        self,
        payload: dict[str, Any],
        partial_images: int | None,
    ) -> list[GeneratedImage]:
        """Run a streamed generation and collect the completed images.

        Partial image events are skipped; only final images are returned.
        """
        stream_payload = {**payload, "stream": True}
        if partial_images is not None:
            stream_payload["partial_images"] = partial_images

        images: list[GeneratedImage] = []
        try:
            async with self._client() as client:
                async with client.stream(
                    "POST", "/images/generations", json=stream_payload
                ) as response:
                    if not response.is_success:
                        raw = await response.aread()
                        raise ProviderError(
                            f"OpenAI API error: {response.status_code} "
                            f"{raw.decode('utf-8', errors='replace')}",
                            provider=PROVIDER_OPENAI,
                            status_code=response.status_code,
                        )
                    async for line in response.aiter_lines():
                        event = _parse_sse_line(line)
                        if event is None or event.get("type") != _STREAM_COMPLETED_EVENT:
                            continue
                        if event.get("b64_json"):
                            images.append(GeneratedImage(b64_json=event["b64_json"]))
        except httpx.HTTPError as e:
            raise ProviderError(
                f"OpenAI request failed: {e}",
                provider=PROVIDER_OPENAI,
                retriable=True,
            ) from e

        logger.info(f"OpenAI stream completed with {len(images)} image(s)")
        return images


def _parse_sse_line(line: str) -> dict[str, Any] | None:
    """Decode one server-sent-event data line, or None for non-data lines."""
    if not line.startswith("data:"):
        return None
    raw = line[len("data:") :].strip()
    if not raw or raw == "[DONE]":
        return None
    try:
        event = json.loads(raw)
    except ValueError as e:
        raise MalformedResponseError(PROVIDER_OPENAI, "invalid stream event") from e
    return event if isinstance(event, dict) else None
