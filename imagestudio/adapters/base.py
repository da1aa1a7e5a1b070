"""Base interface, shared types and errors for image provider adapters."""

import base64
import binascii
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


@dataclass
class InputImage:
    """An image supplied by the caller for editing, variation or composition.

    ``data`` is base64 text. A ``data:<mime>;base64,`` URL prefix is tolerated.
    """

    mime_type: str
    data: str

    @property
    def base64_data(self) -> str:
        """Base64 payload with any data URL prefix removed."""
        if "," in self.data:
            return self.data.split(",", 1)[1]
        return self.data

    def to_bytes(self) -> bytes:
        """Decode the image to raw bytes.

        Raises:
            ImageValidationError: If the payload is not valid base64.
        """
        try:
            return base64.b64decode(self.base64_data, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ImageValidationError("Input image is not valid base64") from e


@dataclass
class GeneratedImage:
    """A single normalized result: a hosted URL or inline base64 data."""

    url: str | None = None
    b64_json: str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.url and not self.b64_json

    def to_dict(self) -> dict[str, str]:
        """Serialize, omitting absent fields."""
        out: dict[str, str] = {}
        if self.url:
            out["url"] = self.url
        if self.b64_json:
            out["b64_json"] = self.b64_json
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GeneratedImage":
        return cls(url=data.get("url") or None, b64_json=data.get("b64_json") or None)


@dataclass
class GenerateImageParams:
    """Normalized parameters for text-to-image generation."""

    prompt: str
    model: str | None = None
    size: str | None = None
    quality: str | None = None
    n: int | None = None
    response_format: str | None = None
    user: str | None = None
    # Streaming (gpt-image-1 only)
    stream: bool = False
    partial_images: int | None = None
    # Inline images for composition (Gemini)
    images: list[InputImage] = field(default_factory=list)
    # Imagen options
    aspect_ratio: str | None = None
    sample_image_size: str | None = None
    person_generation: str | None = None


@dataclass
class EditImageParams:
    """Parameters for editing one or more input images with a prompt."""

    image: InputImage | list[InputImage]
    prompt: str
    model: str | None = None
    n: int | None = None
    size: str | None = None
    response_format: str | None = None
    user: str | None = None

    @property
    def images(self) -> list[InputImage]:
        """Input images as a list, whether one or many were supplied."""
        if isinstance(self.image, list):
            return self.image
        return [self.image]


@dataclass
class VariationImageParams:
    """Parameters for creating variations of a single input image."""

    image: InputImage
    model: str | None = None
    n: int | None = None
    size: str | None = None
    response_format: str | None = None
    user: str | None = None


class Capability(str, Enum):
    """Operations an image provider may support."""

    GENERATE = "generate"
    EDIT = "edit"
    VARIATION = "variation"


class ImageProvider(ABC):
    """Abstract base class for image generation providers.

    ``generate`` is always available. ``edit`` and ``create_variation`` are
    optional: check ``supports()`` first. Calling an operation the provider
    does not support raises UnsupportedOperationError without any network I/O.
    """

    capabilities: frozenset[Capability] = frozenset({Capability.GENERATE})

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name (e.g., 'openai')."""
        ...

    def supports(self, capability: Capability) -> bool:
        """Check whether this provider implements an operation."""
        return capability in self.capabilities

    @abstractmethod
    async def generate(self, params: GenerateImageParams) -> list[GeneratedImage]:
        """Generate images from a text prompt.

        Args:
            params: Normalized generation parameters.

        Returns:
            Generated images, possibly fewer than requested.

        Raises:
            ImageValidationError: If parameters are invalid for the model.
            ProviderError: If the vendor call fails.
        """
        ...

    async def edit(self, params: EditImageParams) -> list[GeneratedImage]:
        """Edit input images according to a prompt."""
        raise UnsupportedOperationError(self.provider_name, Capability.EDIT)

    async def create_variation(self, params: VariationImageParams) -> list[GeneratedImage]:
        """Create variations of an input image."""
        raise UnsupportedOperationError(self.provider_name, Capability.VARIATION)


def normalize_images(items: list[dict[str, Any]] | None) -> list[GeneratedImage]:
    """Convert vendor response items into GeneratedImage, dropping empty ones."""
    images = []
    for item in items or []:
        if not isinstance(item, dict):
            continue
        image = GeneratedImage(url=item.get("url") or None, b64_json=item.get("b64_json") or None)
        if not image.is_empty:
            images.append(image)
    return images


class ProviderError(Exception):
    """Base exception for provider errors."""

    def __init__(
        self,
        message: str,
        provider: str = "",
        retriable: bool = False,
        status_code: int | None = None,
    ):
        super().__init__(message)
        self.provider = provider
        self.retriable = retriable
        self.status_code = status_code


class ImageValidationError(ProviderError):
    """Request rejected before any vendor call was made."""

    def __init__(self, message: str, provider: str = ""):
        super().__init__(message, provider=provider, retriable=False, status_code=400)


class UnsupportedOperationError(ImageValidationError):
    """Provider does not offer the requested operation."""

    def __init__(self, provider: str, operation: Capability):
        super().__init__(
            f"Operation '{operation.value}' is not supported by provider {provider}",
            provider=provider,
        )
        self.operation = operation


class UnknownProviderError(ImageValidationError):
    """Provider tag is not one of the known vendors."""

    def __init__(self, provider: str):
        super().__init__(f"Unknown provider: {provider}", provider=provider)


class UnknownModelError(ImageValidationError):
    """Model name does not belong to any family the provider can route."""

    def __init__(self, provider: str, model: str, label: str):
        super().__init__(f"Unknown {label} model: {model}", provider=provider)
        self.model = model


class MissingCredentialError(ImageValidationError):
    """No explicit credential and no process-wide default for the vendor."""

    def __init__(self, provider: str, label: str):
        super().__init__(f"{label} API key is required", provider=provider)


class MalformedResponseError(ProviderError):
    """Vendor returned a body that could not be parsed."""

    def __init__(self, provider: str, detail: str = "unparseable response body"):
        super().__init__(
            f"Malformed response from {provider}: {detail}",
            provider=provider,
            retriable=False,
            status_code=502,
        )
