"""Image provider adapters."""

from imagestudio.adapters.base import (
    Capability,
    EditImageParams,
    GeneratedImage,
    GenerateImageParams,
    ImageProvider,
    InputImage,
    ProviderError,
    VariationImageParams,
)

__all__ = [
    "Capability",
    "EditImageParams",
    "GeneratedImage",
    "GenerateImageParams",
    "ImageProvider",
    "InputImage",
    "ProviderError",
    "VariationImageParams",
]
