"""Resolve provider tags to constructed image adapters."""

import logging
from collections.abc import Callable

from imagestudio.adapters.base import (
    ImageProvider,
    ImageValidationError,
    MissingCredentialError,
    UnknownProviderError,
)
from imagestudio.adapters.google import GoogleImageAdapter
from imagestudio.adapters.openai import OpenAIImageAdapter
from imagestudio.config import settings
from imagestudio.constants import PROVIDER_GOOGLE, PROVIDER_OPENAI

logger = logging.getLogger(__name__)

# Provider tag -> (adapter factory, human-readable vendor label, settings attribute)
_PROVIDERS: dict[str, tuple[Callable[[str], ImageProvider], str, str]] = {
    PROVIDER_OPENAI: (OpenAIImageAdapter, "OpenAI", "openai_api_key"),
    PROVIDER_GOOGLE: (GoogleImageAdapter, "Google", "google_api_key"),
}


def parse_model_id(value: str) -> tuple[str, str]:
    """Split a "<provider>/<modelId>" identifier on its first slash.

    Raises:
        ImageValidationError: If the identifier has no slash or an empty half.
    """
    if not value or "/" not in value:
        raise ImageValidationError("Invalid model ID")
    provider, model_id = value.split("/", 1)
    if not provider or not model_id:
        raise ImageValidationError("Invalid model ID")
    return provider, model_id


def resolve_provider(provider_name: str, credential: str | None = None) -> ImageProvider:
    """Construct the adapter for a provider tag.

    Args:
        provider_name: One of the known vendor tags ("openai", "google").
        credential: Per-call API key. When absent the process-wide default
            for the vendor is used.

    Returns:
        Adapter bound to the resolved credential.

    Raises:
        UnknownProviderError: If the tag is not a known vendor.
        MissingCredentialError: If no credential is given and no default is set.
    """
    entry = _PROVIDERS.get(provider_name)
    if entry is None:
        raise UnknownProviderError(provider_name)
    factory, label, settings_attr = entry

    api_key = credential
    if not api_key:
        api_key = getattr(settings, settings_attr)
        if not api_key:
            raise MissingCredentialError(provider_name, label)
        logger.debug(f"Using default {label} credential")

    return factory(api_key)
