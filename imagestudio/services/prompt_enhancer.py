"""Rewrite a short prompt into one detailed image-generation prompt."""

import logging

import httpx
from google import genai
from google.genai import errors

from imagestudio.adapters.base import ImageValidationError, MissingCredentialError, ProviderError
from imagestudio.adapters.google import transport_error
from imagestudio.config import settings
from imagestudio.constants import PROVIDER_GOOGLE

logger = logging.getLogger(__name__)

ENHANCE_INSTRUCTION = (
    "Rewrite the following prompt to be a single, highly descriptive prompt for image "
    "generation. Do not provide options or suggestions, just return the enhanced prompt only: "
)


async def enhance_prompt(prompt: str, api_key: str | None = None) -> str:
    """Return an enhanced version of ``prompt``.

    Raises:
        ImageValidationError: If the prompt is empty.
        MissingCredentialError: If no Google API key is available.
        ProviderError: If the model call fails or returns no text.
    """
    if not prompt or not prompt.strip():
        raise ImageValidationError("Missing prompt", provider=PROVIDER_GOOGLE)

    key = api_key or settings.google_api_key
    if not key:
        raise MissingCredentialError(PROVIDER_GOOGLE, "Google")

    client = genai.Client(api_key=key)
    try:
        response = await client.aio.models.generate_content(
            model=settings.prompt_enhance_model,
            contents=f"{ENHANCE_INSTRUCTION}{prompt}",
        )
    except errors.APIError as e:
        raise ProviderError(
            f"Google API error: {e.code} {e.message}",
            provider=PROVIDER_GOOGLE,
            status_code=e.code,
        ) from e
    except httpx.HTTPError as e:
        raise transport_error(e) from e

    text = response.text
    if not text or not text.strip():
        raise ProviderError("Failed to enhance prompt", provider=PROVIDER_GOOGLE, status_code=502)

    logger.info(f"Enhanced prompt ({len(prompt)} -> {len(text)} chars)")
    return text.strip()
