"""Shared constants used across the application."""

# Provider tags accepted in "<provider>/<modelId>" identifiers
PROVIDER_OPENAI = "openai"
PROVIDER_GOOGLE = "google"


# =============================================================================
# Model Constants - SINGLE SOURCE OF TRUTH
# =============================================================================
# Update these when new model versions are released.
# All code should import from here, not hardcode model strings.

# OpenAI image models
GPT_IMAGE = "gpt-image-1"  # Conversational model, the only one that edits
DALL_E_3 = "dall-e-3"  # Single-shot text-to-image, one image per call
DALL_E_2 = "dall-e-2"  # Legacy, the only one that makes variations

# Google image models (matched by prefix, see adapters.google.classify_model)
GEMINI_IMAGE = "gemini-2.5-flash-image-preview"
IMAGEN = "imagen-4.0-generate-001"
GEMINI_MODEL_PREFIX = "gemini"
IMAGEN_MODEL_PREFIX = "imagen"

# Text model used to rewrite prompts
GEMINI_FLASH_LITE = "gemini-2.5-flash-lite"

# Defaults when the caller leaves the model out
DEFAULT_OPENAI_MODEL = DALL_E_3
DEFAULT_VARIATION_MODEL = DALL_E_2
DEFAULT_EDIT_MODEL = GPT_IMAGE


# =============================================================================
# Request Parameters
# =============================================================================

DEFAULT_SIZE = "1024x1024"

VALID_SIZES = (
    "256x256",
    "512x512",
    "1024x1024",
    "1024x1536",
    "1536x1024",
    "1024x1792",
    "1792x1024",
)

VALID_RESPONSE_FORMATS = ("url", "b64_json")
DEFAULT_RESPONSE_FORMAT = "b64_json"

# Quality vocabularies differ per model family
GPT_IMAGE_QUALITIES = ("auto", "low", "medium", "high")
DALL_E_QUALITIES = ("standard", "hd")

# Nearest equivalent when a quality from the other vocabulary is requested
GPT_IMAGE_QUALITY_MAP: dict[str, str] = {
    "standard": "auto",
    "hd": "high",
}
DALL_E_QUALITY_MAP: dict[str, str] = {
    "auto": "standard",
    "low": "standard",
    "medium": "standard",
    "high": "hd",
}

DEFAULT_GPT_IMAGE_QUALITY = "auto"
DEFAULT_DALL_E_QUALITY = "standard"

# Images per call
LEGACY_MAX_IMAGES = 10  # dall-e-2 generate and variations
DEFAULT_MAX_IMAGES = 4  # every other model, including Gemini and Imagen
VARIATION_MIN_IMAGES = 1
VARIATION_MAX_IMAGES = 10

# Upload limit for variation source images (bytes)
MAX_VARIATION_IMAGE_BYTES = 4 * 1024 * 1024

# Default number of history records returned by list
DEFAULT_HISTORY_LIMIT = 100
