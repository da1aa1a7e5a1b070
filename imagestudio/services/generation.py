"""Generation service: resolve a provider, run the operation, record history.

This is the single caller of the provider abstraction. Both the HTTP proxy
and the CLI go through it so validation, capability checks and history
recording behave the same everywhere.
"""

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Any

from imagestudio.adapters.base import (
    Capability,
    EditImageParams,
    GeneratedImage,
    GenerateImageParams,
    ImageProvider,
    ProviderError,
    UnsupportedOperationError,
    VariationImageParams,
)
from imagestudio.adapters.registry import parse_model_id, resolve_provider
from imagestudio.storage.history import HistoryRecord, HistoryRecorder

logger = logging.getLogger(__name__)

NO_IMAGES_ERROR = "No images were returned by the provider"


@dataclass
class GenerationOutcome:
    """Result of one request, successful or not."""

    model_id: str
    provider: str | None = None
    images: list[GeneratedImage] = field(default_factory=list)
    error: str | None = None
    record: HistoryRecord | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


class GenerationService:
    """Runs generate / edit / variation requests against resolved providers.

    When a recorder is configured, every request produces exactly one history
    record: a success with images, or a failure with the error message. The
    write is dispatched in the background and never affects the outcome.
    """

    def __init__(self, recorder: HistoryRecorder | None = None):
        self._recorder = recorder

    async def generate(
        self,
        model_id: str,
        params: GenerateImageParams,
        api_key: str | None = None,
        raise_errors: bool = False,
    ) -> GenerationOutcome:
        """Generate images for "<provider>/<modelId>"."""
        return await self._run(Capability.GENERATE, model_id, params, api_key, raise_errors)

    async def edit(
        self,
        model_id: str,
        params: EditImageParams,
        api_key: str | None = None,
        raise_errors: bool = False,
    ) -> GenerationOutcome:
        """Edit input images with a prompt."""
        return await self._run(Capability.EDIT, model_id, params, api_key, raise_errors)

    async def create_variation(
        self,
        model_id: str,
        params: VariationImageParams,
        api_key: str | None = None,
        raise_errors: bool = False,
    ) -> GenerationOutcome:
        """Create variations of an input image."""
        return await self._run(Capability.VARIATION, model_id, params, api_key, raise_errors)

    async def _run(
        self,
        operation: Capability,
        model_id: str,
        params: Any,
        api_key: str | None,
        raise_errors: bool,
    ) -> GenerationOutcome:
        prompt = getattr(params, "prompt", None) or ""
        outcome = GenerationOutcome(model_id=model_id)

        try:
            provider_name, model = parse_model_id(model_id)
            outcome.provider = provider_name
            provider = resolve_provider(provider_name, api_key)
            resolved_params = dataclasses.replace(params, model=model)
            images = await self._dispatch(provider, operation, resolved_params)
        except ProviderError as e:
            logger.error(f"{operation.value} failed for {model_id}: {e}")
            outcome.error = str(e)
            outcome.record = self._record(HistoryRecord.failure(prompt, model_id, str(e)))
            if raise_errors:
                raise
            return outcome
        except Exception as e:
            logger.exception(f"Unexpected error during {operation.value} for {model_id}")
            outcome.error = str(e) or type(e).__name__
            outcome.record = self._record(HistoryRecord.failure(prompt, model_id, outcome.error))
            if raise_errors:
                raise
            return outcome

        outcome.images = images
        if images:
            record = HistoryRecord.success(prompt, model_id, images)
        else:
            logger.warning(f"{operation.value} for {model_id} returned no images")
            record = HistoryRecord.failure(prompt, model_id, NO_IMAGES_ERROR)
        outcome.record = self._record(record)
        return outcome

    async def _dispatch(
        self,
        provider: ImageProvider,
        operation: Capability,
        params: Any,
    ) -> list[GeneratedImage]:
        if not provider.supports(operation):
            raise UnsupportedOperationError(provider.provider_name, operation)
        if operation is Capability.EDIT:
            return await provider.edit(params)
        if operation is Capability.VARIATION:
            return await provider.create_variation(params)
        return await provider.generate(params)

    def _record(self, record: HistoryRecord) -> HistoryRecord:
        if self._recorder is not None:
            self._recorder.record(record)
        return record
