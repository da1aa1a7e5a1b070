"""Tests for GenerationService."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from imagestudio.adapters.base import (
    Capability,
    EditImageParams,
    GeneratedImage,
    GenerateImageParams,
    ImageProvider,
    ImageValidationError,
    InputImage,
    ProviderError,
    UnsupportedOperationError,
    VariationImageParams,
)
from imagestudio.services.generation import NO_IMAGES_ERROR, GenerationService


class FakeProvider(ImageProvider):
    """In-memory provider that records the params it receives."""

    def __init__(self, images=None, error=None, capabilities=None):
        self.images = images if images is not None else [GeneratedImage(b64_json="YQ==")]
        self.error = error
        self.calls = []
        if capabilities is not None:
            self.capabilities = frozenset(capabilities)

    @property
    def provider_name(self) -> str:
        return "fake"

    async def generate(self, params):
        self.calls.append(("generate", params))
        if self.error:
            raise self.error
        return self.images

    async def edit(self, params):
        self.calls.append(("edit", params))
        return self.images


@pytest.fixture
def recorder():
    return MagicMock()


@pytest.fixture
def provider():
    return FakeProvider(capabilities={Capability.GENERATE, Capability.EDIT})


@pytest.fixture
def mock_resolve(provider):
    with patch("imagestudio.services.generation.resolve_provider", return_value=provider) as mock:
        yield mock


def _recorded(recorder):
    assert recorder.record.call_count == 1
    return recorder.record.call_args.args[0]


class TestGenerationService:
    """Tests for request dispatch and history recording."""

    @pytest.mark.asyncio
    async def test_success_records_images(self, recorder, provider, mock_resolve):
        """Test a successful generation and its history record."""
        service = GenerationService(recorder=recorder)

        outcome = await service.generate(
            "openai/dall-e-3", GenerateImageParams(prompt="a fox"), api_key="sk-call"
        )

        assert outcome.succeeded
        assert outcome.provider == "openai"
        assert outcome.images == provider.images
        mock_resolve.assert_called_once_with("openai", "sk-call")
        assert provider.calls[0][1].model == "dall-e-3"

        record = _recorded(recorder)
        assert record.prompt == "a fox"
        assert record.model == "openai/dall-e-3"
        assert record.images == provider.images
        assert outcome.record is record

    @pytest.mark.asyncio
    async def test_caller_params_not_mutated(self, recorder, mock_resolve):
        """Test that the resolved model is set on a copy of the params."""
        params = GenerateImageParams(prompt="a fox")

        await GenerationService(recorder=recorder).generate("openai/gpt-image-1", params)

        assert params.model is None

    @pytest.mark.asyncio
    async def test_provider_error_records_failure(self, recorder, provider, mock_resolve):
        """Test that vendor failures become failure records."""
        provider.error = ProviderError("OpenAI API error: 500 boom", status_code=500)
        service = GenerationService(recorder=recorder)

        outcome = await service.generate("openai/dall-e-3", GenerateImageParams(prompt="a fox"))

        assert not outcome.succeeded
        assert outcome.images == []
        assert "500 boom" in outcome.error
        record = _recorded(recorder)
        assert record.error == outcome.error
        assert record.images == []

    @pytest.mark.asyncio
    async def test_raise_errors(self, recorder, provider, mock_resolve):
        """Test that raise_errors re-raises after recording."""
        provider.error = ProviderError("quota", status_code=429)
        service = GenerationService(recorder=recorder)

        with pytest.raises(ProviderError):
            await service.generate(
                "openai/dall-e-3", GenerateImageParams(prompt="a fox"), raise_errors=True
            )

        assert _recorded(recorder).error == "quota"

    @pytest.mark.asyncio
    async def test_unexpected_error_is_returned(self, recorder, provider, mock_resolve):
        """Test that non-provider exceptions are recorded and returned by default."""
        provider.error = RuntimeError("bug")
        service = GenerationService(recorder=recorder)

        outcome = await service.generate("openai/dall-e-3", GenerateImageParams(prompt="a fox"))

        assert not outcome.succeeded
        assert outcome.error == "bug"
        assert _recorded(recorder).error == "bug"

    @pytest.mark.asyncio
    async def test_unexpected_error_raised_on_request(self, recorder, provider, mock_resolve):
        """Test that raise_errors propagates non-provider exceptions after recording."""
        provider.error = RuntimeError("bug")
        service = GenerationService(recorder=recorder)

        with pytest.raises(RuntimeError):
            await service.generate(
                "openai/dall-e-3", GenerateImageParams(prompt="a fox"), raise_errors=True
            )

        assert _recorded(recorder).error == "bug"

    @pytest.mark.asyncio
    async def test_empty_result_records_failure(self, recorder, provider, mock_resolve):
        """Test that zero images is not an error but is recorded as a failure."""
        provider.images = []
        service = GenerationService(recorder=recorder)

        outcome = await service.generate("google/gemini", GenerateImageParams(prompt="a fox"))

        assert outcome.succeeded
        assert outcome.images == []
        assert _recorded(recorder).error == NO_IMAGES_ERROR

    @pytest.mark.asyncio
    async def test_invalid_model_id(self, recorder, mock_resolve):
        """Test that malformed identifiers fail before resolution."""
        service = GenerationService(recorder=recorder)

        outcome = await service.generate("dall-e-3", GenerateImageParams(prompt="a fox"))

        assert outcome.error == "Invalid model ID"
        mock_resolve.assert_not_called()
        assert _recorded(recorder).model == "dall-e-3"

    @pytest.mark.asyncio
    async def test_unsupported_operation(self, recorder, provider, mock_resolve, png_b64):
        """Test that capability checks happen before dispatch."""
        service = GenerationService(recorder=recorder)
        params = VariationImageParams(image=InputImage(mime_type="image/png", data=png_b64))

        with pytest.raises(UnsupportedOperationError):
            await service.create_variation("google/gemini", params, raise_errors=True)

        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_edit_dispatch(self, recorder, provider, mock_resolve, png_b64):
        """Test that edit requests reach provider.edit."""
        service = GenerationService(recorder=recorder)
        params = EditImageParams(
            image=InputImage(mime_type="image/png", data=png_b64), prompt="add a hat"
        )

        outcome = await service.edit("openai/gpt-image-1", params)

        assert outcome.succeeded
        assert provider.calls[0][0] == "edit"
        assert _recorded(recorder).prompt == "add a hat"

    @pytest.mark.asyncio
    async def test_no_recorder(self, provider, mock_resolve):
        """Test that the service works without history."""
        outcome = await GenerationService().generate(
            "openai/dall-e-3", GenerateImageParams(prompt="a fox")
        )

        assert outcome.succeeded
        assert outcome.record is not None

    @pytest.mark.asyncio
    async def test_validation_error_is_returned(self, recorder, mock_resolve):
        """Test that validation failures are returned like provider failures."""
        mock_resolve.side_effect = ImageValidationError("OpenAI API key is required")
        service = GenerationService(recorder=recorder)

        outcome = await service.generate("openai/dall-e-3", GenerateImageParams(prompt="a fox"))

        assert outcome.error == "OpenAI API key is required"


class TestGoogleTransportFailure:
    """A Google network failure flows through the service as an ordinary failure."""

    @pytest.mark.asyncio
    async def test_outcome_carries_error(self, recorder):
        with patch("imagestudio.adapters.google.genai") as mock_genai:
            client = MagicMock()
            client.aio.models.generate_content = AsyncMock(
                side_effect=httpx.ConnectError("connection refused")
            )
            mock_genai.Client.return_value = client

            outcome = await GenerationService(recorder=recorder).generate(
                "google/gemini-2.5-flash-image-preview",
                GenerateImageParams(prompt="a fox"),
                api_key="g-key",
            )

        assert outcome.provider == "google"
        assert outcome.images == []
        assert "Google request failed" in outcome.error
        assert _recorded(recorder).error == outcome.error
