"""Prompt enhancement endpoint."""

import logging

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from imagestudio.adapters.base import ImageValidationError, ProviderError
from imagestudio.services.prompt_enhancer import enhance_prompt

logger = logging.getLogger(__name__)

router = APIRouter()


class EnhancePromptRequest(BaseModel):
    """Request body for prompt enhancement."""

    prompt: str = Field(..., min_length=1, description="Prompt to rewrite")
    api_key: str | None = Field(default=None, description="Per-call Google API key override")


class EnhancePromptResponse(BaseModel):
    """Response body for prompt enhancement."""

    enhanced_prompt: str


@router.post("/enhance-prompt", response_model=EnhancePromptResponse)
async def enhance(request: EnhancePromptRequest) -> EnhancePromptResponse:
    """Rewrite a prompt into one detailed image-generation prompt."""
    try:
        enhanced = await enhance_prompt(request.prompt, api_key=request.api_key)
    except ImageValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except ProviderError as e:
        logger.error(f"Prompt enhancement failed: {e}")
        raise HTTPException(status_code=e.status_code or 502, detail=str(e)) from e
    return EnhancePromptResponse(enhanced_prompt=enhanced)
