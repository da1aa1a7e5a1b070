"""
Health and status endpoints.

- /health: Basic liveness check
- /status: Which providers have a default credential configured
"""

from fastapi import APIRouter
from pydantic import BaseModel

from imagestudio import __version__
from imagestudio.config import settings
from imagestudio.constants import PROVIDER_GOOGLE, PROVIDER_OPENAI

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Basic health check response."""

    status: str
    service: str


class StatusResponse(BaseModel):
    """Provider configuration status."""

    version: str
    providers: dict[str, bool]


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Liveness check."""
    return HealthResponse(status="healthy", service="imagestudio")


@router.get("/status", response_model=StatusResponse)
async def status() -> StatusResponse:
    """Report which providers can run without a per-call credential."""
    return StatusResponse(
        version=__version__,
        providers={
            PROVIDER_OPENAI: bool(settings.openai_api_key),
            PROVIDER_GOOGLE: bool(settings.google_api_key),
        },
    )
