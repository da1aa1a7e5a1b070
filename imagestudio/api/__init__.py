"""API routers for imagestudio."""

from fastapi import APIRouter

from imagestudio.api.health import router as health_router
from imagestudio.api.images import router as images_router
from imagestudio.api.prompt import router as prompt_router

router = APIRouter()
router.include_router(health_router)  # No prefix - /health, /status
router.include_router(images_router, tags=["images"])
router.include_router(prompt_router, tags=["prompts"])
