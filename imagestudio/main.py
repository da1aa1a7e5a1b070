"""
imagestudio API Server
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from imagestudio import __version__
from imagestudio.config import settings

# Configure logging for application modules (must be after imports)
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager."""
    logger.info(f"Starting imagestudio proxy on port {settings.port}")
    if not settings.openai_api_key:
        logger.info("OPENAI_API_KEY not set; OpenAI requests need a per-call key")
    if not settings.google_api_key:
        logger.info("GOOGLE_API_KEY not set; Google requests need a per-call key")

    yield

    logger.info("Shutting down imagestudio proxy")


app = FastAPI(
    title="imagestudio",
    description="Image generation proxy for OpenAI and Google image models",
    version=__version__,
    lifespan=lifespan,
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": "Welcome to imagestudio", "docs": "/docs"}


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Basic liveness check at root level."""
    return {"status": "healthy", "service": "imagestudio"}


# Import and include routers (must be after app is created to avoid circular imports)
from imagestudio.api import router  # noqa: E402

app.include_router(router, prefix="/api")


def run() -> None:
    """Run the proxy with uvicorn."""
    import uvicorn

    uvicorn.run("imagestudio.main:app", host=settings.host, port=settings.port)
