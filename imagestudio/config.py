"""
Configuration management using pydantic-settings.
Loads from environment variables and ./.env
"""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from imagestudio.constants import DEFAULT_HISTORY_LIMIT, GEMINI_FLASH_LITE

# Per-device history database
DEFAULT_HISTORY_PATH = Path.home() / ".imagestudio" / "history.db"


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Server
    host: str = "0.0.0.0"
    port: int = 8010
    debug: bool = False
    log_level: str = "INFO"

    # CORS
    cors_origins: str = "http://localhost:3000"

    # API Keys (process-wide defaults, overridable per call)
    openai_api_key: str = ""
    google_api_key: str = ""

    # OpenAI transport
    openai_base_url: str = "https://api.openai.com/v1"
    openai_timeout: float = 300.0  # Image generation is slow; seconds

    # Local history
    history_db_url: str = f"sqlite+aiosqlite:///{DEFAULT_HISTORY_PATH}"
    history_limit: int = DEFAULT_HISTORY_LIMIT

    # Prompt enhancement
    prompt_enhance_model: str = GEMINI_FLASH_LITE

    @property
    def cors_origin_list(self) -> list[str]:
        """CORS origins as a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
