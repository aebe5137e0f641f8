"""Application settings loaded from environment variables.

Defines all environment-driven configuration used by the pricing engine
and its HTTP surface.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Typed configuration model for the application."""

    # Engine cache
    PRICE_CACHE_TTL_SECONDS: float = 3600.0
    POINTS_PER_MATERIAL: int = Field(1, ge=1)
    FETCH_DEADLINE_SECONDS: Optional[float] = None

    # Search provider
    SEARCH_URL: str = "https://html.duckduckgo.com/html/"
    SEARCH_TIMEOUT_SECONDS: float = 15.0
    SEARCH_MAX_RESULTS: int = 10
    SEARCH_CACHE_TTL_SECONDS: float = 900.0

    # API parameters
    ROOT_PATH_BACKEND: str = ""
    ALLOWED_ORIGINS: list[str] = ["*"]
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
