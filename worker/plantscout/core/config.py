"""Application configuration helpers."""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_REFERENCE_ADDRESS = "Forney TX, 75126"


class ConfigError(RuntimeError):
    """Raised when mandatory configuration is missing."""


@dataclass(frozen=True)
class Settings:
    google_places_api_key: str
    database_url: str
    openai_api_key: str = ""
    openai_model: str = "gpt-4o"
    apollo_api_key: str = ""
    worker_port: int = 3001
    uploads_path: str = "uploads"
    reference_address: str = DEFAULT_REFERENCE_ADDRESS


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from environment variables with sensible defaults."""
    load_dotenv()

    google_places_api_key = os.getenv("GOOGLE_PLACES_API_KEY", "").strip()
    database_url = os.getenv("DATABASE_URL", "")
    openai_api_key = os.getenv("OPENAI_API_KEY", "").strip()
    openai_model = os.getenv("OPENAI_MODEL", "").strip() or "gpt-4o"
    apollo_api_key = os.getenv("APOLLO_API_KEY", "").strip()
    worker_port = int(os.getenv("PORT") or os.getenv("WORKER_PORT") or "3001")
    uploads_path = os.getenv("UPLOADS_PATH") or os.path.join(os.getcwd(), "uploads")
    reference_address = os.getenv("REFERENCE_ADDRESS", "").strip() or DEFAULT_REFERENCE_ADDRESS

    if not database_url:
        logger.warning("DATABASE_URL is not set; database operations will fail.")
    if not google_places_api_key:
        logger.warning("GOOGLE_PLACES_API_KEY is not configured; ingestion runs will fail.")
    if not openai_api_key:
        logger.info("OPENAI_API_KEY is not configured; LLM relevance classification will be skipped.")
    if not apollo_api_key:
        logger.info("APOLLO_API_KEY is not configured; contact discovery is disabled.")

    return Settings(
        google_places_api_key=google_places_api_key,
        database_url=database_url,
        openai_api_key=openai_api_key,
        openai_model=openai_model,
        apollo_api_key=apollo_api_key,
        worker_port=worker_port,
        uploads_path=uploads_path,
        reference_address=reference_address,
    )


def require_places_api_key(settings: Settings) -> str:
    if not settings.google_places_api_key:
        raise ConfigError("GOOGLE_PLACES_API_KEY is not configured. Add it to .env")
    return settings.google_places_api_key
