import logging
import os
from dataclasses import dataclass
from functools import lru_cache

import redis.asyncio as redis
from dotenv import load_dotenv

from pkd_classifier.exceptions import ConfigurationError

load_dotenv()


def _env_bool(key: str, default: str) -> bool:
    return os.getenv(key, default).lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables."""

    # Cache store
    cache_backend: str = os.getenv("CACHE_BACKEND", "postgres")
    database_url: str = os.getenv("DATABASE_URL", "")
    db_pool_min: int = int(os.getenv("DB_POOL_MIN", "1"))
    db_pool_max: int = int(os.getenv("DB_POOL_MAX", "10"))
    redis_url: str = os.getenv("REDIS_URL", "redis://localhost:6379")
    redis_password: str | None = os.getenv("REDIS_PASSWORD")

    # Qdrant
    qdrant_url: str = os.getenv("QDRANT_URL", "")
    qdrant_api_key: str = os.getenv("QDRANT_API_KEY", "")
    qdrant_collection: str = os.getenv("QDRANT_COLLECTION", "pkdCode")
    qdrant_timeout: int = int(os.getenv("QDRANT_TIMEOUT", "30"))

    # OpenAI
    openai_api_key: str = os.getenv("OPENAI_API_KEY", "")
    openai_base_url: str = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
    openai_embed_model: str = os.getenv("OPENAI_EMBED_MODEL", "text-embedding-3-large")
    # text-embedding-3-large returns 3072 dimensions; the Qdrant collection must match
    embedding_dimension: int = int(os.getenv("EMBEDDING_DIMENSION", "3072"))
    openai_chat_model: str = os.getenv("OPENAI_CHAT_MODEL", "gpt-4o")
    openai_timeout: float = float(os.getenv("OPENAI_TIMEOUT", "60"))

    # Pipeline
    search_top_k: int = int(os.getenv("SEARCH_TOP_K", "5"))
    samples_default_limit: int = int(os.getenv("SAMPLES_DEFAULT_LIMIT", "10"))
    samples_max_limit: int = int(os.getenv("SAMPLES_MAX_LIMIT", "50"))
    single_flight_enabled: bool = _env_bool("SINGLE_FLIGHT_ENABLED", "true")

    # API
    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("API_PORT", "3000"))
    api_reload: bool = _env_bool("API_RELOAD", "false")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    def __post_init__(self) -> None:
        """Validate settings after initialization."""
        if self.cache_backend not in ("postgres", "redis"):
            raise ValueError(f"CACHE_BACKEND must be 'postgres' or 'redis', got {self.cache_backend!r}")

        if self.search_top_k < 1:
            raise ValueError("SEARCH_TOP_K must be at least 1")

        if not 1 <= self.samples_default_limit <= self.samples_max_limit:
            raise ValueError(
                f"SAMPLES_DEFAULT_LIMIT must be between 1 and SAMPLES_MAX_LIMIT ({self.samples_max_limit}), "
                f"got {self.samples_default_limit}"
            )

        if not 1 <= self.db_pool_min <= self.db_pool_max:
            raise ValueError("DB_POOL_MIN must be at least 1 and not greater than DB_POOL_MAX")

    def validate_required(self) -> None:
        """Check that the credentials for every external collaborator are present.

        Raises:
            ConfigurationError: If any required variable is missing.
        """
        missing = [
            name
            for name, value in (
                ("QDRANT_URL", self.qdrant_url),
                ("QDRANT_API_KEY", self.qdrant_api_key),
                ("OPENAI_API_KEY", self.openai_api_key),
            )
            if not value
        ]
        if self.cache_backend == "postgres" and not self.database_url:
            missing.append("DATABASE_URL")

        if missing:
            raise ConfigurationError(f"Missing required environment variables: {', '.join(missing)}")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


def get_redis_client() -> redis.Redis:
    """Create an async Redis client instance."""
    return redis.from_url(
        settings.redis_url,
        password=settings.redis_password,
        decode_responses=True,
    )


def configure_logging(level: str | None = None) -> None:
    """Configure the root logger once for the whole process."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
