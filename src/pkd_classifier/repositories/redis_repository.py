"""Redis implementation of CacheStore.

Each cache is a single Redis hash whose fields are service descriptions:

    HSET cache   <description> <candidate list JSON>
    HSET aiCache <description> <decision JSON>

HSET replaces an existing field, which gives the same upsert semantics as
the PostgreSQL tables. No TTL is set; entries are permanent.
"""

import logging

import redis.asyncio as redis
from redis.exceptions import RedisError

from pkd_classifier.config import get_redis_client
from pkd_classifier.exceptions import StoreError
from pkd_classifier.models import CandidateRecord, Decision
from pkd_classifier.prompts import parse_decision
from pkd_classifier.repositories.postgres_repository import decode_candidates, encode_candidates

logger = logging.getLogger(__name__)

VECTOR_CACHE_KEY = "cache"
AI_CACHE_KEY = "aiCache"


class RedisCacheRepository:
    """Redis hash-backed cache store.

    This class satisfies the CacheStore protocol through structural
    typing - no explicit inheritance needed.
    """

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        vector_cache_key: str = VECTOR_CACHE_KEY,
        ai_cache_key: str = AI_CACHE_KEY,
    ) -> None:
        """Initialize the Redis cache repository.

        Args:
            redis_client: Async Redis client. If None, creates default.
            vector_cache_key: Name of the hash holding vector results.
            ai_cache_key: Name of the hash holding AI suggestions.
        """
        self._client = redis_client or get_redis_client()
        self._vector_key = vector_cache_key
        self._ai_key = ai_cache_key

    @classmethod
    def create(cls) -> "RedisCacheRepository":
        """Factory method to create RedisCacheRepository with defaults."""
        return cls()

    async def initialize(self) -> None:
        """Redis hashes need no schema; only verify connectivity."""
        try:
            await self._client.ping()
        except RedisError as e:
            logger.error("Redis ping failed | error=%s", e)
            raise StoreError(f"Redis connection failed: {e}") from e
        logger.info("Using Redis hashes %s and %s", self._vector_key, self._ai_key)

    async def get_vector_results(self, key: str) -> list[CandidateRecord] | None:
        """Look up cached vector search results by exact description."""
        raw = await self._hget(self._vector_key, key)
        if raw is None:
            return None
        return decode_candidates(raw)

    async def put_vector_results(self, key: str, records: list[CandidateRecord]) -> None:
        """Store vector search results, replacing any existing value."""
        await self._hset(self._vector_key, key, encode_candidates(records))

    async def get_ai_suggestion(self, key: str) -> Decision | None:
        """Look up a cached AI suggestion by exact description."""
        raw = await self._hget(self._ai_key, key)
        if raw is None:
            return None
        return parse_decision(raw)

    async def put_ai_suggestion(self, key: str, decision: Decision) -> None:
        """Store an AI suggestion, replacing any existing value."""
        await self._hset(self._ai_key, key, decision.model_dump_json(by_alias=True))

    async def health_check(self) -> bool:
        """Check if Redis is accessible."""
        try:
            return bool(await self._client.ping())
        except RedisError:
            return False

    async def close(self) -> None:
        """Close the Redis connection pool."""
        await self._client.aclose()

    async def _hget(self, name: str, key: str) -> str | None:
        try:
            return await self._client.hget(name, key)
        except RedisError as e:
            logger.error("Redis HGET failed | hash=%s error=%s", name, e)
            raise StoreError(f"Redis HGET {name} failed: {e}") from e

    async def _hset(self, name: str, key: str, value: str) -> None:
        try:
            await self._client.hset(name, key, value)
        except RedisError as e:
            logger.error("Redis HSET failed | hash=%s error=%s", name, e)
            raise StoreError(f"Redis HSET {name} failed: {e}") from e

    @property
    def client(self) -> redis.Redis:
        """Get the Redis client."""
        return self._client
