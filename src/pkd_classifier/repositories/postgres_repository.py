"""PostgreSQL implementation of CacheStore.

Database layout (created by initialize()):
  Table : cache      (serviceDescription TEXT PK, pkdCodeData TEXT)
  Table : aiCache    (serviceDescription TEXT PK, aiSuggestion TEXT)

Connection management:
  - A psycopg2 ThreadedConnectionPool is shared by all requests.
  - psycopg2 is blocking, so every query runs in a worker thread via
    asyncio.to_thread; the event loop stays free while it waits.
  - No retries: a failed query raises StoreError.
"""

import asyncio
import json
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import psycopg2
from psycopg2.pool import ThreadedConnectionPool
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from pkd_classifier.config import settings
from pkd_classifier.exceptions import DecodeError, StoreError
from pkd_classifier.models import CandidateRecord, Decision, dump_candidates
from pkd_classifier.prompts import parse_decision

logger = logging.getLogger(__name__)

_CANDIDATES = TypeAdapter(list[CandidateRecord])

_CREATE_TABLES = (
    """
    CREATE TABLE IF NOT EXISTS cache (
        serviceDescription TEXT PRIMARY KEY,
        pkdCodeData TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS aiCache (
        serviceDescription TEXT PRIMARY KEY,
        aiSuggestion TEXT
    )
    """,
)

_SELECT_VECTOR_RESULTS = "SELECT pkdCodeData FROM cache WHERE serviceDescription = %s"
_UPSERT_VECTOR_RESULTS = """
    INSERT INTO cache (serviceDescription, pkdCodeData)
    VALUES (%s, %s)
    ON CONFLICT (serviceDescription)
    DO UPDATE SET pkdCodeData = EXCLUDED.pkdCodeData
"""
_SELECT_AI_SUGGESTION = "SELECT aiSuggestion FROM aiCache WHERE serviceDescription = %s"
_UPSERT_AI_SUGGESTION = """
    INSERT INTO aiCache (serviceDescription, aiSuggestion)
    VALUES (%s, %s)
    ON CONFLICT (serviceDescription)
    DO UPDATE SET aiSuggestion = EXCLUDED.aiSuggestion
"""


def decode_candidates(text: str) -> list[CandidateRecord]:
    """Decode a stored candidate list.

    Raises:
        DecodeError: If the text is not JSON or not a list of candidates.
    """
    try:
        return _CANDIDATES.validate_python(json.loads(text))
    except json.JSONDecodeError as e:
        raise DecodeError(f"Cached candidates are not valid JSON: {e}") from e
    except PydanticValidationError as e:
        raise DecodeError(f"Cached candidates do not match schema: {e}") from e


def encode_candidates(records: list[CandidateRecord]) -> str:
    """Serialize a candidate list for storage."""
    return json.dumps(dump_candidates(records), ensure_ascii=False)


class PostgresCacheRepository:
    """psycopg2 implementation of the CacheStore protocol.

    This class satisfies the CacheStore protocol through structural
    typing - no explicit inheritance needed.
    """

    def __init__(
        self,
        pool: Any = None,
        dsn: str | None = None,
        min_connections: int | None = None,
        max_connections: int | None = None,
    ) -> None:
        """Initialize the PostgreSQL cache repository.

        Args:
            pool: A psycopg2 connection pool. If None, one is created lazily.
            dsn: Connection string. Defaults to settings.database_url.
            min_connections: Pool minimum size. Defaults to settings.db_pool_min.
            max_connections: Pool maximum size. Defaults to settings.db_pool_max.
        """
        self._pool = pool
        self._dsn = dsn or settings.database_url
        self._min = min_connections or settings.db_pool_min
        self._max = max_connections or settings.db_pool_max

    @classmethod
    def create(cls, dsn: str | None = None) -> "PostgresCacheRepository":
        """Factory method to create PostgresCacheRepository with defaults."""
        return cls(dsn=dsn)

    # ── CacheStore implementation ──────────────────────────────────────────

    async def initialize(self) -> None:
        """Create the cache tables if they do not exist."""
        await asyncio.to_thread(self._create_tables)
        logger.info("Cache tables initialized")

    async def get_vector_results(self, key: str) -> list[CandidateRecord] | None:
        """Look up cached vector search results by exact description."""
        row = await asyncio.to_thread(self._fetch_one, _SELECT_VECTOR_RESULTS, key)
        if row is None or row[0] is None:
            return None
        return decode_candidates(row[0])

    async def put_vector_results(self, key: str, records: list[CandidateRecord]) -> None:
        """Upsert vector search results."""
        await asyncio.to_thread(self._execute, _UPSERT_VECTOR_RESULTS, (key, encode_candidates(records)))

    async def get_ai_suggestion(self, key: str) -> Decision | None:
        """Look up a cached AI suggestion by exact description."""
        row = await asyncio.to_thread(self._fetch_one, _SELECT_AI_SUGGESTION, key)
        if row is None or row[0] is None:
            return None
        return parse_decision(row[0])

    async def put_ai_suggestion(self, key: str, decision: Decision) -> None:
        """Upsert an AI suggestion."""
        await asyncio.to_thread(
            self._execute,
            _UPSERT_AI_SUGGESTION,
            (key, decision.model_dump_json(by_alias=True)),
        )

    async def health_check(self) -> bool:
        """Check if PostgreSQL is accessible."""
        try:
            await asyncio.to_thread(self._fetch_one, "SELECT 1", None)
            return True
        except StoreError:
            return False

    async def close(self) -> None:
        """Close every pooled connection."""
        if self._pool is not None:
            self._pool.closeall()
            self._pool = None
            logger.debug("PostgreSQL pool closed")

    # ── Connection helpers (run in worker threads) ─────────────────────────

    def _get_pool(self) -> Any:
        if self._pool is None:
            try:
                self._pool = ThreadedConnectionPool(self._min, self._max, self._dsn)
            except psycopg2.Error as e:
                logger.error("PostgreSQL pool creation failed | error=%s", e)
                raise StoreError(f"Cannot connect to database: {e}") from e
            logger.debug("PostgreSQL pool opened | min=%d max=%d", self._min, self._max)
        return self._pool

    @contextmanager
    def _connection(self) -> Iterator[Any]:
        """Borrow a pooled connection, committing on success."""
        pool = self._get_pool()
        try:
            conn = pool.getconn()
        except psycopg2.Error as e:
            logger.error("PostgreSQL getconn failed | error=%s", e)
            raise StoreError(f"Cannot get a database connection: {e}") from e
        try:
            yield conn
            conn.commit()
        except psycopg2.Error as e:
            if not conn.closed:
                conn.rollback()
            logger.error("PostgreSQL query failed | error=%s", e)
            raise StoreError(f"Database query failed: {e}") from e
        finally:
            pool.putconn(conn, close=bool(conn.closed))

    def _create_tables(self) -> None:
        with self._connection() as conn, conn.cursor() as cur:
            for statement in _CREATE_TABLES:
                cur.execute(statement)

    def _fetch_one(self, sql: str, key: str | None) -> tuple | None:
        with self._connection() as conn, conn.cursor() as cur:
            cur.execute(sql, (key,) if key is not None else None)
            return cur.fetchone()

    def _execute(self, sql: str, params: tuple) -> None:
        with self._connection() as conn, conn.cursor() as cur:
            cur.execute(sql, params)
