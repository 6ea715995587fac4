"""
Tests for the cache stores and the Qdrant search provider, with mocked clients.
"""

import json
import logging
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import psycopg2
import pytest
from psycopg2.pool import PoolError
from redis.exceptions import ConnectionError as RedisConnectionError

from conftest import DESCRIPTION, make_candidates, make_decision
from pkd_classifier.exceptions import DecodeError, ProviderError, StoreError
from pkd_classifier.repositories import PostgresCacheRepository, QdrantSearchProvider, RedisCacheRepository
from pkd_classifier.repositories.postgres_repository import decode_candidates, encode_candidates

# ── PostgreSQL ─────────────────────────────────────────────────────────────


@pytest.fixture
def cursor():
    cur = MagicMock()
    cur.__enter__.return_value = cur
    cur.fetchone.return_value = None
    return cur


@pytest.fixture
def conn(cursor):
    connection = MagicMock()
    connection.closed = 0
    connection.cursor.return_value = cursor
    return connection


@pytest.fixture
def pool(conn):
    p = MagicMock()
    p.getconn.return_value = conn
    return p


@pytest.fixture
def pg_store(pool):
    return PostgresCacheRepository(pool=pool, dsn="postgresql://test")


def test_candidates_codec():
    text = encode_candidates(make_candidates())
    assert "pieczywa" in text
    assert json.loads(text)[0]["payload"]["grupaKlasaPodklasa"] == "47.24.Z"
    assert decode_candidates(text) == make_candidates()


@pytest.mark.parametrize("text", ["{not json", '{"id": 1}', '[{"id": 1}]'])
def test_decode_candidates_rejects_bad_input(text):
    with pytest.raises(DecodeError):
        decode_candidates(text)


@pytest.mark.asyncio
async def test_pg_initialize_creates_both_tables(pg_store, cursor, conn):
    await pg_store.initialize()
    statements = " ".join(call.args[0] for call in cursor.execute.call_args_list)
    assert "CREATE TABLE IF NOT EXISTS cache" in statements
    assert "CREATE TABLE IF NOT EXISTS aiCache" in statements
    conn.commit.assert_called_once()


@pytest.mark.asyncio
async def test_pg_get_vector_results_miss(pg_store, cursor, pool, conn):
    assert await pg_store.get_vector_results(DESCRIPTION) is None
    sql, params = cursor.execute.call_args.args
    assert "FROM cache" in sql
    assert params == (DESCRIPTION,)
    pool.putconn.assert_called_once_with(conn, close=False)


@pytest.mark.asyncio
async def test_pg_get_vector_results_hit(pg_store, cursor):
    cursor.fetchone.return_value = (encode_candidates(make_candidates()),)
    assert await pg_store.get_vector_results(DESCRIPTION) == make_candidates()


@pytest.mark.asyncio
async def test_pg_null_column_is_a_miss(pg_store, cursor):
    cursor.fetchone.return_value = (None,)
    assert await pg_store.get_ai_suggestion(DESCRIPTION) is None


@pytest.mark.asyncio
async def test_pg_corrupt_entry_raises_decode_error(pg_store, cursor):
    cursor.fetchone.return_value = ("not json",)
    with pytest.raises(DecodeError):
        await pg_store.get_vector_results(DESCRIPTION)
    with pytest.raises(DecodeError):
        await pg_store.get_ai_suggestion(DESCRIPTION)


@pytest.mark.asyncio
async def test_pg_put_vector_results_upserts(pg_store, cursor, conn):
    await pg_store.put_vector_results(DESCRIPTION, make_candidates())
    sql, params = cursor.execute.call_args.args
    assert "INSERT INTO cache" in sql
    assert "ON CONFLICT (serviceDescription)" in sql
    assert params[0] == DESCRIPTION
    assert decode_candidates(params[1]) == make_candidates()
    conn.commit.assert_called_once()


@pytest.mark.asyncio
async def test_pg_put_ai_suggestion_upserts(pg_store, cursor):
    await pg_store.put_ai_suggestion(DESCRIPTION, make_decision())
    sql, params = cursor.execute.call_args.args
    assert "INSERT INTO aiCache" in sql
    assert "DO UPDATE SET aiSuggestion" in sql
    assert json.loads(params[1])["payload"]["grupaKlasaPodklasa"] == "47.24.Z"


@pytest.mark.asyncio
async def test_pg_get_ai_suggestion_hit(pg_store, cursor):
    cursor.fetchone.return_value = (make_decision().model_dump_json(by_alias=True),)
    assert await pg_store.get_ai_suggestion(DESCRIPTION) == make_decision()


@pytest.mark.asyncio
async def test_pg_query_failure_rolls_back(pg_store, cursor, conn, pool):
    cursor.execute.side_effect = psycopg2.OperationalError("server closed the connection")
    with pytest.raises(StoreError):
        await pg_store.put_vector_results(DESCRIPTION, make_candidates())
    conn.rollback.assert_called_once()
    conn.commit.assert_not_called()
    pool.putconn.assert_called_once_with(conn, close=False)


@pytest.mark.asyncio
async def test_pg_dead_connection_is_discarded(pg_store, cursor, conn, pool):
    conn.closed = 2
    cursor.execute.side_effect = psycopg2.InterfaceError("connection already closed")
    with pytest.raises(StoreError):
        await pg_store.get_vector_results(DESCRIPTION)
    conn.rollback.assert_not_called()
    pool.putconn.assert_called_once_with(conn, close=True)


@pytest.mark.asyncio
async def test_pg_failure_is_logged(pg_store, cursor, caplog):
    cursor.execute.side_effect = psycopg2.OperationalError("server closed the connection")
    with caplog.at_level(logging.ERROR, logger="pkd_classifier.repositories.postgres_repository"):
        with pytest.raises(StoreError):
            await pg_store.get_vector_results(DESCRIPTION)
    assert "PostgreSQL query failed" in caplog.text


@pytest.mark.asyncio
async def test_pg_pool_exhausted(pg_store, pool):
    pool.getconn.side_effect = PoolError("connection pool exhausted")
    with pytest.raises(StoreError):
        await pg_store.get_vector_results(DESCRIPTION)


@pytest.mark.asyncio
async def test_pg_health_check(pg_store, cursor):
    assert await pg_store.health_check() is True
    cursor.execute.side_effect = psycopg2.OperationalError("down")
    assert await pg_store.health_check() is False


@pytest.mark.asyncio
async def test_pg_close(pg_store, pool):
    await pg_store.close()
    pool.closeall.assert_called_once()


# ── Redis ──────────────────────────────────────────────────────────────────


@pytest.fixture
def redis_client():
    client = AsyncMock()
    client.hget.return_value = None
    client.ping.return_value = True
    return client


@pytest.fixture
def redis_store(redis_client):
    return RedisCacheRepository(redis_client=redis_client)


@pytest.mark.asyncio
async def test_redis_miss(redis_store, redis_client):
    assert await redis_store.get_vector_results(DESCRIPTION) is None
    redis_client.hget.assert_awaited_once_with("cache", DESCRIPTION)


@pytest.mark.asyncio
async def test_redis_put_and_get_vector_results(redis_store, redis_client):
    await redis_store.put_vector_results(DESCRIPTION, make_candidates())
    name, key, value = redis_client.hset.await_args.args
    assert (name, key) == ("cache", DESCRIPTION)

    redis_client.hget.return_value = value
    assert await redis_store.get_vector_results(DESCRIPTION) == make_candidates()


@pytest.mark.asyncio
async def test_redis_put_and_get_ai_suggestion(redis_store, redis_client):
    await redis_store.put_ai_suggestion(DESCRIPTION, make_decision())
    name, key, value = redis_client.hset.await_args.args
    assert (name, key) == ("aiCache", DESCRIPTION)

    redis_client.hget.return_value = value
    assert await redis_store.get_ai_suggestion(DESCRIPTION) == make_decision()


@pytest.mark.asyncio
async def test_redis_corrupt_entry(redis_store, redis_client):
    redis_client.hget.return_value = "{"
    with pytest.raises(DecodeError):
        await redis_store.get_ai_suggestion(DESCRIPTION)


@pytest.mark.asyncio
async def test_redis_errors_become_store_errors(redis_store, redis_client):
    redis_client.hget.side_effect = RedisConnectionError("refused")
    redis_client.hset.side_effect = RedisConnectionError("refused")
    redis_client.ping.side_effect = RedisConnectionError("refused")

    with pytest.raises(StoreError):
        await redis_store.get_vector_results(DESCRIPTION)
    with pytest.raises(StoreError):
        await redis_store.put_ai_suggestion(DESCRIPTION, make_decision())
    with pytest.raises(StoreError):
        await redis_store.initialize()
    assert await redis_store.health_check() is False


@pytest.mark.asyncio
async def test_redis_failure_is_logged(redis_store, redis_client, caplog):
    redis_client.hset.side_effect = RedisConnectionError("refused")
    with caplog.at_level(logging.ERROR, logger="pkd_classifier.repositories.redis_repository"):
        with pytest.raises(StoreError):
            await redis_store.put_vector_results(DESCRIPTION, make_candidates())
    assert "Redis HSET failed | hash=cache" in caplog.text


@pytest.mark.asyncio
async def test_redis_health_and_close(redis_store, redis_client):
    await redis_store.initialize()
    assert await redis_store.health_check() is True
    await redis_store.close()
    redis_client.aclose.assert_awaited_once()


# ── Qdrant ─────────────────────────────────────────────────────────────────


def scored_point(candidate):
    return SimpleNamespace(
        id=candidate.id,
        version=candidate.version,
        score=candidate.score,
        payload=candidate.payload.model_dump(by_alias=True),
    )


@pytest.fixture
def qdrant_client():
    client = AsyncMock()
    client.query_points.return_value = SimpleNamespace(points=[scored_point(c) for c in make_candidates()])
    return client


@pytest.fixture
def qdrant(qdrant_client):
    return QdrantSearchProvider(client=qdrant_client, collection="pkdCode", dimension=4)


@pytest.mark.asyncio
async def test_qdrant_search(qdrant, qdrant_client):
    results = await qdrant.search([0.1, 0.2, 0.3, 0.4], "pkdCode", 5)

    assert results == make_candidates()
    kwargs = qdrant_client.query_points.await_args.kwargs
    assert kwargs["collection_name"] == "pkdCode"
    assert kwargs["query"] == [0.1, 0.2, 0.3, 0.4]
    assert kwargs["limit"] == 5
    assert kwargs["with_payload"] is True


@pytest.mark.asyncio
async def test_qdrant_sample_uses_placeholder_vector(qdrant, qdrant_client):
    await qdrant.sample_search(3)
    kwargs = qdrant_client.query_points.await_args.kwargs
    assert kwargs["query"] == [0.1, 0.1, 0.1, 0.1]
    assert kwargs["limit"] == 3


@pytest.mark.asyncio
async def test_qdrant_missing_version_defaults_to_zero(qdrant, qdrant_client):
    point = scored_point(make_candidates()[0])
    point.version = None
    qdrant_client.query_points.return_value = SimpleNamespace(points=[point])
    results = await qdrant.search([0.0] * 4, "pkdCode", 1)
    assert results[0].version == 0


@pytest.mark.asyncio
async def test_qdrant_failure(qdrant, qdrant_client):
    qdrant_client.query_points.side_effect = RuntimeError("collection not found")
    with pytest.raises(ProviderError):
        await qdrant.search([0.0] * 4, "missing", 5)


@pytest.mark.asyncio
async def test_qdrant_point_without_pkd_payload(qdrant, qdrant_client):
    qdrant_client.query_points.return_value = SimpleNamespace(
        points=[SimpleNamespace(id=1, version=0, score=0.3, payload={"foo": "bar"})]
    )
    with pytest.raises(ProviderError):
        await qdrant.search([0.0] * 4, "pkdCode", 5)
