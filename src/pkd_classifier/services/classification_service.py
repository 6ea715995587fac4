"""Classification service: the cache-through request pipeline.

This service orchestrates a request by coordinating the cache store, the
embedding provider, the vector search provider and the chat provider.

Pipeline per request (each step awaited in order):
    1. vector cache lookup  -> on miss: embed -> search -> upsert
    2. AI cache lookup      -> on miss: chat -> upsert      (not in database-only mode)
"""

import logging
import time
from collections.abc import Awaitable, Callable
from typing import TypeVar

from pkd_classifier.config import settings
from pkd_classifier.entities import ProcessMode, ProcessResultEntity
from pkd_classifier.exceptions import DecodeError, PKDClassifierError, ProcessingError
from pkd_classifier.models import CandidateRecord, Decision, PipelineMetrics
from pkd_classifier.protocols import CacheStore, ChatProvider, EmbeddingProvider, VectorSearchProvider

from .single_flight import SingleFlight

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ClassificationService:
    """Cache-through orchestration of the PKD classification pipeline.

    This service depends on PROTOCOLS, not concrete implementations:
    - CacheStore: PostgreSQL, Redis, or an in-memory fake
    - EmbeddingProvider / VectorSearchProvider / ChatProvider: OpenAI,
      Qdrant, or test doubles

    Concurrent cache misses for the same description share one provider
    round trip when single-flight is enabled; with it disabled, each request
    calls the providers and the last upsert wins.

    Example:
        ```python
        service = ClassificationService.create(
            store=PostgresCacheRepository.create(),
            embedding_provider=OpenAIEmbeddingProvider.create(),
            search_provider=QdrantSearchProvider.create(),
            chat_provider=OpenAIChatProvider.create(),
        )
        result = await service.process("sprzedaż pieczywa")
        ```
    """

    def __init__(
        self,
        store: CacheStore,
        embedding_provider: EmbeddingProvider,
        search_provider: VectorSearchProvider,
        chat_provider: ChatProvider,
        collection: str | None = None,
        top_k: int | None = None,
        single_flight: bool | None = None,
    ) -> None:
        """Initialize the classification service.

        Args:
            store: Persistent cache store (required).
            embedding_provider: Embedding generation service (required).
            search_provider: Vector search service (required).
            chat_provider: Chat suggestion service (required).
            collection: Vector collection name. Defaults to settings.
            top_k: Number of candidates per search. Defaults to settings.
            single_flight: Deduplicate concurrent misses per key. Defaults to settings.
        """
        self._store = store
        self._embeddings = embedding_provider
        self._search = search_provider
        self._chat = chat_provider
        self._collection = collection or settings.qdrant_collection
        self._top_k = top_k or settings.search_top_k
        enabled = settings.single_flight_enabled if single_flight is None else single_flight
        self._flight = SingleFlight() if enabled else None
        self._metrics = PipelineMetrics()

    @classmethod
    def create(
        cls,
        store: CacheStore,
        embedding_provider: EmbeddingProvider,
        search_provider: VectorSearchProvider,
        chat_provider: ChatProvider,
        single_flight: bool | None = None,
    ) -> "ClassificationService":
        """Factory method to create ClassificationService with settings defaults."""
        return cls(
            store=store,
            embedding_provider=embedding_provider,
            search_provider=search_provider,
            chat_provider=chat_provider,
            single_flight=single_flight,
        )

    # ── Pipeline steps ─────────────────────────────────────────────────────

    async def get_candidates(self, description: str) -> list[CandidateRecord]:
        """Return vector search candidates, from cache when present.

        On a miss the result is persisted before it is returned; the
        returned list is the one that was written.

        Raises:
            ProviderError, StoreError: Propagated unchanged
        """
        return await self._run_once(("candidates", description), lambda: self._load_candidates(description))

    async def get_suggestion(self, description: str, candidates: list[CandidateRecord]) -> Decision:
        """Return the AI decision, from cache when present.

        A cached decision is trusted as-is; it is not checked against
        the candidates passed in.

        Raises:
            ProviderError, DecodeError, StoreError: Propagated unchanged
        """
        return await self._run_once(
            ("suggestion", description),
            lambda: self._load_suggestion(description, candidates),
        )

    async def _load_candidates(self, description: str) -> list[CandidateRecord]:
        cached = await self._read_cache(self._store.get_vector_results, description, "vector")
        if cached is not None:
            self._metrics.vector_cache_hits += 1
            logger.info("Vector cache hit | description=%r candidates=%d", description, len(cached))
            return cached

        self._metrics.vector_cache_misses += 1
        logger.info("Vector cache miss | description=%r", description)

        self._metrics.embedding_calls += 1
        vector = await self._embeddings.embed(description)

        self._metrics.search_calls += 1
        candidates = await self._search.search(vector, self._collection, self._top_k)

        await self._store.put_vector_results(description, candidates)
        return candidates

    async def _load_suggestion(self, description: str, candidates: list[CandidateRecord]) -> Decision:
        cached = await self._read_cache(self._store.get_ai_suggestion, description, "AI")
        if cached is not None:
            self._metrics.ai_cache_hits += 1
            logger.info("AI cache hit | description=%r", description)
            return cached

        self._metrics.ai_cache_misses += 1
        logger.info("AI cache miss | description=%r candidates=%d", description, len(candidates))

        self._metrics.chat_calls += 1
        decision = await self._chat.suggest(description, candidates)

        await self._store.put_ai_suggestion(description, decision)
        return decision

    async def _read_cache(
        self,
        getter: Callable[[str], Awaitable[T | None]],
        description: str,
        label: str,
    ) -> T | None:
        """Read a cache entry, treating a corrupt entry as a miss.

        The recomputed value overwrites the corrupt entry on the way out.
        """
        try:
            return await getter(description)
        except DecodeError as e:
            logger.warning("Corrupt %s cache entry, recomputing | description=%r error=%s", label, description, e)
            return None

    async def _run_once(self, key: tuple[str, str], fn: Callable[[], Awaitable[T]]) -> T:
        if self._flight is None:
            return await fn()
        return await self._flight.do(key, fn)

    # ── Modes ──────────────────────────────────────────────────────────────

    async def process(self, description: str, mode: ProcessMode = ProcessMode.FULL) -> ProcessResultEntity:
        """Run the pipeline for one request.

        Args:
            description: The service description, used verbatim as cache key
            mode: Which parts of the result to compute and return

        Returns:
            ProcessResultEntity with the fields the mode asks for

        Raises:
            ProcessingError: On any store or provider failure. Nothing is
                returned from a partially successful run.
        """
        start_time = time.time()
        try:
            candidates = await self.get_candidates(description)
            suggestion = None
            if mode is not ProcessMode.DATABASE_ONLY:
                suggestion = await self.get_suggestion(description, candidates)
        except PKDClassifierError as e:
            self._metrics.record_request((time.time() - start_time) * 1000, failed=True)
            logger.error(
                "Error during backend processing | description=%r mode=%s error=%s: %s",
                description,
                mode.value,
                type(e).__name__,
                e,
            )
            raise ProcessingError() from e

        duration_ms = (time.time() - start_time) * 1000
        self._metrics.record_request(duration_ms)
        logger.info("Processed | description=%r mode=%s time_ms=%.1f", description, mode.value, duration_ms)

        if mode is ProcessMode.DATABASE_ONLY:
            return ProcessResultEntity(mode=mode.value, candidates=candidates)
        if mode is ProcessMode.AI_ONLY:
            return ProcessResultEntity(mode=mode.value, suggestion=suggestion)
        return ProcessResultEntity(mode=mode.value, candidates=candidates, suggestion=suggestion)

    async def process_full(self, description: str) -> ProcessResultEntity:
        """Candidates and AI suggestion."""
        return await self.process(description, ProcessMode.FULL)

    async def process_database_only(self, description: str) -> ProcessResultEntity:
        """Candidates only; the chat provider is never called."""
        return await self.process(description, ProcessMode.DATABASE_ONLY)

    async def process_ai_only(self, description: str) -> ProcessResultEntity:
        """AI suggestion only; candidates are still needed to produce it."""
        return await self.process(description, ProcessMode.AI_ONLY)

    async def sample(self, limit: int) -> list[CandidateRecord]:
        """Return an arbitrary sample of the indexed collection.

        Raises:
            ProcessingError: If the vector search fails
        """
        try:
            return await self._search.sample_search(limit)
        except PKDClassifierError as e:
            logger.error("Error getting sample data | limit=%d error=%s", limit, e)
            raise ProcessingError() from e

    # ── Introspection ──────────────────────────────────────────────────────

    def get_stats(self) -> dict:
        """Get pipeline statistics.

        Returns:
            Dictionary with metrics and pipeline configuration
        """
        stats: dict = dict(self._metrics.to_dict())
        stats["collection"] = self._collection
        stats["top_k"] = self._top_k
        stats["single_flight"] = self._flight is not None
        stats["in_flight"] = self._flight.in_flight if self._flight else 0
        stats["embedding_model"] = self._embeddings.model_name
        stats["chat_model"] = self._chat.model_name
        return stats

    def reset_stats(self) -> None:
        """Reset pipeline metrics."""
        self._metrics = PipelineMetrics()

    async def is_healthy(self) -> bool:
        """Check if the cache store is reachable."""
        return await self._store.health_check()

    @property
    def metrics(self) -> PipelineMetrics:
        """Get the live metrics (for testing)."""
        return self._metrics

    @property
    def store(self) -> CacheStore:
        """Get the underlying cache store (for testing)."""
        return self._store
