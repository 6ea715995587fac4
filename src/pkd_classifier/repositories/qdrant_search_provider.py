"""Qdrant implementation of VectorSearchProvider.

Queries the PKD collection with the query_points() API and converts the
returned ScoredPoint objects into CandidateRecord models.
"""

import logging
from typing import Any

from pydantic import ValidationError as PydanticValidationError
from qdrant_client import AsyncQdrantClient

from pkd_classifier.config import settings
from pkd_classifier.exceptions import ProviderError
from pkd_classifier.models import CandidateRecord

logger = logging.getLogger(__name__)

# Every component of the placeholder vector used for sample queries
SAMPLE_VECTOR_VALUE = 0.1


class QdrantSearchProvider:
    """Qdrant vector search.

    This class satisfies the VectorSearchProvider protocol through structural
    typing - no explicit inheritance needed.
    """

    def __init__(
        self,
        client: AsyncQdrantClient | None = None,
        collection: str | None = None,
        dimension: int | None = None,
    ) -> None:
        """Initialize the Qdrant search provider.

        Args:
            client: Qdrant async client. If None, creates one from settings.
            collection: Default collection, used by sample_search.
            dimension: Vector size of the collection, used for the sample vector.
        """
        self._client = client or AsyncQdrantClient(
            url=settings.qdrant_url,
            api_key=settings.qdrant_api_key or None,
            timeout=settings.qdrant_timeout,
        )
        self._collection = collection or settings.qdrant_collection
        self._dimension = dimension or settings.embedding_dimension

    @classmethod
    def create(
        cls,
        collection: str | None = None,
        dimension: int | None = None,
    ) -> "QdrantSearchProvider":
        """Factory method to create QdrantSearchProvider with defaults."""
        return cls(collection=collection, dimension=dimension)

    async def search(self, vector: list[float], collection: str, top_k: int) -> list[CandidateRecord]:
        """Find the top_k nearest neighbours in a collection.

        Args:
            vector: The query embedding
            collection: Qdrant collection name
            top_k: Maximum number of results

        Returns:
            Candidates sorted by descending score (Qdrant order)

        Raises:
            ProviderError: If the query fails or a point lacks the PKD payload
        """
        try:
            response = await self._client.query_points(
                collection_name=collection,
                query=vector,
                limit=top_k,
                with_payload=True,
                with_vectors=False,
            )
        except Exception as e:
            logger.error("Qdrant query failed | collection=%s top_k=%d error=%s", collection, top_k, e)
            raise ProviderError(f"Qdrant query failed: {e}") from e

        return [self._to_candidate(point) for point in response.points]

    async def sample_search(self, top_k: int) -> list[CandidateRecord]:
        """Return an arbitrary sample of the collection.

        Uses a constant vector with the collection's dimension, so the result
        is not meaningful for classification.
        """
        placeholder = [SAMPLE_VECTOR_VALUE] * self._dimension
        return await self.search(placeholder, self._collection, top_k)

    def _to_candidate(self, point: Any) -> CandidateRecord:
        """Convert a Qdrant ScoredPoint into a CandidateRecord."""
        try:
            return CandidateRecord.model_validate(
                {
                    "id": point.id,
                    "version": point.version or 0,
                    "score": point.score,
                    "payload": point.payload or {},
                }
            )
        except PydanticValidationError as e:
            raise ProviderError(f"Qdrant point {point.id} does not match the PKD payload schema: {e}") from e

    async def close(self) -> None:
        """Close the Qdrant client."""
        await self._client.close()
