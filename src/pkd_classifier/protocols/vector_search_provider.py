"""Vector search provider protocol."""

from typing import Protocol, runtime_checkable

from pkd_classifier.models import CandidateRecord


@runtime_checkable
class VectorSearchProvider(Protocol):
    """Protocol for nearest-neighbour search over the PKD collection."""

    async def search(self, vector: list[float], collection: str, top_k: int) -> list[CandidateRecord]:
        """Find the nearest neighbours of a vector.

        Args:
            vector: The query embedding
            collection: Name of the vector collection (e.g. "pkdCode")
            top_k: Maximum number of results

        Returns:
            Up to top_k candidates ordered by descending score, ties in
            provider order

        Raises:
            ProviderError: On provider failure or malformed records
        """
        ...

    async def sample_search(self, top_k: int) -> list[CandidateRecord]:
        """Return an arbitrary sample of the collection for diagnostics.

        Raises:
            ProviderError: On provider failure
        """
        ...

    async def close(self) -> None:
        """Release the underlying client."""
        ...
