"""Cache storage protocol.

Defines the interface for the persistent store holding the two
independent caches, both keyed by the raw service description:

- vector results: the candidate list returned by vector search
- AI suggestion: the decision returned by the language model

Implementations:
- PostgreSQL (default, tables `cache` and `aiCache`)
- Redis (hashes `cache` and `aiCache`)
"""

from typing import Protocol, runtime_checkable

from pkd_classifier.models import CandidateRecord, Decision


@runtime_checkable
class CacheStore(Protocol):
    """Protocol for cache storage backends.

    Keys are used verbatim: no trimming or case folding. Writes are upserts
    that replace any existing value for the key. Entries never expire.
    """

    async def initialize(self) -> None:
        """Create the backing tables if they do not exist (idempotent)."""
        ...

    async def get_vector_results(self, key: str) -> list[CandidateRecord] | None:
        """Look up cached vector search results.

        Args:
            key: The service description

        Returns:
            The cached candidates, or None if absent

        Raises:
            StoreError: On connectivity or query failure
            DecodeError: If the stored value is not a valid candidate list
        """
        ...

    async def put_vector_results(self, key: str, records: list[CandidateRecord]) -> None:
        """Store vector search results, replacing any existing value.

        Raises:
            StoreError: On connectivity or query failure
        """
        ...

    async def get_ai_suggestion(self, key: str) -> Decision | None:
        """Look up a cached AI suggestion.

        Args:
            key: The service description

        Returns:
            The cached decision, or None if absent

        Raises:
            StoreError: On connectivity or query failure
            DecodeError: If the stored value is not a valid decision
        """
        ...

    async def put_ai_suggestion(self, key: str, decision: Decision) -> None:
        """Store an AI suggestion, replacing any existing value.

        Raises:
            StoreError: On connectivity or query failure
        """
        ...

    async def health_check(self) -> bool:
        """Check if the store is accessible.

        Returns:
            True if healthy, False otherwise
        """
        ...

    async def close(self) -> None:
        """Release connections held by the store."""
        ...
