"""Repository layer for data access.

This layer abstracts external dependencies (PostgreSQL, Redis, Qdrant,
OpenAI) behind protocol-based interfaces. This enables:
- Easy swapping of implementations (PostgreSQL → Redis, etc.)
- Unit testing with in-memory fakes
- Clear separation of concerns

The repositories are protocol-based (structural typing), not inheritance-based.
Any class implementing the required methods will satisfy the protocol.
"""

from pkd_classifier.protocols import CacheStore, ChatProvider, EmbeddingProvider, VectorSearchProvider

from .openai_chat_provider import OpenAIChatProvider
from .openai_embedding_provider import OpenAIEmbeddingProvider
from .postgres_repository import PostgresCacheRepository
from .qdrant_search_provider import QdrantSearchProvider
from .redis_repository import RedisCacheRepository

__all__ = [
    "CacheStore",
    "ChatProvider",
    "EmbeddingProvider",
    "VectorSearchProvider",
    "OpenAIChatProvider",
    "OpenAIEmbeddingProvider",
    "PostgresCacheRepository",
    "QdrantSearchProvider",
    "RedisCacheRepository",
]
