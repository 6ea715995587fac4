"""Protocol interfaces for swappable implementations.

This package contains protocol definitions using structural typing.
Protocols enable:
- Easy swapping of implementations (PostgreSQL → Redis, OpenAI → local model, etc.)
- Unit testing with in-memory fakes
- Clear separation of concerns

Usage:
    ```python
    from pkd_classifier.protocols import CacheStore, EmbeddingProvider

    # Type hints work with any implementation
    store: CacheStore = PostgresCacheRepository.create()  # works
    store: CacheStore = RedisCacheRepository.create()     # also works
    ```
"""

from .cache_store import CacheStore
from .chat_provider import ChatProvider
from .embedding_provider import EmbeddingProvider
from .vector_search_provider import VectorSearchProvider

__all__ = [
    "CacheStore",
    "ChatProvider",
    "EmbeddingProvider",
    "VectorSearchProvider",
]
