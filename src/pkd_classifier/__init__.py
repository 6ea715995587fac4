"""PKD Classifier - cache-through PKD code classification.

This package classifies free-text business activity descriptions against
the Polish PKD code list: vector search proposes candidates, a language
model picks the best one, and both results are cached per description.

Layers:
    - protocols: Interface contracts (CacheStore, EmbeddingProvider, ...)
    - repositories: Data access implementations (PostgreSQL, Redis, Qdrant, OpenAI)
    - services: Business logic (the cache-through pipeline)
    - handlers: HTTP endpoint handlers
    - dto: Data transfer objects (API contracts)
    - entities: Domain models (internal)

Usage:
    ```python
    from pkd_classifier.services import ClassificationService

    service = ClassificationService.create(
        store=PostgresCacheRepository.create(),
        embedding_provider=OpenAIEmbeddingProvider.create(),
        search_provider=QdrantSearchProvider.create(),
        chat_provider=OpenAIChatProvider.create(),
    )
    result = await service.process("sprzedaż pieczywa")
    ```

For HTTP API:
    ```python
    from pkd_classifier.api.app import app
    ```
"""

from pkd_classifier.config import get_settings, settings
from pkd_classifier.dto import ProcessRequest, ProcessResponse, SamplesResponse
from pkd_classifier.entities import ProcessMode, ProcessResultEntity
from pkd_classifier.exceptions import (
    DecodeError,
    PKDClassifierError,
    ProcessingError,
    ProviderError,
    StoreError,
    ValidationError,
)
from pkd_classifier.handlers import ClassificationHandler
from pkd_classifier.models import CandidateRecord, ClassificationPayload, Decision
from pkd_classifier.protocols import CacheStore, ChatProvider, EmbeddingProvider, VectorSearchProvider
from pkd_classifier.repositories import (
    OpenAIChatProvider,
    OpenAIEmbeddingProvider,
    PostgresCacheRepository,
    QdrantSearchProvider,
    RedisCacheRepository,
)
from pkd_classifier.services import ClassificationService, SingleFlight

__all__ = [
    # Configuration
    "settings",
    "get_settings",
    # Protocols (interfaces)
    "CacheStore",
    "ChatProvider",
    "EmbeddingProvider",
    "VectorSearchProvider",
    # Services (business logic)
    "ClassificationService",
    "SingleFlight",
    # Handlers (HTTP)
    "ClassificationHandler",
    # Repositories (data access)
    "PostgresCacheRepository",
    "RedisCacheRepository",
    "QdrantSearchProvider",
    "OpenAIEmbeddingProvider",
    "OpenAIChatProvider",
    # Domain models
    "CandidateRecord",
    "ClassificationPayload",
    "Decision",
    "ProcessMode",
    "ProcessResultEntity",
    # DTOs (API contracts)
    "ProcessRequest",
    "ProcessResponse",
    "SamplesResponse",
    # Errors
    "PKDClassifierError",
    "ValidationError",
    "ProviderError",
    "DecodeError",
    "StoreError",
    "ProcessingError",
]
