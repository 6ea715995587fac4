"""Dependency injection configuration for FastAPI app.

Uses FastAPI's app.state pattern for storing service instances.

Pattern:
    - Services stored in app.state during lifespan
    - Dependency functions retrieve from request.app.state
    - Clean separation, no global mutable state
"""

import logging
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, Request

from pkd_classifier.config import configure_logging, settings
from pkd_classifier.handlers import ClassificationHandler
from pkd_classifier.protocols import CacheStore
from pkd_classifier.repositories import (
    OpenAIChatProvider,
    OpenAIEmbeddingProvider,
    PostgresCacheRepository,
    QdrantSearchProvider,
    RedisCacheRepository,
)
from pkd_classifier.services import ClassificationService

logger = logging.getLogger(__name__)


def get_classification_service(request: Request) -> ClassificationService:
    """Dependency injection for ClassificationService from app.state.

    Raises:
        RuntimeError: If service is not initialized
    """
    service = getattr(request.app.state, "classification_service", None)
    if service is None:
        raise RuntimeError("ClassificationService not initialized. Check lifespan setup.")
    return service


def get_handler(request: Request) -> ClassificationHandler:
    """Dependency injection for ClassificationHandler from app.state.

    Raises:
        RuntimeError: If handler is not initialized
    """
    handler = getattr(request.app.state, "classification_handler", None)
    if handler is None:
        raise RuntimeError("ClassificationHandler not initialized. Check lifespan setup.")
    return handler


def create_store() -> CacheStore:
    """Build the cache store selected by CACHE_BACKEND."""
    if settings.cache_backend == "redis":
        return RedisCacheRepository.create()
    return PostgresCacheRepository.create()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for FastAPI app.

    Initializes all layers and stores in app.state:
    1. Store and providers (data access) - created explicitly
    2. Service (business logic) - stored in app.state.classification_service
    3. Handler (HTTP endpoints) - stored in app.state.classification_handler

    The cache tables are created here, once, before the first request.

    Raises:
        ConfigurationError: If required environment variables are missing
    """
    configure_logging()
    settings.validate_required()

    store = create_store()
    await store.initialize()

    embedding_provider = OpenAIEmbeddingProvider.create()
    search_provider = QdrantSearchProvider.create()
    chat_provider = OpenAIChatProvider.create()

    classification_service = ClassificationService.create(
        store=store,
        embedding_provider=embedding_provider,
        search_provider=search_provider,
        chat_provider=chat_provider,
    )
    classification_handler = ClassificationHandler(classification_service=classification_service)

    app.state.classification_service = classification_service
    app.state.classification_handler = classification_handler

    logger.info(
        "Classification service initialized | store=%s collection=%s embed_model=%s chat_model=%s single_flight=%s",
        settings.cache_backend,
        settings.qdrant_collection,
        embedding_provider.model_name,
        chat_provider.model_name,
        settings.single_flight_enabled,
    )

    yield

    del app.state.classification_handler
    del app.state.classification_service
    await chat_provider.close()
    await search_provider.close()
    await embedding_provider.close()
    await store.close()
    logger.info("Classification service shut down")


# Type aliases for cleaner dependency injection
HandlerDep = Annotated[ClassificationHandler, Depends(get_handler)]
ServiceDep = Annotated[ClassificationService, Depends(get_classification_service)]
