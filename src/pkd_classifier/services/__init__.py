"""Service layer for business logic.

This layer contains the core business logic and orchestration.
Services depend on protocols (interfaces), not concrete implementations,
making them testable and flexible.

Architecture:
    Handler -> Service -> Repository
    (HTTP)  -> (Business) -> (Data Access)

Usage:
    ```python
    from pkd_classifier.services import ClassificationService

    service = ClassificationService.create(
        store=store,
        embedding_provider=embedder,
        search_provider=search,
        chat_provider=chat,
    )
    ```
"""

from .classification_service import ClassificationService
from .single_flight import SingleFlight

__all__ = [
    "ClassificationService",
    "SingleFlight",
]
