"""Handler layer for HTTP endpoints.

This layer contains the HTTP request/response handlers.
Handlers depend on services (business logic), not directly on repositories.

Architecture:
    Handler -> Service -> Repository
    (HTTP)  -> (Business) -> (Data Access)
"""

from .classification_handler import ClassificationHandler, clamp_limit

__all__ = [
    "ClassificationHandler",
    "clamp_limit",
]
