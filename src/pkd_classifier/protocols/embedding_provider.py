"""Embedding provider protocol.

Defines the interface for any embedding generation service that can
convert a service description to a vector embedding.

Implementations can include:
- OpenAI embeddings API (default)
- Any other HTTP embedding service returning a fixed-length vector
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class EmbeddingProvider(Protocol):
    """Protocol for embedding generation services.

    Example:
        ```python
        provider: EmbeddingProvider = OpenAIEmbeddingProvider.create()
        vector = await provider.embed("sprzedaż pieczywa")
        ```
    """

    @property
    def dimension(self) -> int:
        """Return the dimension of the embedding vectors (e.g. 3072)."""
        ...

    @property
    def model_name(self) -> str:
        """Return the name/identifier of the model."""
        ...

    async def embed(self, text: str) -> list[float]:
        """Generate the embedding vector for a single text.

        Calls the provider exactly once; results are never cached here.

        Raises:
            ProviderError: On provider failure, timeout or empty response
        """
        ...

    async def close(self) -> None:
        """Release the underlying HTTP client."""
        ...
