"""OpenAI-based embedding provider.

Uses the OpenAI embeddings REST endpoint through httpx, without the
openai SDK.

Requirements:
    - OPENAI_API_KEY set in the environment or .env
    - The Qdrant collection must have been indexed with the same model,
      so EMBEDDING_DIMENSION must match the collection's vector size

Models:
- text-embedding-3-large (3072 dims, default)
- text-embedding-3-small (1536 dims)
"""

import logging

import httpx

from pkd_classifier.config import settings
from pkd_classifier.exceptions import ProviderError

logger = logging.getLogger(__name__)


class OpenAIEmbeddingProvider:
    """OpenAI implementation of EmbeddingProvider protocol.

    This class satisfies the EmbeddingProvider protocol through structural
    typing - no explicit inheritance needed.

    Example:
        ```python
        provider = OpenAIEmbeddingProvider.create()
        embedding = await provider.embed("sprzedaż pieczywa")
        print(len(embedding))  # 3072
        ```
    """

    def __init__(
        self,
        api_key: str | None = None,
        model_name: str | None = None,
        base_url: str | None = None,
        dimension: int | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the OpenAI embedding provider.

        Args:
            api_key: OpenAI API key. Defaults to settings.openai_api_key.
            model_name: Embedding model. Defaults to settings.openai_embed_model.
            base_url: API base URL. Defaults to settings.openai_base_url.
            dimension: Expected vector size. Defaults to settings.embedding_dimension.
            timeout: Request timeout in seconds. Defaults to settings.openai_timeout.
            client: Preconfigured httpx client (mainly for tests).
        """
        self._api_key = api_key or settings.openai_api_key
        self._model_name = model_name or settings.openai_embed_model
        self._base_url = (base_url or settings.openai_base_url).rstrip("/")
        self._dimension = dimension or settings.embedding_dimension
        self._timeout = timeout or settings.openai_timeout
        self._client = client

    @classmethod
    def create(
        cls,
        api_key: str | None = None,
        model_name: str | None = None,
    ) -> "OpenAIEmbeddingProvider":
        """Factory method to create OpenAIEmbeddingProvider with defaults.

        Args:
            api_key: API key. If None, uses settings.
            model_name: Model name. If None, uses settings.

        Returns:
            Configured OpenAIEmbeddingProvider
        """
        return cls(api_key=api_key, model_name=model_name)

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy-load the async HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
            )
        return self._client

    @property
    def dimension(self) -> int:
        """Get the embedding vector dimension."""
        return self._dimension

    @property
    def model_name(self) -> str:
        """Get the model name/identifier."""
        return self._model_name

    async def embed(self, text: str) -> list[float]:
        """Generate embedding vector for a single text.

        Args:
            text: The text to encode

        Returns:
            The embedding vector as a list of floats

        Raises:
            ProviderError: If the API request fails or the response is malformed
        """
        url = f"{self._base_url}/embeddings"
        payload = {
            "model": self._model_name,
            "input": text,
        }
        headers = {"Authorization": f"Bearer {self._api_key}"}

        try:
            response = await self.client.post(url, json=payload, headers=headers)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            logger.error("OpenAI embedding request failed | model=%s error=%s", self._model_name, e)
            raise ProviderError(f"OpenAI embedding API error: {e}") from e
        except ValueError as e:
            logger.error("OpenAI embedding response is not JSON | model=%s", self._model_name)
            raise ProviderError("OpenAI embedding API returned a non-JSON body") from e

        # OpenAI returns {"data": [{"embedding": [...], "index": 0}], ...}
        try:
            vector = data["data"][0]["embedding"]
        except (KeyError, IndexError, TypeError) as e:
            logger.error("Unexpected embedding response format | model=%s", self._model_name)
            raise ProviderError(f"Unexpected embedding response format: {str(data)[:200]}") from e

        if not isinstance(vector, list) or not vector:
            logger.error("Embedding response has no vector | model=%s", self._model_name)
            raise ProviderError(f"Unexpected embedding response format: {str(data)[:200]}")

        if len(vector) != self._dimension:
            logger.warning(
                "Embedding dimension mismatch | expected=%d got=%d model=%s",
                self._dimension,
                len(vector),
                self._model_name,
            )
        return vector

    async def close(self) -> None:
        """Close the async HTTP client.

        Should be called when shutting down the application.
        """
        if self._client is not None:
            await self._client.aclose()
            self._client = None
