"""OpenAI chat completions implementation of ChatProvider.

Key behaviour:
  - Uses /chat/completions via httpx (no openai SDK dependency)
  - Requests JSON output via response_format={"type": "json_object"}
  - prompt (with the candidate list) -> system message,
    service description -> user message
  - Single attempt per call; failures propagate as ProviderError
"""

import logging

import httpx

from pkd_classifier.config import settings
from pkd_classifier.exceptions import ProviderError
from pkd_classifier.models import CandidateRecord, Decision
from pkd_classifier.prompts import build_suggestion_prompt, parse_decision

logger = logging.getLogger(__name__)


class OpenAIChatProvider:
    """OpenAI GPT chat completions provider.

    OpenAI's JSON mode requires the word "JSON" to appear in the prompt;
    the suggestion prompt in prompts.py already contains it.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model_name: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key or settings.openai_api_key
        self._model_name = model_name or settings.openai_chat_model
        self._base_url = (base_url or settings.openai_base_url).rstrip("/")
        self._timeout = timeout or settings.openai_timeout
        self._client = client

    @classmethod
    def create(
        cls,
        api_key: str | None = None,
        model_name: str | None = None,
    ) -> "OpenAIChatProvider":
        """Factory method to create OpenAIChatProvider with defaults."""
        return cls(api_key=api_key, model_name=model_name)

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy-load the async HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    @property
    def model_name(self) -> str:
        """Name of the underlying OpenAI chat model."""
        return self._model_name

    async def suggest(self, description: str, candidates: list[CandidateRecord]) -> Decision:
        """Pick the best matching candidate for a service description.

        Args:
            description: The raw service description (sent as the user message)
            candidates: Candidate records embedded verbatim in the system prompt

        Returns:
            The parsed Decision

        Raises:
            ProviderError: On HTTP failure or a response without content
            DecodeError: If the content is not JSON matching the Decision schema
        """
        prompt = build_suggestion_prompt(candidates)
        content = await self.chat(description, prompt)
        return parse_decision(content)

    async def chat(self, user_text: str, prompt_text: str) -> str:
        """Send one chat completion request and return the message content.

        Raises:
            ProviderError: On HTTP failure or a response without content
        """
        url = f"{self._base_url}/chat/completions"
        payload = {
            "model": self._model_name,
            "messages": [
                {"role": "system", "content": prompt_text},
                {"role": "user", "content": user_text},
            ],
            "response_format": {"type": "json_object"},
        }
        headers = {"Authorization": f"Bearer {self._api_key}"}

        try:
            response = await self.client.post(url, json=payload, headers=headers)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            logger.error("OpenAI chat request failed | model=%s error=%s", self._model_name, e)
            raise ProviderError(f"OpenAI chat API error: {e}") from e
        except ValueError as e:
            logger.error("OpenAI chat response is not JSON | model=%s", self._model_name)
            raise ProviderError("OpenAI chat API returned a non-JSON body") from e

        return self._extract_content(data)

    def _extract_content(self, data: dict) -> str:
        """Pull the content string out of the chat completions response."""
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderError(f"Unexpected chat response format: {str(data)[:200]}") from e

        if not content or not content.strip():
            raise ProviderError("OpenAI chat response contained no content")
        return content.strip()

    async def close(self) -> None:
        """Close the async HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
