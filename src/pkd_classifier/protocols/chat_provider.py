"""Chat suggestion provider protocol."""

from typing import Protocol, runtime_checkable

from pkd_classifier.models import CandidateRecord, Decision


@runtime_checkable
class ChatProvider(Protocol):
    """Protocol for the language model choosing the best candidate."""

    @property
    def model_name(self) -> str:
        """Return the name/identifier of the chat model."""
        ...

    async def suggest(self, description: str, candidates: list[CandidateRecord]) -> Decision:
        """Ask the model which candidate best matches the description.

        Args:
            description: The raw service description
            candidates: Candidates from vector search, embedded verbatim in the prompt

        Returns:
            The parsed decision

        Raises:
            ProviderError: On provider failure
            DecodeError: If the response is not JSON matching the Decision schema
        """
        ...

    async def close(self) -> None:
        """Release the underlying HTTP client."""
        ...
