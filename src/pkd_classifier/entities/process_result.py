"""Pipeline result domain entity."""

from dataclasses import dataclass

from pkd_classifier.models import CandidateRecord, Decision


@dataclass(frozen=True)
class ProcessResultEntity:
    """Composed result of one pipeline run.

    Attributes:
        mode: The mode the request ran in
        candidates: Vector search candidates, None in AI-only mode
        suggestion: The AI decision, None in database-only mode
    """

    mode: str
    candidates: list[CandidateRecord] | None = None
    suggestion: Decision | None = None
