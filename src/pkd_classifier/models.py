from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ClassificationPayload(BaseModel):
    """PKD taxonomy fields carried by candidates and decisions.

    Field aliases are the wire names used by the vector collection and the
    language model, so they must not change.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    code: str = Field(..., alias="grupaKlasaPodklasa", description="PKD code, e.g. 43.91.Z")
    group_name: str = Field(..., alias="nazwaGrupowania", description="Name of the PKD grouping")
    description: str = Field("", alias="opisDodatkowy", description="Additional description of the subclass")


class CandidateRecord(BaseModel):
    """One taxonomy entry returned by nearest-neighbour search."""

    model_config = ConfigDict(frozen=True)

    id: str | int
    version: int = 0
    score: float
    payload: ClassificationPayload


class Decision(BaseModel):
    """The language model's choice of the best matching candidate."""

    id: str | int
    version: int
    score: float = Field(..., ge=0.0, le=1.0, description="Match score (0-1)")
    payload: ClassificationPayload


def dump_candidates(candidates: list[CandidateRecord]) -> list[dict[str, Any]]:
    """Convert candidates to JSON-safe dicts using wire field names."""
    return [candidate.model_dump(mode="json", by_alias=True) for candidate in candidates]


@dataclass
class PipelineMetrics:
    """Track cache and provider usage of the classification pipeline."""

    total_requests: int = 0
    failed_requests: int = 0
    vector_cache_hits: int = 0
    vector_cache_misses: int = 0
    ai_cache_hits: int = 0
    ai_cache_misses: int = 0
    embedding_calls: int = 0
    search_calls: int = 0
    chat_calls: int = 0
    total_processing_time_ms: float = 0.0

    @property
    def vector_cache_hit_rate(self) -> float:
        """Calculate vector cache hit rate."""
        lookups = self.vector_cache_hits + self.vector_cache_misses
        if lookups == 0:
            return 0.0
        return self.vector_cache_hits / lookups

    @property
    def ai_cache_hit_rate(self) -> float:
        """Calculate AI suggestion cache hit rate."""
        lookups = self.ai_cache_hits + self.ai_cache_misses
        if lookups == 0:
            return 0.0
        return self.ai_cache_hits / lookups

    @property
    def avg_processing_time_ms(self) -> float:
        """Calculate average processing time per request."""
        if self.total_requests == 0:
            return 0.0
        return self.total_processing_time_ms / self.total_requests

    def record_request(self, duration_ms: float, failed: bool = False) -> None:
        """Record a finished pipeline request."""
        self.total_requests += 1
        self.total_processing_time_ms += duration_ms
        if failed:
            self.failed_requests += 1

    def to_dict(self) -> dict[str, float | int]:
        """Convert metrics to dictionary."""
        return {
            "total_requests": self.total_requests,
            "failed_requests": self.failed_requests,
            "vector_cache_hits": self.vector_cache_hits,
            "vector_cache_misses": self.vector_cache_misses,
            "vector_cache_hit_rate": self.vector_cache_hit_rate,
            "ai_cache_hits": self.ai_cache_hits,
            "ai_cache_misses": self.ai_cache_misses,
            "ai_cache_hit_rate": self.ai_cache_hit_rate,
            "embedding_calls": self.embedding_calls,
            "search_calls": self.search_calls,
            "chat_calls": self.chat_calls,
            "avg_processing_time_ms": self.avg_processing_time_ms,
        }
