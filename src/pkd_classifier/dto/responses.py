"""Response DTOs for API endpoints."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_serializer

from pkd_classifier.models import CandidateRecord, Decision


class ProcessData(BaseModel):
    """Payload of a /process response; fields absent for the mode are omitted."""

    model_config = ConfigDict(populate_by_name=True)

    ai_suggestion: Decision | None = Field(
        None,
        alias="aiSuggestion",
        description="The language model's choice (absent in database-only mode)",
    )
    pkd_code_data: list[CandidateRecord] | None = Field(
        None,
        alias="pkdCodeData",
        description="Vector search candidates (absent in AI-only mode)",
    )

    @model_serializer(mode="wrap")
    def _omit_absent(self, handler):
        data = handler(self)
        return {key: value for key, value in data.items() if value is not None}


class ProcessResponse(BaseModel):
    """Response DTO for GET /process."""

    data: ProcessData


class SamplesResponse(BaseModel):
    """Response DTO for GET /samples."""

    data: list[CandidateRecord] = Field(default_factory=list, description="Sample records")
    count: int = Field(..., description="Number of records returned", ge=0)


class ErrorResponse(BaseModel):
    """Error body returned for 4xx/5xx responses."""

    error: str = Field(..., description="Human-readable error message")


class HealthCheckResponse(BaseModel):
    """Response DTO for health check."""

    status: str = Field(..., description="Health status: 'healthy' or 'unhealthy'")
    store_healthy: bool = Field(..., description="Whether the cache store is reachable")


class StatsResponse(BaseModel):
    """Response DTO for pipeline statistics."""

    pipeline: dict[str, Any] = Field(..., description="Cache and provider counters")
