"""Request DTOs for API endpoints.

Both endpoints are GET requests, so these models are built by the handler
from raw query parameters instead of being parsed from a JSON body.
"""

from pydantic import BaseModel, Field

from pkd_classifier.entities import ProcessMode

# Flag values treated as "off"; any other value (including "1", "true") is "on"
_FALSE_FLAG_VALUES = frozenset({"", "0", "false", "no", "off"})


def parse_flag(value: str | None) -> bool:
    """Interpret an optional query flag such as ?onlyDatabase=true."""
    if value is None:
        return False
    return value.strip().lower() not in _FALSE_FLAG_VALUES


class ProcessRequest(BaseModel):
    """Request DTO for GET /process."""

    service_description: str = Field(
        ...,
        description="Free-text service description, used verbatim as the cache key",
        min_length=1,
    )
    only_database: bool = Field(False, description="Return vector search candidates only")
    only_ai: bool = Field(False, description="Return the AI suggestion only")

    @property
    def mode(self) -> ProcessMode:
        """Pipeline mode selected by the flags."""
        return ProcessMode.from_flags(self.only_database, self.only_ai)


class SamplesRequest(BaseModel):
    """Request DTO for GET /samples (limit already clamped)."""

    limit: int = Field(..., description="Number of sample records to return", ge=1)
