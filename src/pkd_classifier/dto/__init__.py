"""Data Transfer Objects for API contracts.

These Pydantic models define the external API contract.
They are used for request/response validation and serialization.

Internal domain logic should use entities from the entities package.
"""

from .requests import ProcessRequest, SamplesRequest, parse_flag
from .responses import (
    ErrorResponse,
    HealthCheckResponse,
    ProcessData,
    ProcessResponse,
    SamplesResponse,
    StatsResponse,
)

__all__ = [
    "ProcessRequest",
    "SamplesRequest",
    "parse_flag",
    "ProcessData",
    "ProcessResponse",
    "SamplesResponse",
    "ErrorResponse",
    "HealthCheckResponse",
    "StatsResponse",
]
