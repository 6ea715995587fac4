"""HTTP handlers for classification operations.

Handlers convert between raw query parameters, DTOs (API contracts) and
service calls. Validation failures raise ValidationError; pipeline failures
surface as ProcessingError. api/app.py maps both to JSON error bodies.
"""

import logging

from pkd_classifier.config import settings
from pkd_classifier.dto import (
    HealthCheckResponse,
    ProcessData,
    ProcessRequest,
    ProcessResponse,
    SamplesRequest,
    SamplesResponse,
    StatsResponse,
    parse_flag,
)
from pkd_classifier.exceptions import ValidationError
from pkd_classifier.services import ClassificationService

logger = logging.getLogger(__name__)


def clamp_limit(raw: str | None, default: int, maximum: int) -> int:
    """Clamp a raw ?limit= value into 1..maximum.

    Missing or non-integer values fall back to the default; out-of-range
    values are clamped, never rejected.
    """
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.debug("Ignoring non-integer limit %r", raw)
        return default
    return min(max(1, value), maximum)


class ClassificationHandler:
    """HTTP handlers for classification operations.

    This handler delegates business logic to ClassificationService
    and handles HTTP-specific concerns like:
    - Parsing and validating query parameters
    - Converting entities to DTOs

    Example:
        ```python
        handler = ClassificationHandler(classification_service=service)

        @app.get("/process", response_model=ProcessResponse)
        async def process(serviceDescription: str | None = None):
            return await handler.process(serviceDescription)
        ```
    """

    def __init__(
        self,
        classification_service: ClassificationService,
        samples_default_limit: int | None = None,
        samples_max_limit: int | None = None,
    ) -> None:
        """Initialize the classification handler.

        Args:
            classification_service: The service for business logic (required).
            samples_default_limit: Limit used when ?limit= is absent. Defaults to settings.
            samples_max_limit: Upper clamp for ?limit=. Defaults to settings.
        """
        self._service = classification_service
        self._samples_default = samples_default_limit or settings.samples_default_limit
        self._samples_max = samples_max_limit or settings.samples_max_limit

    async def process(
        self,
        service_description: str | None,
        only_database: str | None = None,
        only_ai: str | None = None,
    ) -> ProcessResponse:
        """Handle GET /process requests.

        Args:
            service_description: Raw ?serviceDescription= value
            only_database: Raw ?onlyDatabase= flag
            only_ai: Raw ?onlyAi= flag

        Returns:
            ProcessResponse with the fields of the selected mode

        Raises:
            ValidationError: If the service description is missing or empty
            ProcessingError: If the pipeline fails
        """
        if not service_description:
            raise ValidationError("Service description is required")

        request = ProcessRequest(
            service_description=service_description,
            only_database=parse_flag(only_database),
            only_ai=parse_flag(only_ai),
        )

        result = await self._service.process(request.service_description, request.mode)

        return ProcessResponse(
            data=ProcessData(
                ai_suggestion=result.suggestion,
                pkd_code_data=result.candidates,
            )
        )

    async def samples(self, limit: str | None = None) -> SamplesResponse:
        """Handle GET /samples requests.

        Raises:
            ProcessingError: If the vector search fails
        """
        request = SamplesRequest(limit=clamp_limit(limit, self._samples_default, self._samples_max))
        records = await self._service.sample(request.limit)
        return SamplesResponse(data=records, count=len(records))

    async def get_stats(self) -> StatsResponse:
        """Handle GET /stats requests."""
        return StatsResponse(pipeline=self._service.get_stats())

    async def health_check(self) -> HealthCheckResponse:
        """Handle GET /health requests."""
        is_healthy = await self._service.is_healthy()

        return HealthCheckResponse(
            status="healthy" if is_healthy else "unhealthy",
            store_healthy=is_healthy,
        )
