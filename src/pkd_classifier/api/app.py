import logging
from typing import Any

from fastapi import FastAPI, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pkd_classifier.api.dependencies import HandlerDep, ServiceDep, lifespan
from pkd_classifier.config import settings
from pkd_classifier.dto import ErrorResponse, HealthCheckResponse, ProcessResponse, SamplesResponse, StatsResponse
from pkd_classifier.exceptions import PKDClassifierError, ProcessingError, ValidationError

logger = logging.getLogger(__name__)

API_NAME = "PKD Classifier API"
API_VERSION = "0.1.0"
API_DESCRIPTION = "Cache-through PKD classification using vector search and an LLM"


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """Map bad input to 400 with the validation message."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ErrorResponse(error=str(exc)).model_dump(),
    )


async def processing_error_handler(request: Request, exc: PKDClassifierError) -> JSONResponse:
    """Map pipeline failures to a generic 500; details stay in the logs."""
    message = str(exc) if isinstance(exc, ProcessingError) else "Internal server error"
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(error=message).model_dump(),
    )


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler for anything the pipeline did not wrap."""
    logger.exception("Unexpected error | path=%s", request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(error="Internal server error").model_dump(),
    )


def create_app(use_lifespan: bool = True) -> FastAPI:
    """Build the FastAPI application.

    Args:
        use_lifespan: Wire real clients on startup. Tests pass False and put
            their own handler into app.state.
    """
    app = FastAPI(
        title=API_NAME,
        description=API_DESCRIPTION,
        version=API_VERSION,
        lifespan=lifespan if use_lifespan else None,
    )

    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ValidationError, validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(PKDClassifierError, processing_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unexpected_error_handler)

    @app.get("/")
    async def root() -> dict[str, Any]:
        """Root endpoint with API information."""
        return {
            "name": API_NAME,
            "version": API_VERSION,
            "description": API_DESCRIPTION,
            "endpoints": {
                "process": "/process",
                "samples": "/samples",
                "stats": "/stats",
                "health": "/health",
                "docs": "/docs",
            },
        }

    @app.get("/health", response_model=HealthCheckResponse, responses={503: {"model": ErrorResponse}})
    async def health(handler: HandlerDep) -> HealthCheckResponse | JSONResponse:
        """Health check endpoint."""
        result = await handler.health_check()
        if not result.store_healthy:
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content=ErrorResponse(error="Cache store is unreachable").model_dump(),
            )
        return result

    @app.get(
        "/process",
        response_model=ProcessResponse,
        responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    )
    async def process(
        handler: HandlerDep,
        service_description: str | None = Query(None, alias="serviceDescription"),
        only_database: str | None = Query(None, alias="onlyDatabase"),
        only_ai: str | None = Query(None, alias="onlyAi"),
    ) -> ProcessResponse:
        """
        Classify a service description.

        Args:
            service_description: Free-text description, used verbatim as cache key.
            only_database: Return vector search candidates only.
            only_ai: Return the AI suggestion only.

        Returns:
            {"data": {...}} with aiSuggestion and/or pkdCodeData.
        """
        return await handler.process(service_description, only_database, only_ai)

    @app.get("/samples", response_model=SamplesResponse, responses={500: {"model": ErrorResponse}})
    async def samples(
        handler: HandlerDep,
        limit: str | None = Query(None, description="1..50, default 10; clamped, never rejected"),
    ) -> SamplesResponse:
        """Return an arbitrary sample of the indexed PKD collection."""
        return await handler.samples(limit)

    @app.get("/stats", response_model=StatsResponse)
    async def get_stats(handler: HandlerDep) -> StatsResponse:
        """Get pipeline statistics."""
        return await handler.get_stats()

    @app.get("/stats/reset", response_model=dict[str, str])
    async def reset_stats(service: ServiceDep) -> dict[str, str]:
        """Reset pipeline metrics."""
        service.reset_stats()
        return {"message": "Pipeline metrics reset"}

    return app


app = create_app()


def main() -> None:
    """Run the API with uvicorn using API_HOST / API_PORT / API_RELOAD."""
    import uvicorn

    uvicorn.run(
        "pkd_classifier.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )


if __name__ == "__main__":
    main()
