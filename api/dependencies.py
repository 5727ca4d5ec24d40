"""
Dependency Injection Functions
==============================

FastAPI dependency injection for the pipeline and processing statistics.
"""

from fastapi import HTTPException, status

from api.services.stats import ProcessingStats
from config import get_settings
from core.pipeline import TranscriptPipeline


def get_pipeline() -> TranscriptPipeline:
    """
    Dependency to get the pipeline instance from app state.

    The pipeline is created during application startup (lifespan) so that
    provider configuration errors show up before the first request.

    Returns:
        TranscriptPipeline: The configured pipeline instance

    Raises:
        HTTPException: If pipeline is not initialized
    """
    from api.main import app_state

    pipeline = app_state.get("pipeline")
    if pipeline is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Pipeline not initialized. Check provider configuration."
        )
    return pipeline


def get_validation_pipeline() -> TranscriptPipeline:
    """
    Dependency for routes that never call a generation provider.

    Uses the startup pipeline when there is one. Otherwise builds a
    provider-free pipeline from settings, so validation still answers
    while the provider is misconfigured.
    """
    from api.main import app_state

    pipeline = app_state.get("pipeline")
    if pipeline is None:
        pipeline = TranscriptPipeline(settings=get_settings())
    return pipeline


def get_stats() -> ProcessingStats:
    """
    Dependency to get the processing statistics.

    Creates the counters on first use if startup did not.
    """
    from api.main import app_state

    if "stats" not in app_state:
        app_state["stats"] = ProcessingStats()
    return app_state["stats"]
