"""
Transcript Endpoints
====================

POST /process   full pipeline, returns the ProcessingResult
POST /validate  input validation and risk scan only
GET  /stats     in-process counters
"""

import logging

from fastapi import APIRouter, Depends, Request

from api.dependencies import get_pipeline, get_stats, get_validation_pipeline
from api.middleware.rate_limiter import limiter, process_rate_limit
from api.models.requests import TranscriptRequest
from api.models.responses import ProcessResponse, StatsResponse, ValidationResponse
from api.services.stats import ProcessingStats
from core.pipeline import TranscriptPipeline
from exceptions import InputValidationError, SafeScribeError


logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/process", response_model=ProcessResponse)
@limiter.limit(process_rate_limit)
async def process_transcript(
    request: Request,
    body: TranscriptRequest,
    pipeline: TranscriptPipeline = Depends(get_pipeline),
    stats: ProcessingStats = Depends(get_stats)
):
    """
    Process a transcript into a safety-reviewed SOAP note with coding suggestions.

    Errors are mapped by the error handler middleware:
    400 empty transcript, 413 too long, 502/503 stage failure.
    """
    logger.info(f"Processing request from {request.client.host if request.client else 'unknown'}")

    try:
        result = await pipeline.aprocess(body.transcript)
    except InputValidationError:
        raise
    except SafeScribeError:
        stats.record_failure()
        raise

    stats.record_success(result)
    return ProcessResponse.from_result(result)


@router.post("/validate", response_model=ValidationResponse)
async def validate_transcript(
    body: TranscriptRequest,
    pipeline: TranscriptPipeline = Depends(get_validation_pipeline)
):
    """
    Check a transcript before submission: size limits and emergency terms.

    No generation provider is called, so this keeps working when the
    provider failed to configure at startup.
    """
    safety_flags = pipeline.validate_transcript(body.transcript)
    return ValidationResponse(validation=safety_flags)


@router.get("/stats", response_model=StatsResponse)
async def get_processing_stats(stats: ProcessingStats = Depends(get_stats)):
    """Counters since the API process started."""
    return StatsResponse(**stats.snapshot())
