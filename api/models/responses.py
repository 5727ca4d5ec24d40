"""
API Response Models
===================

Pydantic models for API responses. The processing result itself is the
domain ProcessingResult from models.py; these wrap it with request metadata.
"""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

from models import ProcessingResult, SafetyFlags


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ProcessResponse(ProcessingResult):
    """ProcessingResult fields plus success and processed_at."""

    success: bool = Field(default=True, description="Always true on HTTP 200")
    processed_at: datetime = Field(
        default_factory=utc_now,
        description="Timestamp when processing finished"
    )

    @classmethod
    def from_result(cls, result: ProcessingResult) -> "ProcessResponse":
        return cls(**dict(result))


class ValidationResponse(BaseModel):
    """Response model for the validation-only endpoint."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "success": True,
                "validation": {
                    "high_risk": True,
                    "emergency_terms": ["chest pain"],
                    "modified_claims": []
                },
                "validated_at": "2024-01-17T10:30:00Z"
            }
        }
    )

    success: bool = Field(default=True)
    validation: SafetyFlags = Field(..., description="Risk scan result")
    validated_at: datetime = Field(default_factory=utc_now)


class StatsResponse(BaseModel):
    """In-process counters since the API started."""

    total_processed: int = Field(..., ge=0, description="Successfully processed transcripts")
    avg_processing_time_ms: int = Field(..., ge=0, description="Mean processing time of successes")
    safety_flags_triggered: int = Field(..., ge=0, description="Successes flagged high risk")
    failed: int = Field(..., ge=0, description="Requests that ended in an error")
