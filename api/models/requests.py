"""
API Request Models
==================

Pydantic models for API request validation.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class TranscriptRequest(BaseModel):
    """
    Request body for /process and /validate.

    ``transcript`` is optional at the schema level so a missing or null
    value reaches the pipeline and is reported as EmptyTranscriptError
    (HTTP 400) instead of a generic 422.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "transcript": (
                    "Patient: I've had a headache for three days.\n"
                    "Doctor: Any nausea or vision changes?\n"
                    "Patient: No, just the headache."
                )
            }
        }
    )

    transcript: Optional[str] = Field(
        default=None,
        description="Speaker-labelled consultation transcript (max 5120 characters)"
    )
