"""
Domain Models for SafeScribe
============================

This module defines the core data structures used throughout the application.
We use Pydantic for several important reasons:

1. **Validation**: Provider output is validated against these shapes before
   anything downstream sees it
2. **Serialization**: Easy conversion to/from JSON for the API and storage
3. **Documentation**: Self-documenting with type hints

Design Principle: These models are "pure" - they have no dependencies on
external services, databases, or frameworks. Every instance lives for the
duration of a single processing request.
"""

from enum import Enum
from typing import Any, List, Literal
from pydantic import BaseModel, Field, field_validator


# Placeholder used when the provider leaves a SOAP section blank
NOT_DOCUMENTED = "Not documented in this encounter"

ConfidenceLevel = Literal["low", "medium", "high"]


class ProcessingStatus(str, Enum):
    """
    States of the transcript processing pipeline.

    Transitions are strictly sequential; FAILED is reachable from any
    non-terminal state.
    """
    VALIDATING = "validating"
    EXTRACTING = "extracting"
    GENERATING_NOTE = "generating_note"
    GENERATING_CODES = "generating_codes"
    APPLYING_SAFETY = "applying_safety"
    COMPLETE = "complete"
    FAILED = "failed"


class SafetyFlags(BaseModel):
    """
    Safety findings for one transcript.

    Created by the risk scanner; the safety rewriter appends to
    modified_claims after generation.

    Attributes:
        high_risk: True iff at least one emergency term was found
        emergency_terms: Matching terms in keyword-table order, no duplicates
        modified_claims: Absolute-claim phrases softened in the generated note
    """
    high_risk: bool = Field(default=False, description="Emergency terms present")
    emergency_terms: List[str] = Field(
        default_factory=list,
        description="Emergency-indicating terms found in the transcript"
    )
    modified_claims: List[str] = Field(
        default_factory=list,
        description="Absolute claims rewritten to cautious phrasing"
    )

    def to_storage_json(self) -> str:
        """Serialize to an opaque JSON string for session storage."""
        return self.model_dump_json()


class ExtractedContent(BaseModel):
    """
    Speaker-attributed statements pulled from a labeled transcript.

    Serialized with camelCase keys (patientStatements, doctorStatements).
    """
    patient_statements: List[str] = Field(
        default_factory=list,
        alias="patientStatements",
        description="Statements from lines labeled as the patient"
    )
    doctor_statements: List[str] = Field(
        default_factory=list,
        alias="doctorStatements",
        description="Statements from lines labeled as the doctor or provider"
    )

    @property
    def is_empty(self) -> bool:
        return not self.patient_statements and not self.doctor_statements

    class Config:
        frozen = True
        populate_by_name = True


class ProblemEntry(BaseModel):
    """One entry of the SOAP problem list."""
    problem: str = Field(..., description="Primary concern or diagnosis")
    rationale: str = Field(
        default="",
        description="Brief 1-2 line explanation of why this is a problem"
    )


class SOAPNote(BaseModel):
    """
    SOAP Note - The standard medical documentation format.

    SOAP stands for:
    - Subjective: Patient's reported symptoms and history
    - Objective: Observable/measurable findings
    - Assessment: Diagnosis or differential diagnoses
    - Plan: Treatment plan and next steps

    All four sections and the problem list are required when parsing
    provider output. Blank sections are filled with a placeholder so a
    note never reaches a reviewer with an empty field.
    """
    subjective: str = Field(
        ...,
        description="Patient's reported symptoms, history, and concerns"
    )
    objective: str = Field(
        ...,
        description="Observable findings, vital signs, examination results"
    )
    assessment: str = Field(
        ...,
        description="Clinical assessment, diagnosis, or differential diagnoses"
    )
    plan: str = Field(
        ...,
        description="Treatment plan, medications, follow-up instructions"
    )
    problem_list: List[ProblemEntry] = Field(
        ...,
        description="Key problems with brief rationales"
    )

    @field_validator("subjective", "objective", "assessment", "plan", mode="before")
    @classmethod
    def fill_blank_sections(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return NOT_DOCUMENTED
        return value

    def to_storage_json(self) -> str:
        """Serialize to an opaque JSON string for session storage."""
        return self.model_dump_json()

    def to_formatted_string(self) -> str:
        """
        Returns a nicely formatted SOAP note for display or export.
        """
        problems = "\n".join(
            f"{index}. {entry.problem} - {entry.rationale}"
            for index, entry in enumerate(self.problem_list, start=1)
        ) or "None recorded"
        return f"""
╔══════════════════════════════════════════════════════════════════╗
║                         SOAP NOTE                                ║
╠══════════════════════════════════════════════════════════════════╣
║ SUBJECTIVE                                                       ║
╟──────────────────────────────────────────────────────────────────╢
{self._wrap_text(self.subjective)}
╟──────────────────────────────────────────────────────────────────╢
║ OBJECTIVE                                                        ║
╟──────────────────────────────────────────────────────────────────╢
{self._wrap_text(self.objective)}
╟──────────────────────────────────────────────────────────────────╢
║ ASSESSMENT                                                       ║
╟──────────────────────────────────────────────────────────────────╢
{self._wrap_text(self.assessment)}
╟──────────────────────────────────────────────────────────────────╢
║ PLAN                                                             ║
╟──────────────────────────────────────────────────────────────────╢
{self._wrap_text(self.plan)}
╟──────────────────────────────────────────────────────────────────╢
║ PROBLEM LIST                                                     ║
╟──────────────────────────────────────────────────────────────────╢
{self._wrap_text(problems)}
╚══════════════════════════════════════════════════════════════════╝
"""

    def _wrap_text(self, text: str, width: int = 66) -> str:
        """Helper to wrap text for formatted output."""
        lines = []
        for paragraph in text.split('\n'):
            words = paragraph.split()
            current_line = "║ "
            for word in words:
                if len(current_line) + len(word) + 1 <= width:
                    current_line += word + " "
                else:
                    lines.append(current_line.ljust(67) + "║")
                    current_line = "║ " + word + " "
            if current_line.strip("║ "):
                lines.append(current_line.ljust(67) + "║")
        return '\n'.join(lines) if lines else "║" + " " * 66 + "║"


def _normalize_confidence(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().lower()
    return value


class IcdCode(BaseModel):
    """An ICD-10 diagnosis code suggestion."""
    code: str = Field(..., description="ICD-10 code, e.g. 'R07.9'")
    description: str = Field(..., description="Code description")
    confidence: ConfidenceLevel = Field(..., description="low, medium or high")
    relevance_score: float = Field(
        ...,
        ge=0.0,
        le=1.0,
        description="Relevance to the encounter (0.0-1.0)"
    )

    @field_validator("confidence", mode="before")
    @classmethod
    def lower_confidence(cls, value: Any) -> Any:
        return _normalize_confidence(value)


class CptCode(BaseModel):
    """A CPT procedure code suggestion."""
    code: str = Field(..., description="CPT code, e.g. '93000'")
    description: str = Field(..., description="Procedure description")
    justification: str = Field(default="", description="Why this code applies")
    confidence: ConfidenceLevel = Field(..., description="low, medium or high")

    @field_validator("confidence", mode="before")
    @classmethod
    def lower_confidence(cls, value: Any) -> Any:
        return _normalize_confidence(value)


class BillingHint(BaseModel):
    """Evaluation-and-management level or other billing suggestion."""
    type: str = Field(..., description="Hint type, e.g. 'em_level'")
    suggestion: str = Field(..., description="Suggested code and label")
    justification: str = Field(..., description="Why this level applies")


class CodingSuggestions(BaseModel):
    """
    Coding suggestions derived from a SOAP note.

    icd_codes is capped and ranked by relevance by the code suggester.
    """
    icd_codes: List[IcdCode] = Field(..., description="Up to 3 ICD-10 codes")
    billing_hint: BillingHint = Field(..., description="E/M level suggestion")
    cpt_codes: List[CptCode] = Field(
        default_factory=list,
        description="Up to 3 CPT codes"
    )

    def to_storage_json(self) -> str:
        """Serialize to an opaque JSON string for session storage."""
        return self.model_dump_json()


class DecisionLogEntry(BaseModel):
    """One audit-trail entry describing the outcome of a pipeline stage."""
    step: str = Field(..., description="Stage name")
    description: str = Field(..., description="What happened in this stage")
    timestamp: str = Field(..., description="ISO-8601 timestamp (UTC)")

    class Config:
        frozen = True


class PromptsUsed(BaseModel):
    """The two prompts sent to the provider for one request."""
    soap_prompt: str = Field(..., description="Prompt used for the SOAP stage")
    coding_prompt: str = Field(..., description="Prompt used for the coding stage")


class ProcessingResult(BaseModel):
    """
    Complete result of processing one transcript.

    This is the main "aggregate" returned by the pipeline. Serialized,
    it has exactly the keys soap_note, coding_suggestions, safety_flags,
    decision_log, prompts_used and processing_time_ms.
    """
    soap_note: SOAPNote = Field(..., description="Safety-reviewed SOAP note")
    coding_suggestions: CodingSuggestions = Field(
        ...,
        description="ICD-10/CPT suggestions and billing hint"
    )
    safety_flags: SafetyFlags = Field(..., description="Risk and rewrite flags")
    decision_log: List[DecisionLogEntry] = Field(
        default_factory=list,
        description="Ordered audit trail of pipeline stages"
    )
    prompts_used: PromptsUsed = Field(..., description="Prompts sent to the provider")
    processing_time_ms: int = Field(..., ge=0, description="Total elapsed time")

    def to_storage_record(self) -> dict[str, str]:
        """
        Storable string form of the parts a session record keeps.

        The storage layer persists these as opaque blobs.
        """
        return {
            "soap_note": self.soap_note.to_storage_json(),
            "coding_suggestions": self.coding_suggestions.to_storage_json(),
            "safety_flags": self.safety_flags.to_storage_json(),
        }


class NoteGenerationResult(BaseModel):
    """Output of the note generation stage."""
    soap_note: SOAPNote
    prompt: str
    used_fallback: bool = False


class CodingResult(BaseModel):
    """Output of the coding stage."""
    suggestions: CodingSuggestions
    prompt: str
    used_fallback: bool = False


class SafetyReviewResult(BaseModel):
    """Output of the safety rewriting stage."""
    soap_note: SOAPNote
    safety_flags: SafetyFlags
    modifications_made: List[str] = Field(default_factory=list)

