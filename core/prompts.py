"""
Generation Prompts for SafeScribe
=================================

Prompt templates for the two generation stages:

1. SOAP note generation from the consultation transcript
2. ICD-10 / CPT coding suggestions from the generated note

Both prompts ask for a fixed JSON shape. The response is still parsed
defensively by the generators; nothing here guarantees valid JSON.

Templates use str.format, so literal JSON braces are doubled.
"""

from models import ExtractedContent, SOAPNote


# =============================================================================
# System Prompts
# =============================================================================

NOTE_SYSTEM_PROMPT = (
    "You are a medical documentation assistant. Always return valid JSON in the "
    "requested format. Use cautious medical language and avoid definitive claims."
)

CODING_SYSTEM_PROMPT = (
    "You are a medical coding specialist. Return valid JSON with appropriate "
    "ICD-10 and CPT codes based on clinical documentation."
)


# =============================================================================
# SOAP Note Prompt
# =============================================================================

SOAP_NOTE_PROMPT = """You are a medical scribe creating a SOAP note from a clinical transcript.

IMPORTANT: Return your response in this exact JSON format:
{{
  "subjective": "Patient's reported symptoms and history...",
  "objective": "Physical exam findings and vital signs...",
  "assessment": "Clinical assessment and diagnoses...",
  "plan": "Treatment plan and next steps...",
  "problem_list": [
    {{
      "problem": "Primary concern or diagnosis",
      "rationale": "Brief 1-2 line explanation of why this is a problem"
    }}
  ]
}}

Transcript:
{transcript}
{speaker_context}
Generate a structured SOAP note. Extract key problems with brief rationales. Use professional medical language but avoid absolute claims."""

SPEAKER_CONTEXT_TEMPLATE = """
Speaker-attributed statements (for grounding only; the transcript above is authoritative):
Patient:
{patient}
Provider:
{provider}
"""


def _bullet_list(statements: list[str]) -> str:
    if not statements:
        return "- (none labeled)"
    return "\n".join(f"- {statement}" for statement in statements)


def get_soap_note_prompt(transcript: str, extracted: ExtractedContent) -> str:
    """
    Build the SOAP note prompt.

    Speaker statements are appended as grounding only when the transcript
    carried speaker labels.

    Args:
        transcript: The validated consultation transcript
        extracted: Speaker-attributed statements from the same transcript

    Returns:
        The user prompt for the note stage
    """
    speaker_context = ""
    if not extracted.is_empty:
        speaker_context = SPEAKER_CONTEXT_TEMPLATE.format(
            patient=_bullet_list(extracted.patient_statements),
            provider=_bullet_list(extracted.doctor_statements),
        )
    return SOAP_NOTE_PROMPT.format(transcript=transcript, speaker_context=speaker_context)


# =============================================================================
# Coding Prompt
# =============================================================================

CODING_PROMPT = """Based on this SOAP note, suggest appropriate medical codes.

SOAP Note:
Subjective: {subjective}
Assessment: {assessment}
Plan: {plan}

IMPORTANT: Return response in this exact JSON format:
{{
  "icd_codes": [
    {{
      "code": "ICD-10 code",
      "description": "Code description",
      "confidence": "low|medium|high",
      "relevance_score": 0.85
    }}
  ],
  "billing_hint": {{
    "type": "em_level",
    "suggestion": "99213 - Office Visit Level 3",
    "justification": "Detailed history, exam, and moderate complexity"
  }},
  "cpt_codes": [
    {{
      "code": "CPT code",
      "description": "Procedure description",
      "justification": "Why this code applies",
      "confidence": "low|medium|high"
    }}
  ]
}}

Provide up to {max_icd} ICD-10 codes ranked by relevance. Include E/M level suggestion or up to {max_cpt} CPT codes. Rate confidence as low/medium/high."""


def get_coding_prompt(soap_note: SOAPNote, max_icd: int = 3, max_cpt: int = 3) -> str:
    """Build the coding prompt from the subjective, assessment and plan sections."""
    return CODING_PROMPT.format(
        subjective=soap_note.subjective,
        assessment=soap_note.assessment,
        plan=soap_note.plan,
        max_icd=max_icd,
        max_cpt=max_cpt,
    )
