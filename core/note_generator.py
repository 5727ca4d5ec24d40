"""
SOAP Note Generator for SafeScribe
==================================

Converts a consultation transcript into a structured SOAP note by asking
the generation provider for a fixed JSON shape.

Failure vs. Degradation
-----------------------
- The provider call fails (timeout, transport, quota): GenerationFailure
  propagates, since no note can be produced at all.
- The provider answers with text that does not parse into a SOAPNote:
  a fixed fallback note is returned whose every field tells the reviewer
  that automated extraction failed and manual review is required.
"""

import logging
from typing import Optional

from config import Settings, get_settings
from core.llm_provider import GenerationProvider
from core.prompts import NOTE_SYSTEM_PROMPT, get_soap_note_prompt
from core.response_parser import parse_model_response
from exceptions import GenerationFailure, MalformedResponseError
from models import ExtractedContent, NoteGenerationResult, ProblemEntry, SOAPNote


# Set up module logger
logger = logging.getLogger(__name__)

STAGE_NAME = "SOAP note generation"


def fallback_soap_note() -> SOAPNote:
    """
    The note substituted when provider output cannot be parsed.

    Every section is self-describing so a reviewer immediately recognizes
    the content as unreliable.
    """
    return SOAPNote(
        subjective=(
            "Unable to parse structured response - automated extraction failed. "
            "Manual review required; please review original transcript."
        ),
        objective="Physical examination details not extracted - manual review required.",
        assessment="Assessment not generated - manual review required.",
        plan="Treatment plan not generated - manual clinical review required.",
        problem_list=[
            ProblemEntry(
                problem="Documentation parsing issue",
                rationale=(
                    "AI response could not be parsed into a structured note; "
                    "manual review required."
                ),
            )
        ],
    )


class NoteGenerator:
    """
    Builds the note prompt, calls the provider and validates the result.

    Generation favours determinism: low temperature and a bounded output
    length, both taken from settings.
    """

    def __init__(
        self,
        provider: GenerationProvider,
        settings: Optional[Settings] = None,
    ):
        self.provider = provider
        self.settings = settings or get_settings()

    def build_prompt(self, transcript: str, extracted: ExtractedContent) -> str:
        return get_soap_note_prompt(transcript, extracted)

    def generate(self, transcript: str, extracted: ExtractedContent) -> NoteGenerationResult:
        """
        Generate a SOAP note (synchronous).

        Raises:
            GenerationFailure: If the provider call itself fails
        """
        prompt = self.build_prompt(transcript, extracted)
        logger.info(f"Generating SOAP note for transcript ({len(transcript)} chars)")

        try:
            raw_response = self.provider.generate(
                NOTE_SYSTEM_PROMPT,
                prompt,
                self.settings.note_max_tokens,
                self.settings.note_temperature,
            )
        except GenerationFailure:
            raise
        except Exception as e:
            logger.error(f"SOAP generation failed: {e}")
            raise GenerationFailure(reason=str(e), stage=STAGE_NAME) from e

        return self._to_result(raw_response, prompt)

    async def agenerate(self, transcript: str, extracted: ExtractedContent) -> NoteGenerationResult:
        """Async version of generate() for use with FastAPI."""
        prompt = self.build_prompt(transcript, extracted)
        logger.info(f"Generating SOAP note (async) for transcript ({len(transcript)} chars)")

        try:
            raw_response = await self.provider.agenerate(
                NOTE_SYSTEM_PROMPT,
                prompt,
                self.settings.note_max_tokens,
                self.settings.note_temperature,
            )
        except GenerationFailure:
            raise
        except Exception as e:
            logger.error(f"Async SOAP generation failed: {e}")
            raise GenerationFailure(reason=str(e), stage=STAGE_NAME) from e

        return self._to_result(raw_response, prompt)

    def _to_result(self, raw_response: str, prompt: str) -> NoteGenerationResult:
        logger.debug(f"Received note response ({len(raw_response or '')} chars)")
        try:
            soap_note = parse_model_response(raw_response, SOAPNote)
        except MalformedResponseError as e:
            logger.warning(f"Using fallback SOAP note: {e.message}")
            return NoteGenerationResult(
                soap_note=fallback_soap_note(),
                prompt=prompt,
                used_fallback=True,
            )
        return NoteGenerationResult(soap_note=soap_note, prompt=prompt)
