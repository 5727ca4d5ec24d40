"""
Coding Suggestions for SafeScribe
=================================

Asks the generation provider for ICD-10 and CPT suggestions based on the
generated SOAP note. Uses the same failure-vs-degrade policy as the note
generator: provider failures propagate, unparseable output is replaced by a
single low-confidence general-examination code and a generic billing hint.
"""

import logging
from typing import Optional

from config import Settings, get_settings
from core.llm_provider import GenerationProvider
from core.prompts import CODING_SYSTEM_PROMPT, get_coding_prompt
from core.response_parser import parse_model_response
from exceptions import GenerationFailure, MalformedResponseError
from models import BillingHint, CodingResult, CodingSuggestions, IcdCode, SOAPNote


logger = logging.getLogger(__name__)

STAGE_NAME = "coding suggestion"


def fallback_coding_suggestions() -> CodingSuggestions:
    """Substituted when the coding response cannot be parsed."""
    return CodingSuggestions(
        icd_codes=[
            IcdCode(
                code="Z00.00",
                description="Encounter for general adult medical examination without abnormal findings",
                confidence="low",
                relevance_score=0.5,
            )
        ],
        billing_hint=BillingHint(
            type="em_level",
            suggestion="99213 - Office Visit Level 3",
            justification="Unable to determine complexity from transcript - manual review required",
        ),
        cpt_codes=[],
    )


class CodeSuggester:
    """Second generation stage: SOAP note in, coding suggestions out."""

    def __init__(
        self,
        provider: GenerationProvider,
        settings: Optional[Settings] = None,
    ):
        self.provider = provider
        self.settings = settings or get_settings()

    def build_prompt(self, soap_note: SOAPNote) -> str:
        return get_coding_prompt(
            soap_note,
            max_icd=self.settings.max_icd_codes,
            max_cpt=self.settings.max_cpt_codes,
        )

    def generate(self, soap_note: SOAPNote) -> CodingResult:
        """
        Generate coding suggestions (synchronous).

        Raises:
            GenerationFailure: If the provider call itself fails
        """
        prompt = self.build_prompt(soap_note)
        logger.info("Generating coding suggestions")

        try:
            raw_response = self.provider.generate(
                CODING_SYSTEM_PROMPT,
                prompt,
                self.settings.coding_max_tokens,
                self.settings.coding_temperature,
            )
        except GenerationFailure:
            raise
        except Exception as e:
            logger.error(f"Coding suggestion failed: {e}")
            raise GenerationFailure(reason=str(e), stage=STAGE_NAME) from e

        return self._to_result(raw_response, prompt)

    async def agenerate(self, soap_note: SOAPNote) -> CodingResult:
        """Async version of generate()."""
        prompt = self.build_prompt(soap_note)
        logger.info("Generating coding suggestions (async)")

        try:
            raw_response = await self.provider.agenerate(
                CODING_SYSTEM_PROMPT,
                prompt,
                self.settings.coding_max_tokens,
                self.settings.coding_temperature,
            )
        except GenerationFailure:
            raise
        except Exception as e:
            logger.error(f"Async coding suggestion failed: {e}")
            raise GenerationFailure(reason=str(e), stage=STAGE_NAME) from e

        return self._to_result(raw_response, prompt)

    def _to_result(self, raw_response: str, prompt: str) -> CodingResult:
        try:
            suggestions = parse_model_response(raw_response, CodingSuggestions)
        except MalformedResponseError as e:
            logger.warning(f"Using fallback coding suggestions: {e.message}")
            return CodingResult(
                suggestions=fallback_coding_suggestions(),
                prompt=prompt,
                used_fallback=True,
            )
        return CodingResult(suggestions=self._cap(suggestions), prompt=prompt)

    def _cap(self, suggestions: CodingSuggestions) -> CodingSuggestions:
        """Rank ICD codes by relevance and trim both lists to their caps."""
        ranked = sorted(suggestions.icd_codes, key=lambda code: code.relevance_score, reverse=True)
        max_icd = self.settings.max_icd_codes
        max_cpt = self.settings.max_cpt_codes

        if len(ranked) > max_icd or len(suggestions.cpt_codes) > max_cpt:
            logger.info(
                f"Trimming suggestions to {max_icd} ICD / {max_cpt} CPT codes "
                f"(received {len(ranked)} / {len(suggestions.cpt_codes)})"
            )

        return suggestions.model_copy(update={
            "icd_codes": ranked[:max_icd],
            "cpt_codes": suggestions.cpt_codes[:max_cpt],
        })
