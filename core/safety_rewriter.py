"""
Safety Rewriter for SafeScribe
==============================

Deterministically softens absolute or overconfident medical claims in a
generated SOAP note before it reaches a reviewer, e.g.:

    "This treatment is guaranteed to work and has no side effects"
    -> "This treatment is likely to work and has minimal side effects expected"

Every substitution is logged and recorded in SafetyFlags.modified_claims.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, Optional

from models import SafetyFlags, SafetyReviewResult, SOAPNote


logger = logging.getLogger(__name__)

SOAP_SECTIONS: tuple[str, ...] = ("subjective", "objective", "assessment", "plan")


@dataclass(frozen=True)
class AbsoluteClaimRule:
    """
    One absolute phrase and its cautious replacement.

    ``pattern`` defaults to the escaped phrase; a rule may widen it to
    absorb adjacent words that the replacement already supplies.
    """
    absolute: str
    cautious: str
    pattern: Optional[str] = None
    regex: re.Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        source = self.pattern or re.escape(self.absolute)
        object.__setattr__(self, "regex", re.compile(source, re.IGNORECASE))


DEFAULT_ABSOLUTE_CLAIMS: tuple[AbsoluteClaimRule, ...] = (
    AbsoluteClaimRule("will cure", "may help treat"),
    AbsoluteClaimRule("will heal", "may aid healing"),
    # "likely to" already ends in "to": "guaranteed to work" -> "likely to work"
    AbsoluteClaimRule("guaranteed", "likely to", pattern=r"guaranteed(?:\s+to\b)?"),
    AbsoluteClaimRule("definitely will", "may"),
    AbsoluteClaimRule("always works", "often helps"),
    AbsoluteClaimRule("never fails", "is typically effective"),
    AbsoluteClaimRule("completely safe", "generally well-tolerated"),
    AbsoluteClaimRule("no side effects", "minimal side effects expected"),
)


class SafetyRewriter:
    """
    Applies the absolute-claim table to every free-text part of a note.

    All matching rules are applied to each field, in table order, so several
    absolute phrases in one field are each corrected. The table is fixed at
    construction.
    """

    def __init__(self, rules: Optional[Iterable[AbsoluteClaimRule]] = None):
        self._rules: tuple[AbsoluteClaimRule, ...] = tuple(
            DEFAULT_ABSOLUTE_CLAIMS if rules is None else rules
        )

    @property
    def rules(self) -> tuple[AbsoluteClaimRule, ...]:
        return self._rules

    def rewrite_text(self, text: str, location: str) -> tuple[str, list[AbsoluteClaimRule], list[str]]:
        """
        Rewrite one piece of text.

        Returns:
            (new_text, rules_applied, modification_descriptions)
        """
        applied: list[AbsoluteClaimRule] = []
        descriptions: list[str] = []
        for rule in self._rules:
            if rule.regex.search(text):
                text = rule.regex.sub(rule.cautious, text)
                applied.append(rule)
                descriptions.append(f'Modified "{rule.absolute}" to "{rule.cautious}" in {location}')
        return text, applied, descriptions

    def apply(self, soap_note: SOAPNote, safety_flags: SafetyFlags) -> SafetyReviewResult:
        """
        Rewrite the note and record each substitution.

        The input objects are not mutated; updated copies are returned.
        Fields that are missing or not text are skipped.
        """
        note = soap_note.model_copy(deep=True)
        flags = safety_flags.model_copy(deep=True)
        modifications: list[str] = []

        for section in SOAP_SECTIONS:
            text = getattr(note, section, None)
            if not isinstance(text, str):
                logger.warning(f"Skipping safety review of missing section: {section}")
                continue
            new_text, applied, descriptions = self.rewrite_text(text, section)
            if applied:
                setattr(note, section, new_text)
                flags.modified_claims.extend(rule.absolute for rule in applied)
                modifications.extend(descriptions)

        for entry in note.problem_list or []:
            rationale = getattr(entry, "rationale", None)
            if not isinstance(rationale, str):
                logger.warning("Skipping safety review of problem entry without rationale")
                continue
            new_text, applied, descriptions = self.rewrite_text(rationale, "problem rationale")
            if applied:
                entry.rationale = new_text
                flags.modified_claims.extend(rule.absolute for rule in applied)
                modifications.extend(descriptions)

        for description in modifications:
            logger.info(f"Safety rewrite: {description}")

        return SafetyReviewResult(
            soap_note=note,
            safety_flags=flags,
            modifications_made=modifications,
        )
