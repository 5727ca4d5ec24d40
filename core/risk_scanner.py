"""
Emergency Risk Scanner
======================

Scans raw transcript text for terms that indicate potentially urgent
content. The result only flags the transcript for a human reviewer; it
never determines urgency on its own.
"""

import logging
import re
from typing import Iterable, Optional

from models import SafetyFlags


logger = logging.getLogger(__name__)


DEFAULT_EMERGENCY_KEYWORDS: tuple[str, ...] = (
    "chest pain",
    "suicidal",
    "suicide",
    "heart attack",
    "stroke",
    "seizure",
    "unconscious",
    "bleeding",
    "overdose",
    "difficulty breathing",
    "shortness of breath severe",
    "allergic reaction",
    "anaphylaxis",
    "severe pain",
    "emergency",
    "urgent",
    "critical",
)

# Between the words of a multi-word term: whitespace, optionally with one
# qualifying word, on the same line ("severe chest pain" -> "severe pain").
_WORD_GAP = r"[^\S\n]+(?:[\w'-]+[^\S\n]+)?"


def _compile_term(term: str) -> re.Pattern:
    words = term.lower().split()
    return re.compile(_WORD_GAP.join(re.escape(word) for word in words), re.IGNORECASE)


class RiskScanner:
    """
    Case-insensitive emergency-term scanner.

    The keyword table is fixed at construction and never mutated, so one
    instance can be shared by any number of concurrent requests.
    """

    def __init__(self, keywords: Optional[Iterable[str]] = None):
        source = DEFAULT_EMERGENCY_KEYWORDS if keywords is None else keywords
        # dict preserves table order while dropping duplicate entries
        self._keywords: tuple[str, ...] = tuple(dict.fromkeys(k.strip() for k in source if k.strip()))
        self._patterns: tuple[tuple[str, re.Pattern], ...] = tuple(
            (keyword, _compile_term(keyword)) for keyword in self._keywords
        )

    @property
    def keywords(self) -> tuple[str, ...]:
        return self._keywords

    def scan(self, transcript: str) -> SafetyFlags:
        """
        Return SafetyFlags for the transcript.

        emergency_terms lists every matching keyword once, in table order.
        modified_claims always starts empty.
        """
        text = transcript or ""
        found = [keyword for keyword, pattern in self._patterns if pattern.search(text)]

        if found:
            logger.warning(f"Emergency terms detected in transcript: {found}")

        return SafetyFlags(
            high_risk=bool(found),
            emergency_terms=found,
            modified_claims=[],
        )
