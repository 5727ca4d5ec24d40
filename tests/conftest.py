import json

import pytest

from config import get_settings_for_testing
from core.llm_provider import MockGenerationProvider
from core.pipeline import TranscriptPipeline


HEADACHE_TRANSCRIPT = (
    "Patient: I've had a headache for three days.\n"
    "Doctor: Any nausea or vision changes?\n"
    "Patient: No, just the headache."
)

CHEST_PAIN_TRANSCRIPT = (
    "Patient: I have severe chest pain radiating to my left arm.\n"
    "Doctor: When did it start?"
)

VITALS_TRANSCRIPT = "Patient: I have severe chest pain.\nDoctor: Let's check your vitals."

NOTE_PAYLOAD = {
    "subjective": "Patient reports a headache for three days without nausea or vision changes.",
    "objective": "Alert and oriented. No focal deficits noted.",
    "assessment": "Tension-type headache is likely.",
    "plan": "Hydration, rest and over-the-counter analgesics. Return if symptoms worsen.",
    "problem_list": [
        {"problem": "Headache", "rationale": "Three days of persistent head pain."}
    ],
}

CODING_PAYLOAD = {
    "icd_codes": [
        {"code": "R51.9", "description": "Headache, unspecified", "confidence": "high", "relevance_score": 0.9},
        {"code": "G44.209", "description": "Tension-type headache", "confidence": "Medium", "relevance_score": 0.7},
    ],
    "billing_hint": {
        "type": "em_level",
        "suggestion": "99213 - Office Visit Level 3",
        "justification": "Low complexity, one acute uncomplicated problem",
    },
    "cpt_codes": [],
}

NOTE_JSON = json.dumps(NOTE_PAYLOAD)
CODING_JSON = json.dumps(CODING_PAYLOAD)


@pytest.fixture
def settings():
    """Settings independent of the environment."""
    return get_settings_for_testing(llm_provider="ollama", openai_api_key=None)


@pytest.fixture
def mock_provider():
    """Provider answering the note stage then the coding stage with valid JSON."""
    return MockGenerationProvider(responses=[NOTE_JSON, CODING_JSON])


@pytest.fixture
def pipeline(settings, mock_provider):
    return TranscriptPipeline(settings=settings, provider=mock_provider)
