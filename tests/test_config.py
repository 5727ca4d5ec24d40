"""Tests for configuration (config.py) and the exception hierarchy."""

import pytest
from pydantic import ValidationError

from config import Settings, get_settings_for_testing
from exceptions import (
    EmptyTranscriptError,
    GenerationFailure,
    InputValidationError,
    PipelineError,
    ProviderConnectionError,
    SafeScribeError,
)


def test_defaults():
    settings = get_settings_for_testing()
    assert settings.max_transcript_chars == 5120
    assert settings.max_icd_codes == 3
    assert settings.note_max_tokens == 1200
    assert settings.note_temperature == 0.3
    assert settings.coding_max_tokens == 800
    assert settings.coding_temperature == 0.2
    assert settings.openai_model == "gpt-4o-mini"


def test_env_prefix(monkeypatch):
    monkeypatch.setenv("SAFESCRIBE_OLLAMA_MODEL", "mistral")
    monkeypatch.setenv("SAFESCRIBE_MAX_TRANSCRIPT_CHARS", "2048")
    settings = Settings()
    assert settings.ollama_model == "mistral"
    assert settings.max_transcript_chars == 2048


def test_unknown_provider_rejected():
    with pytest.raises(ValidationError):
        get_settings_for_testing(llm_provider="anthropic")


class TestExceptions:

    def test_hierarchy(self):
        assert issubclass(EmptyTranscriptError, InputValidationError)
        assert issubclass(ProviderConnectionError, GenerationFailure)
        assert issubclass(PipelineError, SafeScribeError)

    def test_to_dict_without_decision_log(self):
        payload = EmptyTranscriptError().to_dict()
        assert payload == {
            "error_type": "EmptyTranscriptError",
            "message": "Transcript is required",
            "details": {"received_type": "str"},
        }

    def test_generation_failure_message(self):
        error = GenerationFailure(reason="boom", stage="coding suggestion")
        assert error.message == "coding suggestion failed: boom"
        assert error.details == {"reason": "boom", "stage": "coding suggestion"}
