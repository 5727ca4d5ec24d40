"""Tests for generation providers (core/llm_provider.py)."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest

from config import get_settings_for_testing
from core.llm_provider import (
    MockGenerationProvider,
    OllamaGenerationProvider,
    OpenAIGenerationProvider,
    create_generation_provider,
)
from exceptions import (
    ConfigurationError,
    GenerationFailure,
    ModelNotFoundError,
    ProviderConnectionError,
    ProviderTimeoutError,
)


OPENAI_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def _completion(content):
    message = MagicMock()
    message.content = content
    choice = MagicMock()
    choice.message = message
    completion = MagicMock()
    completion.choices = [choice]
    return completion


@pytest.fixture
def openai_settings():
    return get_settings_for_testing(llm_provider="openai", openai_api_key="sk-test")


class TestMockProvider:

    def test_returns_responses_in_order_then_repeats_last(self):
        provider = MockGenerationProvider(["one", "two"])
        assert [provider.generate("s", "p", 10, 0.1) for _ in range(3)] == ["one", "two", "two"]

    def test_records_calls(self):
        provider = MockGenerationProvider("x")
        provider.generate("system", "prompt", 800, 0.2)
        assert provider.calls == [{"system": "system", "prompt": "prompt", "max_tokens": 800, "temperature": 0.2}]

    def test_fail_on_specific_call(self):
        provider = MockGenerationProvider("ok", error=RuntimeError("x"), fail_on_call=2)
        assert provider.generate("s", "p", 1, 0.0) == "ok"
        with pytest.raises(RuntimeError):
            provider.generate("s", "p", 1, 0.0)

    async def test_agenerate(self):
        assert await MockGenerationProvider("async").agenerate("s", "p", 1, 0.0) == "async"


class TestFactory:

    def test_mock(self, settings):
        assert isinstance(create_generation_provider(settings, use_mock=True), MockGenerationProvider)

    def test_ollama_default(self, settings):
        assert isinstance(create_generation_provider(settings), OllamaGenerationProvider)

    def test_openai(self, openai_settings):
        assert isinstance(create_generation_provider(openai_settings), OpenAIGenerationProvider)

    def test_openai_without_key_is_configuration_error(self):
        settings = get_settings_for_testing(llm_provider="openai", openai_api_key=None)
        with pytest.raises(ConfigurationError):
            create_generation_provider(settings)


class TestOllamaErrorTranslation:

    @pytest.fixture
    def provider(self, settings):
        return OllamaGenerationProvider(settings)

    def test_timeout(self, provider):
        error = provider._translate_error(httpx.ReadTimeout("timed out"))
        assert isinstance(error, ProviderTimeoutError)

    def test_connect_error(self, provider):
        error = provider._translate_error(httpx.ConnectError("[Errno 111] Connection refused"))
        assert isinstance(error, ProviderConnectionError)
        assert error.details["url"] == provider.settings.ollama_base_url

    def test_model_not_found(self, provider):
        error = provider._translate_error(Exception("model 'llama3.2' not found, try pulling it first"))
        assert isinstance(error, ModelNotFoundError)
        assert "ollama pull" in error.details["hint"]

    def test_other_errors(self, provider):
        error = provider._translate_error(ValueError("bad things"))
        assert type(error) is GenerationFailure
        assert error.reason == "bad things"

    def test_llm_cached_per_parameters(self, provider):
        first = provider._llm_for(1200, 0.3)
        assert provider._llm_for(1200, 0.3) is first
        assert provider._llm_for(800, 0.2) is not first

    def test_json_mode_sets_format(self, provider):
        assert provider._llm_for(1200, 0.3).format == "json"


class TestOpenAIProvider:

    def test_generate_sends_request(self, openai_settings):
        client = MagicMock()
        client.chat.completions.create.return_value = _completion('{"ok": true}')
        provider = OpenAIGenerationProvider(openai_settings, client=client)

        assert provider.generate("system", "prompt", 800, 0.2) == '{"ok": true}'

        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["max_tokens"] == 800
        assert kwargs["temperature"] == 0.2
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["messages"][0] == {"role": "system", "content": "system"}

    def test_json_mode_disabled(self):
        settings = get_settings_for_testing(openai_api_key="sk-test", openai_json_mode=False)
        client = MagicMock()
        client.chat.completions.create.return_value = _completion("text")
        OpenAIGenerationProvider(settings, client=client).generate("s", "p", 10, 0.0)
        assert "response_format" not in client.chat.completions.create.call_args.kwargs

    def test_none_content_becomes_empty_string(self, openai_settings):
        client = MagicMock()
        client.chat.completions.create.return_value = _completion(None)
        assert OpenAIGenerationProvider(openai_settings, client=client).generate("s", "p", 10, 0.0) == ""

    def test_timeout_translated(self, openai_settings):
        client = MagicMock()
        client.chat.completions.create.side_effect = openai.APITimeoutError(request=OPENAI_REQUEST)
        with pytest.raises(ProviderTimeoutError):
            OpenAIGenerationProvider(openai_settings, client=client).generate("s", "p", 10, 0.0)

    def test_connection_error_translated(self, openai_settings):
        client = MagicMock()
        client.chat.completions.create.side_effect = openai.APIConnectionError(request=OPENAI_REQUEST)
        with pytest.raises(ProviderConnectionError):
            OpenAIGenerationProvider(openai_settings, client=client).generate("s", "p", 10, 0.0)

    def test_status_error_translated(self, openai_settings):
        response = httpx.Response(429, request=OPENAI_REQUEST)
        client = MagicMock()
        client.chat.completions.create.side_effect = openai.RateLimitError(
            "rate limited", response=response, body=None
        )
        with pytest.raises(GenerationFailure) as exc_info:
            OpenAIGenerationProvider(openai_settings, client=client).generate("s", "p", 10, 0.0)
        assert exc_info.value.details["status_code"] == 429

    def test_not_found_translated(self, openai_settings):
        response = httpx.Response(404, request=OPENAI_REQUEST)
        client = MagicMock()
        client.chat.completions.create.side_effect = openai.NotFoundError(
            "no such model", response=response, body=None
        )
        with pytest.raises(ModelNotFoundError):
            OpenAIGenerationProvider(openai_settings, client=client).generate("s", "p", 10, 0.0)

    async def test_agenerate(self, openai_settings):
        async_client = MagicMock()
        async_client.chat.completions.create = AsyncMock(return_value=_completion("async text"))
        provider = OpenAIGenerationProvider(openai_settings, async_client=async_client)
        assert await provider.agenerate("s", "p", 10, 0.0) == "async text"
